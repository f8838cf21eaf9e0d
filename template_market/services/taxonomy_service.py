from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from template_market.models.taxonomy import TemplateType


def get_or_404(db: Session, model, item_id: int, label: str):
    item = db.query(model).filter(model.id == item_id).first()
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return item


def ensure_unique_name(db: Session, model, name: str, label: str, exclude_id: int | None = None) -> None:
    query = db.query(model).filter(func.lower(model.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{label} with this name already exists")


def ensure_template_type(db: Session, template_type_id: int | None) -> None:
    if template_type_id is None:
        return
    if not db.query(TemplateType.id).filter(TemplateType.id == template_type_id).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid template_type_id")
