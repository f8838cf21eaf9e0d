from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, selectinload

from template_market.database import get_db
from template_market.models.taxonomy import TemplateType
from template_market.schemas.taxonomy import NameCreate, NameUpdate, NamedRef, TemplateTypeResponse
from template_market.services.auth_middleware import get_current_admin
from template_market.services.taxonomy_service import ensure_unique_name, get_or_404
from template_market.utils.response import create_response, handle_exception

router = APIRouter(prefix="/template-types", tags=["Template Types"])

LABEL = "Template type"


def _with_children(db: Session):
    return db.query(TemplateType).options(
        selectinload(TemplateType.sub_categories),
        selectinload(TemplateType.templates),
    )


@router.post("")
def create_template_type(
    body: NameCreate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    del admin
    try:
        ensure_unique_name(db, TemplateType, body.name, LABEL)
        template_type = TemplateType(name=body.name)
        db.add(template_type)
        db.commit()
        db.refresh(template_type)
        return create_response(
            message="Template type created",
            data=NamedRef.model_validate(template_type).model_dump(),
            status_code=status.HTTP_201_CREATED,
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("")
def list_template_types(db: Session = Depends(get_db)):
    try:
        template_types = _with_children(db).order_by(TemplateType.name.asc()).all()
        return create_response(
            message="Template types fetched",
            data=[TemplateTypeResponse.model_validate(item).model_dump() for item in template_types],
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/{template_type_id}")
def get_template_type(template_type_id: int, db: Session = Depends(get_db)):
    try:
        template_type = get_or_404(db, TemplateType, template_type_id, LABEL)
        return create_response(
            message="Template type fetched",
            data=TemplateTypeResponse.model_validate(template_type).model_dump(),
        )
    except Exception as exc:
        return handle_exception(exc)


@router.put("/{template_type_id}")
def update_template_type(
    template_type_id: int,
    body: NameUpdate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    del admin
    try:
        template_type = get_or_404(db, TemplateType, template_type_id, LABEL)
        if body.name:
            ensure_unique_name(db, TemplateType, body.name, LABEL, exclude_id=template_type.id)
            template_type.name = body.name
        db.commit()
        db.refresh(template_type)
        return create_response(
            message="Template type updated",
            data=NamedRef.model_validate(template_type).model_dump(),
        )
    except Exception as exc:
        return handle_exception(exc)


@router.delete("/{template_type_id}")
def delete_template_type(
    template_type_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    del admin
    try:
        template_type = get_or_404(db, TemplateType, template_type_id, LABEL)
        db.delete(template_type)
        db.commit()
        return create_response(message="Template type deleted", data={"id": template_type_id})
    except Exception as exc:
        return handle_exception(exc)
