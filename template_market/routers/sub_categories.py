from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from template_market.database import get_db
from template_market.models.taxonomy import SoftwareType, SubCategory
from template_market.schemas.taxonomy import CategoryCreate, CategoryResponse, CategoryUpdate
from template_market.services.auth_middleware import get_current_admin
from template_market.services.taxonomy_service import ensure_template_type, ensure_unique_name, get_or_404
from template_market.utils.response import create_response, handle_exception

router = APIRouter(prefix="/sub-categories", tags=["Sub Categories"])

LABEL = "Sub category"


def _payload(item: SubCategory) -> dict:
    return CategoryResponse.model_validate(item).model_dump()


@router.post("")
def create_sub_category(
    body: CategoryCreate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    del admin
    try:
        ensure_unique_name(db, SubCategory, body.name, LABEL)
        ensure_template_type(db, body.template_type_id)
        sub_category = SubCategory(name=body.name, template_type_id=body.template_type_id)
        db.add(sub_category)
        db.commit()
        db.refresh(sub_category)
        return create_response(
            message="Sub category created",
            data=_payload(sub_category),
            status_code=status.HTTP_201_CREATED,
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("")
def list_sub_categories(db: Session = Depends(get_db)):
    try:
        items = db.query(SubCategory).order_by(SubCategory.name.asc()).all()
        return create_response(message="Sub categories fetched", data=[_payload(item) for item in items])
    except Exception as exc:
        return handle_exception(exc)


@router.get("/{template_type_id}")
def sub_categories_for_template_type(template_type_id: int, db: Session = Depends(get_db)):
    """Sub categories and software types that belong to one template type."""
    try:
        sub_categories = (
            db.query(SubCategory)
            .filter(SubCategory.template_type_id == template_type_id)
            .order_by(SubCategory.name.asc())
            .all()
        )
        software_categories = (
            db.query(SoftwareType)
            .filter(SoftwareType.template_type_id == template_type_id)
            .order_by(SoftwareType.name.asc())
            .all()
        )
        if not sub_categories and not software_categories:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No sub categories found for this template type",
            )
        return create_response(
            message="Sub categories fetched",
            data={
                "sub_categories": [_payload(item) for item in sub_categories],
                "software_categories": [CategoryResponse.model_validate(item).model_dump() for item in software_categories],
            },
        )
    except Exception as exc:
        return handle_exception(exc)


@router.put("/{sub_category_id}")
def update_sub_category(
    sub_category_id: int,
    body: CategoryUpdate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    del admin
    try:
        sub_category = get_or_404(db, SubCategory, sub_category_id, LABEL)
        if body.name:
            ensure_unique_name(db, SubCategory, body.name, LABEL, exclude_id=sub_category.id)
            sub_category.name = body.name
        if "template_type_id" in body.model_fields_set:
            ensure_template_type(db, body.template_type_id)
            sub_category.template_type_id = body.template_type_id
        db.commit()
        db.refresh(sub_category)
        return create_response(message="Sub category updated", data=_payload(sub_category))
    except Exception as exc:
        return handle_exception(exc)


@router.delete("/{sub_category_id}")
def delete_sub_category(
    sub_category_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    del admin
    try:
        sub_category = get_or_404(db, SubCategory, sub_category_id, LABEL)
        db.delete(sub_category)
        db.commit()
        return create_response(message="Sub category deleted", data={"id": sub_category_id})
    except Exception as exc:
        return handle_exception(exc)
