from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from template_market.database import get_db
from template_market.models.taxonomy import IndustryType
from template_market.schemas.taxonomy import NameCreate, NameUpdate, NamedRef
from template_market.services.auth_middleware import get_current_admin
from template_market.services.taxonomy_service import ensure_unique_name, get_or_404
from template_market.utils.response import create_response, handle_exception

router = APIRouter(prefix="/industry-type", tags=["Industry Types"])

LABEL = "Industry type"


@router.post("")
def create_industry_type(
    body: NameCreate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    del admin
    try:
        ensure_unique_name(db, IndustryType, body.name, LABEL)
        industry_type = IndustryType(name=body.name)
        db.add(industry_type)
        db.commit()
        db.refresh(industry_type)
        return create_response(
            message="Industry type created",
            data=NamedRef.model_validate(industry_type).model_dump(),
            status_code=status.HTTP_201_CREATED,
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("")
def list_industry_types(db: Session = Depends(get_db)):
    try:
        items = db.query(IndustryType).order_by(IndustryType.name.asc()).all()
        return create_response(
            message="Industry types fetched",
            data=[NamedRef.model_validate(item).model_dump() for item in items],
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/{industry_type_id}")
def get_industry_type(industry_type_id: int, db: Session = Depends(get_db)):
    try:
        industry_type = get_or_404(db, IndustryType, industry_type_id, LABEL)
        return create_response(
            message="Industry type fetched",
            data=NamedRef.model_validate(industry_type).model_dump(),
        )
    except Exception as exc:
        return handle_exception(exc)


@router.put("/{industry_type_id}")
def update_industry_type(
    industry_type_id: int,
    body: NameUpdate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    del admin
    try:
        industry_type = get_or_404(db, IndustryType, industry_type_id, LABEL)
        if body.name:
            ensure_unique_name(db, IndustryType, body.name, LABEL, exclude_id=industry_type.id)
            industry_type.name = body.name
        db.commit()
        db.refresh(industry_type)
        return create_response(
            message="Industry type updated",
            data=NamedRef.model_validate(industry_type).model_dump(),
        )
    except Exception as exc:
        return handle_exception(exc)


@router.delete("/{industry_type_id}")
def delete_industry_type(
    industry_type_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    del admin
    try:
        industry_type = get_or_404(db, IndustryType, industry_type_id, LABEL)
        db.delete(industry_type)
        db.commit()
        return create_response(message="Industry type deleted", data={"id": industry_type_id})
    except Exception as exc:
        return handle_exception(exc)
