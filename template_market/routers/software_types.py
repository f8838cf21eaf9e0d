from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from template_market.database import get_db
from template_market.models.taxonomy import SoftwareType
from template_market.schemas.taxonomy import CategoryCreate, CategoryResponse, CategoryUpdate
from template_market.services.auth_middleware import get_current_admin
from template_market.services.taxonomy_service import ensure_template_type, ensure_unique_name, get_or_404
from template_market.utils.response import create_response, handle_exception

router = APIRouter(prefix="/software-types", tags=["Software Types"])

LABEL = "Software type"


def _payload(item: SoftwareType) -> dict:
    return CategoryResponse.model_validate(item).model_dump()


@router.post("")
def create_software_type(
    body: CategoryCreate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    del admin
    try:
        ensure_unique_name(db, SoftwareType, body.name, LABEL)
        ensure_template_type(db, body.template_type_id)
        software_type = SoftwareType(name=body.name, template_type_id=body.template_type_id)
        db.add(software_type)
        db.commit()
        db.refresh(software_type)
        return create_response(
            message="Software type created",
            data=_payload(software_type),
            status_code=status.HTTP_201_CREATED,
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("")
def list_software_types(db: Session = Depends(get_db)):
    try:
        items = db.query(SoftwareType).order_by(SoftwareType.name.asc()).all()
        return create_response(message="Software types fetched", data=[_payload(item) for item in items])
    except Exception as exc:
        return handle_exception(exc)


@router.get("/{template_type_id}")
def software_types_for_template_type(template_type_id: int, db: Session = Depends(get_db)):
    try:
        items = (
            db.query(SoftwareType)
            .filter(SoftwareType.template_type_id == template_type_id)
            .order_by(SoftwareType.name.asc())
            .all()
        )
        return create_response(message="Software types fetched", data=[_payload(item) for item in items])
    except Exception as exc:
        return handle_exception(exc)


@router.put("/{software_type_id}")
def update_software_type(
    software_type_id: int,
    body: CategoryUpdate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    del admin
    try:
        software_type = get_or_404(db, SoftwareType, software_type_id, LABEL)
        if body.name:
            ensure_unique_name(db, SoftwareType, body.name, LABEL, exclude_id=software_type.id)
            software_type.name = body.name
        if "template_type_id" in body.model_fields_set:
            ensure_template_type(db, body.template_type_id)
            software_type.template_type_id = body.template_type_id
        db.commit()
        db.refresh(software_type)
        return create_response(message="Software type updated", data=_payload(software_type))
    except Exception as exc:
        return handle_exception(exc)


@router.delete("/{software_type_id}")
def delete_software_type(
    software_type_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    del admin
    try:
        software_type = get_or_404(db, SoftwareType, software_type_id, LABEL)
        db.delete(software_type)
        db.commit()
        return create_response(message="Software type deleted", data={"id": software_type_id})
    except Exception as exc:
        return handle_exception(exc)
