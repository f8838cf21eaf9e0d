from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from template_market.database import get_db
from template_market.models.template import Credit, Template
from template_market.models.user import User
from template_market.schemas.credit import CreditCreate, CreditResponse, CreditUpdate
from template_market.services.auth_middleware import get_current_user
from template_market.services.taxonomy_service import get_or_404
from template_market.services.template_service import TemplateService
from template_market.utils.response import create_response, handle_exception

router = APIRouter(prefix="/credits", tags=["Credits"])


def _payload(credit: Credit) -> dict:
    return CreditResponse.model_validate(credit).model_dump()


@router.post("")
def create_credit(
    body: CreditCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        template = get_or_404(db, Template, body.template_id, "Template")
        TemplateService.ensure_can_edit(template, current_user)

        credit = Credit(**body.model_dump())
        db.add(credit)
        db.commit()
        db.refresh(credit)
        return create_response(
            message="Credit created",
            data=_payload(credit),
            status_code=status.HTTP_201_CREATED,
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/{template_id}")
def list_credits(
    template_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        get_or_404(db, Template, template_id, "Template")
        credits = db.query(Credit).filter(Credit.template_id == template_id).order_by(Credit.id.asc()).all()
        return create_response(message="Credits fetched", data=[_payload(credit) for credit in credits])
    except Exception as exc:
        return handle_exception(exc)


@router.put("/{credit_id}")
def update_credit(
    credit_id: int,
    body: CreditUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        credit = get_or_404(db, Credit, credit_id, "Credit")
        TemplateService.ensure_can_edit(credit.template, current_user)

        for field, value in body.model_dump(exclude_unset=True).items():
            setattr(credit, field, value)
        db.commit()
        db.refresh(credit)
        return create_response(message="Credit updated", data=_payload(credit))
    except Exception as exc:
        return handle_exception(exc)


@router.delete("/{credit_id}")
def delete_credit(
    credit_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        credit = get_or_404(db, Credit, credit_id, "Credit")
        TemplateService.ensure_can_edit(credit.template, current_user)

        db.delete(credit)
        db.commit()
        return create_response(message="Credit deleted", data={"id": credit_id})
    except Exception as exc:
        return handle_exception(exc)
