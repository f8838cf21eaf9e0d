import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from template_market.database import get_db
from template_market.models.template import PreviewImage, PreviewMobileImage, SliderImage
from template_market.models.user import User
from template_market.services.auth_middleware import get_current_user
from template_market.services.firebase_service import FirebaseStorage, get_storage
from template_market.services.taxonomy_service import get_or_404
from template_market.services.template_service import TemplateService
from template_market.utils.response import create_response, handle_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/media", tags=["Media"])


def _delete_image(model, label: str, image_id: int, db: Session, user: User, storage: FirebaseStorage):
    image = get_or_404(db, model, image_id, label)
    TemplateService.ensure_can_edit(image.template, user)

    url = image.image_url
    template_id = image.template_id
    db.delete(image)
    db.commit()
    TemplateService(db, storage).remove_files([url])
    logger.info("%s %s removed from template %s", label, image_id, template_id)
    return create_response(message=f"{label} deleted", data={"id": image_id})


@router.delete("/slider-images/{image_id}")
def delete_slider_image(
    image_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: FirebaseStorage = Depends(get_storage),
):
    try:
        return _delete_image(SliderImage, "Slider image", image_id, db, current_user, storage)
    except Exception as exc:
        return handle_exception(exc)


@router.delete("/preview-images/{image_id}")
def delete_preview_image(
    image_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: FirebaseStorage = Depends(get_storage),
):
    try:
        return _delete_image(PreviewImage, "Preview image", image_id, db, current_user, storage)
    except Exception as exc:
        return handle_exception(exc)


@router.delete("/preview-mobile-images/{image_id}")
def delete_preview_mobile_image(
    image_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: FirebaseStorage = Depends(get_storage),
):
    try:
        return _delete_image(PreviewMobileImage, "Preview mobile image", image_id, db, current_user, storage)
    except Exception as exc:
        return handle_exception(exc)
