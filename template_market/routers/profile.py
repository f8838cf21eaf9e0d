import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from template_market.config import settings
from template_market.database import get_db
from template_market.models.user import User
from template_market.schemas.download import DownloadHistoryResponse
from template_market.schemas.user import FreeDownloadResponse, ProfileResponse
from template_market.services.auth_middleware import get_current_user
from template_market.services.download_service import (
    DownloadCategory,
    DownloadSort,
    build_download_service,
)
from template_market.services.email_services import EmailDispatcher, get_email_dispatcher
from template_market.services.firebase_service import FirebaseStorage, get_storage
from template_market.utils.response import create_response, handle_exception
from template_market.utils.uploads import IMAGE_TYPES, read_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profile"])

PROFILE_IMAGE_FOLDER = "profileImg"


def _remove_stored_file(storage: FirebaseStorage, url: str | None) -> None:
    if not url:
        return
    try:
        storage.delete(url)
    except Exception:
        logger.exception("Failed to delete stored file %s", url)


@router.get("/get-user")
def get_user(current_user: User = Depends(get_current_user)):
    try:
        return create_response(
            message="User fetched successfully",
            data=ProfileResponse.model_validate(current_user).model_dump(),
            status_code=status.HTTP_200_OK,
        )
    except Exception as exc:
        return handle_exception(exc)


@router.delete("/delete-account")
def delete_account(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: FirebaseStorage = Depends(get_storage),
):
    try:
        stored_urls = [current_user.profile_img]
        for template in current_user.templates:
            stored_urls += template.asset_urls()
        user_id = current_user.id

        # Owned templates, their assets and all download history go with the user.
        db.delete(current_user)
        db.commit()
        for url in stored_urls:
            _remove_stored_file(storage, url)

        logger.info("Deleted account %s", user_id)
        return create_response(
            message="Account deleted successfully",
            data={"deleted": True},
            status_code=status.HTTP_200_OK,
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/free-download")
def free_download(current_user: User = Depends(get_current_user)):
    try:
        return create_response(
            message="Free downloads fetched",
            data=FreeDownloadResponse.model_validate(current_user).model_dump(),
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/get-user-downloads")
def get_user_downloads(
    page: int = Query(1, ge=1),
    sort: DownloadSort = Query(DownloadSort.all),
    category: DownloadCategory = Query(DownloadCategory.all),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    mailer: EmailDispatcher = Depends(get_email_dispatcher),
):
    try:
        result = build_download_service(db, mailer).history(current_user, page=page, sort=sort, category=category)
        return create_response(
            message="Downloads fetched",
            data={
                "downloads": [
                    DownloadHistoryResponse.model_validate(row).model_dump() for row in result["downloads"]
                ],
                "pagination": result["pagination"],
            },
        )
    except Exception as exc:
        return handle_exception(exc)


@router.put("/user/update-image")
async def update_image(
    profile_img: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: FirebaseStorage = Depends(get_storage),
):
    try:
        blob = await read_upload(profile_img, IMAGE_TYPES, settings.PROFILE_IMAGE_MAX_BYTES, "profile_img")
        if not blob.data:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file upload")

        previous = current_user.profile_img
        current_user.profile_img = storage.upload(blob.data, blob.filename, PROFILE_IMAGE_FOLDER, blob.content_type)
        db.commit()
        db.refresh(current_user)
        _remove_stored_file(storage, previous)

        return create_response(
            message="Profile image updated successfully",
            data=ProfileResponse.model_validate(current_user).model_dump(),
        )
    except Exception as exc:
        return handle_exception(exc)


@router.delete("/user/remove-image")
def remove_image(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: FirebaseStorage = Depends(get_storage),
):
    try:
        if not current_user.profile_img:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No profile image to remove")

        storage.delete(current_user.profile_img)
        current_user.profile_img = None
        db.commit()
        db.refresh(current_user)

        return create_response(
            message="Profile image removed successfully",
            data=ProfileResponse.model_validate(current_user).model_dump(),
        )
    except Exception as exc:
        return handle_exception(exc)
