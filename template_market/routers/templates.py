from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from template_market.config import settings
from template_market.database import get_db
from template_market.models.user import User
from template_market.schemas.template import DownloadRequest, TemplateResponse, TemplateSummary
from template_market.services.auth_middleware import get_current_user, get_optional_user
from template_market.services.download_service import build_download_service
from template_market.services.email_services import EmailDispatcher, get_email_dispatcher
from template_market.services.firebase_service import FirebaseStorage, get_storage
from template_market.services.template_service import (
    FILE_FIELDS,
    TemplateFilters,
    TemplateService,
    parse_credits,
    parse_id_list,
    parse_price_ranges,
    parse_string_list,
)
from template_market.utils.response import create_response, handle_exception
from template_market.utils.uploads import TEMPLATE_FILE_TYPES, read_uploads

router = APIRouter(tags=["Templates"])

FEATURED_COUNT = 6
LATEST_COUNT = 10
POPULAR_COUNT = 10


def get_template_service(
    db: Session = Depends(get_db),
    storage: FirebaseStorage = Depends(get_storage),
) -> TemplateService:
    return TemplateService(db, storage)


def _template_payload(template) -> dict:
    return TemplateResponse.model_validate(template).model_dump()


async def _collect_uploads(files_by_field: dict[str, list[UploadFile] | None]) -> dict:
    uploads = {}
    for field_name in FILE_FIELDS:
        uploads[field_name] = await read_uploads(
            files_by_field.get(field_name),
            TEMPLATE_FILE_TYPES,
            settings.TEMPLATE_FILE_MAX_BYTES,
            settings.TEMPLATE_FILES_PER_FIELD,
            field_name,
        )
    return uploads


@router.post("/templates")
async def create_template(
    name: str = Form(...),
    dollar_price: float = Form(0),
    description: str | None = Form(None),
    industry_type_id: int | None = Form(None),
    template_type_id: int | None = Form(None),
    sub_category_id: int | None = Form(None),
    software_type_id: int | None = Form(None),
    version: str | None = Form(None),
    is_paid: bool = Form(False),
    seo_tags: str = Form(...),
    credits: str = Form(...),
    tech_details: str = Form(...),
    slider_images: list[UploadFile] | None = File(None),
    preview_images: list[UploadFile] | None = File(None),
    preview_mobile_images: list[UploadFile] | None = File(None),
    source_files: list[UploadFile] | None = File(None),
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    try:
        if not name.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Template name is required")
        if dollar_price < 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Price cannot be negative")

        values = {
            "title": name.strip(),
            "price": dollar_price,
            "description": description,
            "version": version,
            "is_paid": is_paid,
            "seo_tags": parse_string_list(seo_tags, "seo_tags"),
            "tech_details": parse_string_list(tech_details, "tech_details"),
            "industry_type_id": industry_type_id,
            "template_type_id": template_type_id,
            "sub_category_id": sub_category_id,
            "software_type_id": software_type_id,
        }
        credit_entries = parse_credits(credits)
        uploads = await _collect_uploads({
            "slider_images": slider_images,
            "preview_images": preview_images,
            "preview_mobile_images": preview_mobile_images,
            "source_files": source_files,
        })

        template = service.create(current_user, values, credit_entries, uploads)
        return create_response(
            message="Template created successfully",
            data=_template_payload(template),
            status_code=status.HTTP_201_CREATED,
        )
    except Exception as exc:
        return handle_exception(exc)


@router.put("/templates/{template_id}")
async def update_template(
    template_id: int,
    name: str | None = Form(None),
    dollar_price: float | None = Form(None),
    description: str | None = Form(None),
    industry_type_id: int | None = Form(None),
    template_type_id: int | None = Form(None),
    sub_category_id: int | None = Form(None),
    software_type_id: int | None = Form(None),
    version: str | None = Form(None),
    is_paid: bool | None = Form(None),
    seo_tags: str | None = Form(None),
    credits: str | None = Form(None),
    tech_details: str | None = Form(None),
    slider_images: list[UploadFile] | None = File(None),
    preview_images: list[UploadFile] | None = File(None),
    preview_mobile_images: list[UploadFile] | None = File(None),
    source_files: list[UploadFile] | None = File(None),
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    try:
        template = service.get_or_404(template_id)
        service.ensure_can_edit(template, current_user)

        values = {
            "description": description,
            "version": version,
            "is_paid": is_paid,
            "industry_type_id": industry_type_id,
            "template_type_id": template_type_id,
            "sub_category_id": sub_category_id,
            "software_type_id": software_type_id,
        }
        if name is not None:
            if not name.strip():
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Template name cannot be blank")
            values["title"] = name.strip()
        if dollar_price is not None:
            if dollar_price < 0:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Price cannot be negative")
            values["price"] = dollar_price
        if seo_tags is not None:
            values["seo_tags"] = parse_string_list(seo_tags, "seo_tags")
        if tech_details is not None:
            values["tech_details"] = parse_string_list(tech_details, "tech_details")
        values = {key: value for key, value in values.items() if value is not None}

        credit_entries = parse_credits(credits) if credits is not None else None
        uploads = await _collect_uploads({
            "slider_images": slider_images,
            "preview_images": preview_images,
            "preview_mobile_images": preview_mobile_images,
            "source_files": source_files,
        })

        template = service.update(template, values, credit_entries, uploads)
        return create_response(
            message="Template updated successfully",
            data=_template_payload(template),
            status_code=status.HTTP_200_OK,
        )
    except Exception as exc:
        return handle_exception(exc)


@router.delete("/templates/{template_id}")
def delete_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    try:
        template = service.get_or_404(template_id)
        service.ensure_can_edit(template, current_user)
        service.delete(template)
        return create_response(
            message="Template deleted successfully",
            data={"id": template_id},
            status_code=status.HTTP_200_OK,
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/templates")
def list_templates(
    industry_type_ids: str | None = Query(None, description="Comma separated industry type ids."),
    template_type_id: int | None = Query(None),
    software_type_ids: str | None = Query(None, description="Comma separated software type ids."),
    sub_category_ids: str | None = Query(None, description="Comma separated sub category ids."),
    is_paid: bool | None = Query(None),
    price_ranges: str | None = Query(None, description="Comma separated min-max pairs, e.g. 0-10,50-100."),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    service: TemplateService = Depends(get_template_service),
):
    try:
        filters = TemplateFilters(
            industry_type_ids=parse_id_list(industry_type_ids, "industry_type_ids"),
            template_type_id=template_type_id,
            software_type_ids=parse_id_list(software_type_ids, "software_type_ids"),
            sub_category_ids=parse_id_list(sub_category_ids, "sub_category_ids"),
            is_paid=is_paid,
            price_ranges=parse_price_ranges(price_ranges),
            search=search,
        )
        result = service.search(filters, page=page, limit=limit)
        return create_response(
            message="Templates fetched",
            data={
                "templates": [_template_payload(template) for template in result["templates"]],
                "pagination": result["pagination"],
            },
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/all-templates")
def all_templates(service: TemplateService = Depends(get_template_service)):
    try:
        templates = service.summaries()
        return create_response(
            message="Templates fetched",
            data=[TemplateSummary.model_validate(template).model_dump() for template in templates],
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/feature-templates")
def feature_templates(service: TemplateService = Depends(get_template_service)):
    try:
        templates = service.newest(FEATURED_COUNT)
        return create_response(
            message="Featured templates fetched",
            data=[_template_payload(template) for template in templates],
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/templates/latest")
def latest_templates(service: TemplateService = Depends(get_template_service)):
    try:
        templates = service.newest(LATEST_COUNT)
        return create_response(
            message="Latest templates fetched",
            data=[_template_payload(template) for template in templates],
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/templates/popular")
def popular_templates(service: TemplateService = Depends(get_template_service)):
    try:
        templates = service.most_downloaded(POPULAR_COUNT)
        return create_response(
            message="Popular templates fetched",
            data=[_template_payload(template) for template in templates],
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/templates/search")
def search_templates(
    title: str = Query(..., min_length=1),
    service: TemplateService = Depends(get_template_service),
):
    try:
        templates = service.by_title(title)
        return create_response(
            message="Templates fetched",
            data=[_template_payload(template) for template in templates],
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/templates-by-id/{template_id}")
def get_template(template_id: int, service: TemplateService = Depends(get_template_service)):
    try:
        template = service.get_or_404(template_id)
        return create_response(message="Template fetched", data=_template_payload(template))
    except Exception as exc:
        return handle_exception(exc)


@router.get("/templates-by-userid/{user_id}")
def templates_by_user(user_id: int, service: TemplateService = Depends(get_template_service)):
    try:
        templates = service.by_owner(user_id)
        return create_response(
            message="Templates fetched",
            data=[_template_payload(template) for template in templates],
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/dashboard/templates-by-userid")
def dashboard_templates(
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    try:
        templates = service.by_owner(current_user.id)
        return create_response(
            message="Templates fetched",
            data=[_template_payload(template) for template in templates],
        )
    except Exception as exc:
        return handle_exception(exc)


@router.post("/templates/{template_id}/download")
def download_template(
    template_id: int,
    body: DownloadRequest | None = None,
    current_user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
    mailer: EmailDispatcher = Depends(get_email_dispatcher),
):
    try:
        body = body or DownloadRequest()
        result = build_download_service(db, mailer).download(
            template_id,
            current_user,
            email=body.email,
            name=body.name,
        )
        return create_response(
            message="Download link sent",
            data={
                "url": result.url,
                "email": result.email,
                "email_sent": result.email_sent,
                "free_downloads": result.free_downloads,
            },
        )
    except Exception as exc:
        return handle_exception(exc)
