import json
import logging
import math
from dataclasses import dataclass, field

from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlalchemy import and_, or_
from sqlalchemy.orm import Query, Session, selectinload

from template_market.models.taxonomy import IndustryType, SoftwareType, SubCategory, TemplateType
from template_market.models.template import (
    Credit,
    PreviewImage,
    PreviewMobileImage,
    SliderImage,
    SourceFile,
    Template,
)
from template_market.models.user import User
from template_market.schemas.credit import CreditBase
from template_market.services.firebase_service import FirebaseStorage
from template_market.utils.uploads import UploadedBlob

logger = logging.getLogger(__name__)

# Upload field name -> (child model, url column); also used as the storage folder
FILE_FIELDS = {
    "slider_images": (SliderImage, "image_url"),
    "preview_images": (PreviewImage, "image_url"),
    "preview_mobile_images": (PreviewMobileImage, "image_url"),
    "source_files": (SourceFile, "file_url"),
}

REFERENCE_FIELDS = {
    "industry_type_id": IndustryType,
    "template_type_id": TemplateType,
    "sub_category_id": SubCategory,
    "software_type_id": SoftwareType,
}


def parse_json_list(raw: str | None, field_name: str) -> list:
    if raw is None or raw == "":
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field_name} must be a valid JSON array",
        ) from exc
    if not isinstance(value, list):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{field_name} must be a JSON array")
    return value


def parse_string_list(raw: str | None, field_name: str) -> list[str]:
    values = parse_json_list(raw, field_name)
    if not all(isinstance(item, str) for item in values):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{field_name} must contain only strings")
    return values


def parse_credits(raw: str | None) -> list[CreditBase]:
    try:
        return [CreditBase.model_validate(item) for item in parse_json_list(raw, "credits")]
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="credits entries are invalid") from exc


def parse_id_list(raw: str | None, field_name: str) -> list[int]:
    if not raw:
        return []
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field_name} must be a comma separated list of ids",
        ) from exc


def parse_price_ranges(raw: str | None) -> list[tuple[float, float]]:
    """Parse ``"0-10,50-100"`` into ``[(0.0, 10.0), (50.0, 100.0)]``."""
    if not raw:
        return []
    ranges = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            low, high = part.split("-", 1)
            ranges.append((float(low), float(high)))
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid price range: {part}",
            ) from exc
    return ranges


@dataclass
class TemplateFilters:
    industry_type_ids: list[int] = field(default_factory=list)
    template_type_id: int | None = None
    software_type_ids: list[int] = field(default_factory=list)
    sub_category_ids: list[int] = field(default_factory=list)
    is_paid: bool | None = None
    price_ranges: list[tuple[float, float]] = field(default_factory=list)
    search: str | None = None


def with_relations(query: Query) -> Query:
    return query.options(
        selectinload(Template.credits),
        selectinload(Template.slider_images),
        selectinload(Template.preview_images),
        selectinload(Template.preview_mobile_images),
        selectinload(Template.industry_type),
        selectinload(Template.template_type),
        selectinload(Template.sub_category),
        selectinload(Template.software_type),
    )


class TemplateService:
    def __init__(self, db: Session, storage: FirebaseStorage):
        self.db = db
        self.storage = storage

    # ---------------- Lookups ----------------
    def get_or_404(self, template_id: int) -> Template:
        template = with_relations(self.db.query(Template)).filter(Template.id == template_id).first()
        if not template:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
        return template

    @staticmethod
    def ensure_can_edit(template: Template, user: User) -> None:
        if template.user_id != user.id and not user.is_admin:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not allowed to modify this template")

    def _check_references(self, values: dict) -> None:
        for field_name, model in REFERENCE_FIELDS.items():
            ref_id = values.get(field_name)
            if ref_id is None:
                continue
            if not self.db.query(model.id).filter(model.id == ref_id).first():
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {field_name}")

    # ---------------- Storage ----------------
    def _upload_all(self, uploads: dict[str, list[UploadedBlob]], uploaded: list[str]) -> dict[str, list[str]]:
        urls: dict[str, list[str]] = {}
        for field_name, blobs in uploads.items():
            if not blobs:
                continue
            urls[field_name] = []
            for blob in blobs:
                url = self.storage.upload(blob.data, blob.filename, field_name, blob.content_type)
                uploaded.append(url)
                urls[field_name].append(url)
        return urls

    def remove_files(self, urls: list[str]) -> None:
        for url in urls:
            try:
                self.storage.delete(url)
            except Exception:
                logger.exception("Failed to delete stored file %s", url)

    def _attach_files(self, template: Template, urls: dict[str, list[str]]) -> list[str]:
        """Replace each uploaded field's assets; returns the URLs that were replaced."""
        replaced = []
        for field_name, field_urls in urls.items():
            model, column = FILE_FIELDS[field_name]
            existing = getattr(template, field_name)
            replaced += [getattr(item, column) for item in existing]
            setattr(template, field_name, [model(**{column: url}) for url in field_urls])
        return replaced

    # ---------------- Mutations ----------------
    def create(self, owner: User, values: dict, credits: list[CreditBase], uploads: dict[str, list[UploadedBlob]]) -> Template:
        self._check_references(values)
        uploaded: list[str] = []
        try:
            urls = self._upload_all(uploads, uploaded)
            template = Template(user_id=owner.id, **values)
            template.credits = [Credit(**credit.model_dump()) for credit in credits]
            self._attach_files(template, urls)
            self.db.add(template)
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.remove_files(uploaded)
            raise

        logger.info("Template %s created by user %s", template.id, owner.id)
        return self.get_or_404(template.id)

    def update(
        self,
        template: Template,
        values: dict,
        credits: list[CreditBase] | None,
        uploads: dict[str, list[UploadedBlob]],
    ) -> Template:
        self._check_references(values)
        uploaded: list[str] = []
        try:
            urls = self._upload_all(uploads, uploaded)
            for field_name, value in values.items():
                setattr(template, field_name, value)
            if credits is not None:
                template.credits = [Credit(**credit.model_dump()) for credit in credits]
            replaced = self._attach_files(template, urls)
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.remove_files(uploaded)
            raise

        self.remove_files(replaced)
        logger.info("Template %s updated", template.id)
        return self.get_or_404(template.id)

    def delete(self, template: Template) -> None:
        urls = template.asset_urls()
        template_id = template.id
        self.db.delete(template)
        self.db.commit()
        self.remove_files(urls)
        logger.info("Template %s deleted", template_id)

    # ---------------- Listings ----------------
    def search(self, filters: TemplateFilters, page: int = 1, limit: int = 12) -> dict:
        query = self.db.query(Template)

        if filters.industry_type_ids:
            query = query.filter(Template.industry_type_id.in_(filters.industry_type_ids))
        if filters.template_type_id is not None:
            query = query.filter(Template.template_type_id == filters.template_type_id)
        if filters.software_type_ids:
            query = query.filter(Template.software_type_id.in_(filters.software_type_ids))
        if filters.sub_category_ids:
            query = query.filter(Template.sub_category_id.in_(filters.sub_category_ids))
        if filters.is_paid is not None:
            query = query.filter(Template.is_paid.is_(filters.is_paid))
        if filters.price_ranges:
            query = query.filter(
                or_(*[and_(Template.price >= low, Template.price <= high) for low, high in filters.price_ranges])
            )
        if filters.search:
            query = query.filter(Template.title.ilike(f"%{filters.search}%"))

        total = query.count()
        page = max(page, 1)
        limit = max(limit, 1)
        templates = (
            with_relations(query)
            .order_by(Template.created_at.desc(), Template.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "templates": templates,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "total_pages": math.ceil(total / limit) if total else 0,
            },
        }

    def newest(self, limit: int) -> list[Template]:
        return (
            with_relations(self.db.query(Template))
            .order_by(Template.created_at.desc(), Template.id.desc())
            .limit(limit)
            .all()
        )

    def most_downloaded(self, limit: int) -> list[Template]:
        return (
            with_relations(self.db.query(Template))
            .order_by(Template.downloads.desc(), Template.id.desc())
            .limit(limit)
            .all()
        )

    def by_title(self, title: str) -> list[Template]:
        return (
            with_relations(self.db.query(Template))
            .filter(Template.title.ilike(f"%{title}%"))
            .order_by(Template.created_at.desc())
            .all()
        )

    def by_owner(self, user_id: int) -> list[Template]:
        return (
            with_relations(self.db.query(Template))
            .filter(Template.user_id == user_id)
            .order_by(Template.created_at.desc())
            .all()
        )

    def summaries(self) -> list[Template]:
        return (
            self.db.query(Template)
            .options(selectinload(Template.template_type))
            .order_by(Template.created_at.desc())
            .all()
        )
