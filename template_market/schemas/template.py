from datetime import datetime

from pydantic import BaseModel, EmailStr

from template_market.schemas.credit import CreditResponse
from template_market.schemas.taxonomy import NamedRef


class ImageResponse(BaseModel):
    id: int
    image_url: str

    model_config = {"from_attributes": True}


class TemplateResponse(BaseModel):
    id: int
    title: str
    price: float
    description: str | None = None
    version: str | None = None
    user_id: int
    downloads: int
    is_paid: bool
    seo_tags: list[str] = []
    tech_details: list[str] | None = None
    industry_type_id: int | None = None
    template_type_id: int | None = None
    sub_category_id: int | None = None
    software_type_id: int | None = None
    industry_type: NamedRef | None = None
    template_type: NamedRef | None = None
    sub_category: NamedRef | None = None
    software_type: NamedRef | None = None
    credits: list[CreditResponse] = []
    slider_images: list[ImageResponse] = []
    preview_images: list[ImageResponse] = []
    preview_mobile_images: list[ImageResponse] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TemplateSummary(BaseModel):
    id: int
    title: str
    version: str | None = None
    price: float
    template_type: NamedRef | None = None

    model_config = {"from_attributes": True}


class DownloadRequest(BaseModel):
    email: EmailStr | None = None
    name: str | None = None
