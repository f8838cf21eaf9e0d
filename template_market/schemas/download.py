from datetime import datetime

from pydantic import BaseModel

from template_market.schemas.template import ImageResponse


class DownloadedTemplate(BaseModel):
    id: int
    title: str
    price: float
    is_paid: bool
    version: str | None = None
    preview_images: list[ImageResponse] = []

    model_config = {"from_attributes": True}


class DownloadHistoryResponse(BaseModel):
    id: int
    template_id: int
    email: str
    downloaded_at: datetime
    template: DownloadedTemplate | None = None

    model_config = {"from_attributes": True}
