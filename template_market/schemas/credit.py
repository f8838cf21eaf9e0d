from pydantic import BaseModel


class CreditBase(BaseModel):
    fonts: list[str] | None = None
    images: list[str] | None = None
    icons: list[str] | None = None
    illustrations: list[str] | None = None


class CreditCreate(CreditBase):
    template_id: int


class CreditUpdate(CreditBase):
    pass


class CreditResponse(CreditBase):
    id: int
    template_id: int

    model_config = {"from_attributes": True}
