from pydantic import BaseModel, field_validator


class NamedRef(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class NameCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class NameUpdate(BaseModel):
    name: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("Name cannot be blank")
        return value.strip() if value else value


class CategoryCreate(NameCreate):
    template_type_id: int | None = None


class CategoryUpdate(NameUpdate):
    template_type_id: int | None = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    template_type_id: int | None = None

    model_config = {"from_attributes": True}


class TemplateRef(BaseModel):
    id: int
    title: str

    model_config = {"from_attributes": True}


class TemplateTypeResponse(BaseModel):
    id: int
    name: str
    sub_categories: list[NamedRef] = []
    templates: list[TemplateRef] = []

    model_config = {"from_attributes": True}
