import enum
import re

from pydantic import BaseModel, EmailStr, field_validator, model_validator

from template_market.models.user import Role

PASSWORD_SPECIALS = "!@#$%&*-"


def validate_password_strength(value: str) -> str:
    if not 8 <= len(value) <= 32:
        raise ValueError("Password must be between 8 and 32 characters")
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"\d", value):
        raise ValueError("Password must contain at least one number")
    if not any(ch in PASSWORD_SPECIALS for ch in value):
        raise ValueError(f"Password must contain at least one special character ({PASSWORD_SPECIALS})")
    return value


class RegisterStart(BaseModel):
    name: str
    email: EmailStr
    password: str
    confirm_password: str

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("email")
    @classmethod
    def email_length(cls, value: str) -> str:
        if not 8 <= len(value) <= 40:
            raise ValueError("Email must be between 8 and 40 characters")
        return value

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return validate_password_strength(value)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class RegisterConfirm(RegisterStart):
    otp: str


class RegisterRequest(RegisterStart):
    otp: str | None = None

    def as_step(self) -> RegisterStart:
        if self.otp:
            return RegisterConfirm.model_validate(self.model_dump())
        return RegisterStart.model_validate(self.model_dump(exclude={"otp"}))


class LoginStart(BaseModel):
    email: EmailStr
    password: str


class LoginConfirm(LoginStart):
    otp: str


class LoginRequest(LoginStart):
    otp: str | None = None

    def as_step(self) -> LoginStart:
        if self.otp:
            return LoginConfirm.model_validate(self.model_dump())
        return LoginStart.model_validate(self.model_dump(exclude={"otp"}))


class EmailOnly(BaseModel):
    email: EmailStr


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    otp: str
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return validate_password_strength(value)


class EmailChangeStep(str, enum.Enum):
    none = "none"
    send_current = "send_current"
    verify_current = "verify_current"
    send_new = "send_new"
    verify_new = "verify_new"


class UpdateDetailsRequest(BaseModel):
    name: str | None = None
    number: str | None = None
    current_email: EmailStr | None = None
    new_email: EmailStr | None = None
    otp: str | None = None

    @property
    def step(self) -> EmailChangeStep:
        if self.new_email:
            return EmailChangeStep.verify_new if self.otp else EmailChangeStep.send_new
        if self.current_email:
            return EmailChangeStep.verify_current if self.otp else EmailChangeStep.send_current
        return EmailChangeStep.none


class ProfileResponse(BaseModel):
    id: int
    email: EmailStr
    role: Role
    name: str | None
    profile_img: str | None
    free_downloads: int
    number: str | None

    model_config = {"from_attributes": True}


class FreeDownloadResponse(BaseModel):
    free_downloads: int
    profile_img: str | None

    model_config = {"from_attributes": True}
