import enum

from sqlalchemy import Column, DateTime, Enum, Integer, String
from sqlalchemy.orm import relationship

from template_market.config import settings
from template_market.database import Base
from template_market.utils.clock import utcnow


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    password = Column(String(255), nullable=False)  # bcrypt hash

    # Current session token; cleared on logout and password reset
    token = Column(String, nullable=True)
    # Set once the current address is confirmed during an email change
    email_change_verified_until = Column(DateTime, nullable=True)

    profile_img = Column(String(2048), nullable=True)
    number = Column(String(32), nullable=True)
    free_downloads = Column(Integer, nullable=False, default=settings.DEFAULT_FREE_DOWNLOADS)
    role = Column(Enum(Role), nullable=False, default=Role.USER)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    templates = relationship(
        "Template",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    download_history = relationship(
        "DownloadHistory",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
