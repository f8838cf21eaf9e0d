from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from template_market.database import Base
from template_market.utils.clock import utcnow


class Template(Base):
    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    price = Column(Float, nullable=False, default=0)
    description = Column(Text, nullable=True)
    version = Column(String(50), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    downloads = Column(Integer, nullable=False, default=0)
    is_paid = Column(Boolean, nullable=False, default=False)
    seo_tags = Column(JSON, nullable=False, default=list)
    tech_details = Column(JSON, nullable=True)

    industry_type_id = Column(Integer, ForeignKey("industry_types.id", ondelete="SET NULL"), nullable=True)
    template_type_id = Column(Integer, ForeignKey("template_types.id", ondelete="SET NULL"), nullable=True)
    sub_category_id = Column(Integer, ForeignKey("sub_categories.id", ondelete="SET NULL"), nullable=True)
    software_type_id = Column(Integer, ForeignKey("software_types.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="templates")
    industry_type = relationship("IndustryType", back_populates="templates")
    template_type = relationship("TemplateType", back_populates="templates")
    sub_category = relationship("SubCategory", back_populates="templates")
    software_type = relationship("SoftwareType", back_populates="templates")

    credits = relationship("Credit", back_populates="template", cascade="all, delete-orphan")
    slider_images = relationship("SliderImage", back_populates="template", cascade="all, delete-orphan")
    preview_images = relationship("PreviewImage", back_populates="template", cascade="all, delete-orphan")
    preview_mobile_images = relationship(
        "PreviewMobileImage",
        back_populates="template",
        cascade="all, delete-orphan",
    )
    source_files = relationship("SourceFile", back_populates="template", cascade="all, delete-orphan")
    download_history = relationship("DownloadHistory", back_populates="template", cascade="all, delete-orphan")

    def asset_urls(self) -> list[str]:
        urls = [image.image_url for image in self.slider_images]
        urls += [image.image_url for image in self.preview_images]
        urls += [image.image_url for image in self.preview_mobile_images]
        urls += [source.file_url for source in self.source_files]
        return urls


class Credit(Base):
    __tablename__ = "credits"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    fonts = Column(JSON, nullable=True)
    images = Column(JSON, nullable=True)
    icons = Column(JSON, nullable=True)
    illustrations = Column(JSON, nullable=True)

    template = relationship("Template", back_populates="credits")


class SliderImage(Base):
    __tablename__ = "slider_images"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(Text, nullable=False)

    template = relationship("Template", back_populates="slider_images")


class PreviewImage(Base):
    __tablename__ = "preview_images"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(Text, nullable=False)

    template = relationship("Template", back_populates="preview_images")


class PreviewMobileImage(Base):
    __tablename__ = "preview_mobile_images"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(Text, nullable=False)

    template = relationship("Template", back_populates="preview_mobile_images")


class SourceFile(Base):
    __tablename__ = "source_files"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    file_url = Column(Text, nullable=False)

    template = relationship("Template", back_populates="source_files")
