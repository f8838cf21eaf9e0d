from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from template_market.database import Base


class TemplateType(Base):
    __tablename__ = "template_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), unique=True, nullable=False)

    templates = relationship("Template", back_populates="template_type")
    sub_categories = relationship("SubCategory", back_populates="template_type")
    software_types = relationship("SoftwareType", back_populates="template_type")


class SubCategory(Base):
    __tablename__ = "sub_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), unique=True, nullable=False)
    template_type_id = Column(Integer, ForeignKey("template_types.id", ondelete="SET NULL"), nullable=True, index=True)

    template_type = relationship("TemplateType", back_populates="sub_categories")
    templates = relationship("Template", back_populates="sub_category")


class SoftwareType(Base):
    __tablename__ = "software_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), unique=True, nullable=False)
    template_type_id = Column(Integer, ForeignKey("template_types.id", ondelete="SET NULL"), nullable=True, index=True)

    template_type = relationship("TemplateType", back_populates="software_types")
    templates = relationship("Template", back_populates="software_type")


class IndustryType(Base):
    __tablename__ = "industry_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), unique=True, nullable=False)

    templates = relationship("Template", back_populates="industry_type")
