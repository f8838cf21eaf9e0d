from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from template_market.database import Base
from template_market.utils.clock import utcnow


class DownloadHistory(Base):
    __tablename__ = "download_history"
    __table_args__ = (
        Index("ix_download_history_user_template", "user_id", "template_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    email = Column(String(255), nullable=False, index=True)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False)
    downloaded_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    user = relationship("User", back_populates="download_history")
    template = relationship("Template", back_populates="download_history")
