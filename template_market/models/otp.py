from sqlalchemy import Column, DateTime, Integer, String

from template_market.database import Base


class OneTimeCode(Base):
    __tablename__ = "otps"

    id = Column(Integer, primary_key=True, index=True)
    # Keyed by email so a code can exist before the account does
    email = Column(String(255), unique=True, index=True, nullable=False)
    code = Column(String(12), nullable=False)
    expires_at = Column(DateTime, nullable=False)
