import enum
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from template_market.config import Settings
from template_market.models.otp import OneTimeCode
from template_market.services.email_services import EmailDispatcher
from template_market.utils.clock import utcnow

logger = logging.getLogger(__name__)

INVALID_OTP_MESSAGE = "Invalid or expired OTP"


class OtpFailure(str, enum.Enum):
    not_found = "not_found"
    expired = "expired"
    mismatch = "mismatch"


class OtpVerificationError(Exception):
    def __init__(self, reason: OtpFailure):
        super().__init__(INVALID_OTP_MESSAGE)
        self.reason = reason


@dataclass
class IssuedCode:
    email: str
    code: str
    expires_at: datetime
    email_sent: bool


class OtpService:
    """Issues and verifies one-time codes keyed by email address.

    A new code for an email replaces the previous one, and a verified code is
    deleted so it can only be used once.
    """

    def __init__(
        self,
        db: Session,
        mailer: EmailDispatcher,
        ttl_minutes: int = 5,
        length: int = 6,
        fixed_code: str | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.mailer = mailer
        self.ttl = timedelta(minutes=ttl_minutes)
        self.length = length
        self.fixed_code = fixed_code
        self.clock = clock

    @classmethod
    def from_settings(cls, db: Session, mailer: EmailDispatcher, config: Settings) -> "OtpService":
        return cls(
            db,
            mailer,
            ttl_minutes=config.OTP_EXPIRE_MINUTES,
            length=config.OTP_LENGTH,
            fixed_code=config.otp_fixed_code,
        )

    def generate_code(self) -> str:
        if self.fixed_code:
            return self.fixed_code
        return str(secrets.randbelow(10 ** self.length)).zfill(self.length)

    def issue_code(self, email: str) -> IssuedCode:
        code = self.generate_code()
        expires_at = self.clock() + self.ttl

        record = self.db.query(OneTimeCode).filter(OneTimeCode.email == email).first()
        if record:
            record.code = code
            record.expires_at = expires_at
        else:
            self.db.add(OneTimeCode(email=email, code=code, expires_at=expires_at))
        self.db.commit()

        try:
            email_sent = self.mailer.send_code(email, code)
        except Exception:
            logger.exception("Sending OTP email to %s raised", email)
            email_sent = False
        if not email_sent:
            logger.warning("OTP stored for %s but email dispatch failed", email)
        return IssuedCode(email=email, code=code, expires_at=expires_at, email_sent=email_sent)

    def verify_code(self, email: str, code: str) -> None:
        record = self.db.query(OneTimeCode).filter(OneTimeCode.email == email).first()
        if not record:
            raise OtpVerificationError(OtpFailure.not_found)
        if self.clock() >= record.expires_at:
            raise OtpVerificationError(OtpFailure.expired)
        if record.code != code:
            raise OtpVerificationError(OtpFailure.mismatch)

        self.db.delete(record)
        self.db.commit()
