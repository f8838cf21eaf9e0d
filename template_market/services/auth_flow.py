import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from template_market.config import settings
from template_market.database import get_db
from template_market.models.user import Role, User
from template_market.schemas.user import (
    EmailChangeStep,
    LoginConfirm,
    LoginStart,
    RegisterConfirm,
    RegisterStart,
    ResetPasswordRequest,
    UpdateDetailsRequest,
)
from template_market.services.auth_service import (
    PasswordHasher,
    TokenIssuer,
    password_hasher,
    token_issuer,
)
from template_market.services.email_services import EmailDispatcher, get_email_dispatcher
from template_market.services.otp_service import (
    INVALID_OTP_MESSAGE,
    IssuedCode,
    OtpService,
    OtpVerificationError,
)
from template_market.utils.response import ApiError

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


@dataclass
class FlowResult:
    message: str
    data: dict | None = None
    status_code: int = status.HTTP_200_OK
    user: User | None = None


def _code_sent(issued: IssuedCode, message: str = "OTP sent") -> FlowResult:
    return FlowResult(message, {"email": issued.email, "email_sent": issued.email_sent})


class AuthFlow:
    """Registration, login, password reset and email change, each gated by an emailed code."""

    def __init__(
        self,
        db: Session,
        otp_service: OtpService,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
    ):
        self.db = db
        self.otp = otp_service
        self.hasher = hasher
        self.issuer = issuer

    def _find_user(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == email).first()

    def _verify(self, email: str, code: str) -> None:
        try:
            self.otp.verify_code(email, code)
        except OtpVerificationError as exc:
            logger.info("OTP verification failed for %s: %s", email, exc.reason.value)
            raise ApiError(status.HTTP_400_BAD_REQUEST, INVALID_OTP_MESSAGE, {"reason": exc.reason.value})

    def _ensure_email_free(self, email: str) -> None:
        if self._find_user(email):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists with this email")

    def _ensure_current_email_verified(self, user: User) -> None:
        verified_until = user.email_change_verified_until
        if verified_until is None or self.otp.clock() >= verified_until:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Verify your current email before changing it",
            )

    def _check_credentials(self, email: str, password: str) -> User:
        user = self._find_user(email)
        if not user:
            self.hasher.dummy_verify()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_CREDENTIALS)
        if not self.hasher.verify(password, user.password):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_CREDENTIALS)
        return user

    # ---------------- Registration ----------------
    def register(self, step: RegisterStart) -> FlowResult:
        self._ensure_email_free(step.email)

        if not isinstance(step, RegisterConfirm):
            return _code_sent(self.otp.issue_code(step.email))

        self._verify(step.email, step.otp)
        user = User(
            name=step.name,
            email=step.email,
            password=self.hasher.hash(step.password),
            role=Role.USER,
            free_downloads=settings.DEFAULT_FREE_DOWNLOADS,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Registered user %s", user.id)
        return FlowResult("User registered successfully", status_code=status.HTTP_201_CREATED, user=user)

    # ---------------- Login ----------------
    def login(self, step: LoginStart) -> FlowResult:
        user = self._check_credentials(step.email, step.password)

        if not isinstance(step, LoginConfirm):
            return _code_sent(self.otp.issue_code(user.email))

        self._verify(user.email, step.otp)
        token = self.issuer.issue_token(user.id)
        user.token = token
        self.db.commit()
        self.db.refresh(user)
        logger.info("User %s logged in", user.id)
        return FlowResult("Login successful", {"token": token}, user=user)

    # ---------------- Standalone OTP ----------------
    def verify_otp(self, email: str, code: str) -> FlowResult:
        self._verify(email, code)
        return FlowResult("OTP verified", {"email": email})

    def resend_otp(self, email: str) -> FlowResult:
        return _code_sent(self.otp.issue_code(email), "OTP resent")

    # ---------------- Session ----------------
    def logout(self, user: User) -> FlowResult:
        user.token = None
        self.db.commit()
        logger.info("User %s logged out", user.id)
        return FlowResult("Logout successful", {"user_id": user.id})

    # ---------------- Password reset ----------------
    def forgot_password(self, email: str) -> FlowResult:
        if not self._find_user(email):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User with this email does not exist")
        return _code_sent(self.otp.issue_code(email))

    def reset_password(self, body: ResetPasswordRequest) -> FlowResult:
        if body.new_password != body.confirm_password:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Passwords do not match")

        user = self._find_user(body.email)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User with this email does not exist")

        self._verify(user.email, body.otp)
        user.password = self.hasher.hash(body.new_password)
        user.token = None
        self.db.commit()
        logger.info("Password reset for user %s", user.id)
        return FlowResult("Password reset successfully")

    # ---------------- Profile / email change ----------------
    def update_details(self, user: User, body: UpdateDetailsRequest) -> FlowResult:
        if body.name is not None:
            user.name = body.name
        if body.number is not None:
            user.number = body.number
        self.db.commit()

        step = body.step
        if step == EmailChangeStep.send_current:
            if body.current_email != user.email:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current email does not match")
            return _code_sent(self.otp.issue_code(user.email), "OTP sent to current email")

        if step == EmailChangeStep.verify_current:
            if body.current_email != user.email:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current email does not match")
            self._verify(user.email, body.otp)
            user.email_change_verified_until = self.otp.clock() + self.otp.ttl
            self.db.commit()
            return FlowResult("OTP verified, proceed", {"email": user.email})

        if step == EmailChangeStep.send_new:
            self._ensure_current_email_verified(user)
            self._ensure_email_free(body.new_email)
            # The new code gets its full lifetime to be confirmed
            user.email_change_verified_until = self.otp.clock() + self.otp.ttl
            return _code_sent(self.otp.issue_code(body.new_email), "OTP sent to new email")

        if step == EmailChangeStep.verify_new:
            self._ensure_current_email_verified(user)
            self._ensure_email_free(body.new_email)
            self._verify(body.new_email, body.otp)
            user.email = body.new_email
            user.email_change_verified_until = None
            self.db.commit()
            self.db.refresh(user)
            logger.info("User %s changed email", user.id)
            return FlowResult("Email updated successfully", user=user)

        self.db.refresh(user)
        return FlowResult("User details updated successfully", user=user)


def get_auth_flow(
    db: Session = Depends(get_db),
    mailer: EmailDispatcher = Depends(get_email_dispatcher),
) -> AuthFlow:
    return AuthFlow(
        db,
        OtpService.from_settings(db, mailer, settings),
        password_hasher,
        token_issuer,
    )
