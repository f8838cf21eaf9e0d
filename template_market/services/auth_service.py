import logging
import uuid
from datetime import timedelta

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from template_market.config import Settings, settings
from template_market.utils.clock import utcnow

logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """Raised when a session token cannot be trusted."""


class PasswordHasher:
    """One-way bcrypt hashing; every hash carries its own salt."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed_password: str | None) -> bool:
        if not hashed_password:
            return False
        try:
            return self._context.verify(password, hashed_password)
        except ValueError:
            logger.warning("Stored password hash has an unknown format")
            return False

    def dummy_verify(self) -> None:
        """Spend the same bcrypt work as a real check when there is no hash to compare."""
        self._context.dummy_verify()


class TokenIssuer:
    """Signs and validates the bearer tokens handed out at login."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 1440):
        if not secret:
            raise ValueError("A signing secret is required")
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, config: Settings) -> "TokenIssuer":
        return cls(config.JWT_SECRET, config.ALGORITHM, config.ACCESS_TOKEN_EXPIRE_MINUTES)

    def issue_token(self, user_id: int, expires_delta: timedelta | None = None) -> str:
        expire = utcnow() + (expires_delta or timedelta(minutes=self.expire_minutes))
        payload = {"sub": str(user_id), "exp": expire, "jti": uuid.uuid4().hex}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> int:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise InvalidTokenError("Token has expired") from exc
        except JWTError as exc:
            logger.warning("JWT decode failed: %s", exc)
            raise InvalidTokenError("Invalid token") from exc

        subject = payload.get("sub")
        try:
            return int(subject)
        except (TypeError, ValueError) as exc:
            raise InvalidTokenError("Invalid token payload") from exc


password_hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
token_issuer = TokenIssuer.from_settings(settings)


def hash_password(password: str) -> str:
    return password_hasher.hash(password)


def verify_password(password: str, hashed_password: str | None) -> bool:
    return password_hasher.verify(password, hashed_password)
