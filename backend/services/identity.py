"""Accounts, tokens and the bearer-header gate in front of authenticated routes."""
import datetime
import logging

import bcrypt
import jwt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from errors import AuthError, StorageError, ValidationError
from models import db_models

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
# bcrypt only looks at the first 72 bytes and refuses anything longer
MAX_PASSWORD_BYTES = 72


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    if _password_too_long(password):
        return False
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


class IdentityProvider:
    def __init__(self, secret: str, expires_in: int = 3600):
        self.secret = secret
        self.expires_in = expires_in

    # --- tokens ---

    def issue_token(self, user) -> str:
        now = datetime.datetime.now(datetime.timezone.utc)
        claims = {
            "sub": user.id,
            "email": user.email,
            "iat": now,
            "exp": now + datetime.timedelta(seconds=self.expires_in),
        }
        return jwt.encode(claims, self.secret, algorithm=JWT_ALGORITHM)

    def verify_token(self, token: str) -> str:
        """Returns the user id carried by ``token``."""
        try:
            claims = jwt.decode(
                token, self.secret, algorithms=[JWT_ALGORITHM], options={"require": ["sub", "exp"]}
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthError("Token expired", code="InvalidToken") from e
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected token: {e}")
            raise AuthError("Invalid token", code="InvalidToken") from e
        return str(claims["sub"])

    # --- accounts ---

    def _find(self, db: Session, email: str):
        try:
            return db.query(db_models.UserDB).filter(db_models.UserDB.email == _normalize_email(email)).first()
        except SQLAlchemyError as e:
            logger.error(f"User lookup failed: {e}", exc_info=True)
            raise StorageError("Failed to look up user") from e

    def email_exists(self, db: Session, email: str) -> bool:
        return self._find(db, email) is not None

    def sign_up(self, db: Session, email: str, password: str):
        if not _normalize_email(email) or not password:
            raise ValidationError("Email and password are required")
        if self.email_exists(db, email):
            raise ValidationError("User already exists")
        if _password_too_long(password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        user = db_models.UserDB(email=_normalize_email(email), password_hash=hash_password(password))
        try:
            db.add(user)
            db.commit()
            db.refresh(user)
        except IntegrityError as e:
            db.rollback()
            raise ValidationError("User already exists") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create user: {e}", exc_info=True)
            raise StorageError("Failed to create user") from e
        logger.info(f"Created user {user.id}")
        return user

    def log_in(self, db: Session, email: str, password: str) -> str:
        user = self._find(db, email)
        if user is None or not check_password(password, user.password_hash):
            raise ValidationError("Invalid credentials")
        return self.issue_token(user)

    def reset_password(self, db: Session, email: str, new_password: str) -> None:
        if not _normalize_email(email) or not new_password:
            raise ValidationError("Email and new password are required")
        user = self._find(db, email)
        if user is None:
            raise ValidationError("User does not exist")
        if _password_too_long(new_password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        try:
            user.password_hash = hash_password(new_password)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to reset password: {e}", exc_info=True)
            raise StorageError("Failed to reset password") from e
        logger.info(f"Password reset for user {user.id}")


class IdentityVerifier:
    """Turns an ``Authorization`` header value into a trusted user id."""

    def __init__(self, provider: IdentityProvider):
        self.provider = provider

    def verify(self, header_value) -> str:
        if not header_value:
            raise AuthError("Authorization header missing", code="MissingToken")
        scheme, _, token = header_value.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthError("Authorization header must be 'Bearer <token>'", code="MissingToken")
        return self.provider.verify_token(token.strip())
