from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from datetime import datetime, timedelta, UTC
from functools import lru_cache
from jose import jwt, JWTError
from passlib.context import CryptContext
from typing import Optional

from src.shortlink.core.config import Settings, logger
from src.shortlink.models.user import User
from src.shortlink.schemas.user import UserCredentials
from src.shortlink.services.exceptions import AuthError, ConflictError, ValidationError


@lru_cache()
def get_pwd_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def verify_password(plain_password: str, hashed_password: str, rounds: int = 10) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password to compare against
        rounds: Cost factor of the context doing the check; the hash carries its own

    Returns:
        True if passwords match, False otherwise
    """
    return get_pwd_context(rounds).verify(plain_password, hashed_password)


def get_password_hash(password: str, rounds: int = 10) -> str:
    """
    Hash a password for storage.

    Args:
        password: Plain text password
        rounds: bcrypt cost factor

    Returns:
        Salted bcrypt hash
    """
    return get_pwd_context(rounds).hash(password)


def create_access_token(
    settings: Settings, user_id: int, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed JWT identifying a user.

    Args:
        settings: Settings holding the secret and algorithm
        user_id: Id embedded as the token subject
        expires_delta: Optional lifetime, defaults to ACCESS_TOKEN_EXPIRE_SECONDS

    Returns:
        Encoded JWT token
    """
    if expires_delta is None:
        expires_delta = timedelta(seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS)
    expire = datetime.now(UTC) + expires_delta
    to_encode = {"user": {"id": str(user_id)}, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(settings: Settings, token: str) -> int:
    """
    Verify a token and return the user id it was issued for.

    Raises:
        AuthError: If the signature is wrong, the token is malformed or expired,
            or the payload carries no usable user id
    """
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as e:
        logger.warning(f"JWT validation error: {str(e)}")
        raise AuthError("Token is not valid")

    user = payload.get("user")
    try:
        return int(user["id"])
    except (TypeError, KeyError, ValueError):
        logger.warning("Token has no usable user claim")
        raise AuthError("Token is not valid")


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def create_user(db: Session, username: str, password: str, rounds: int = 10) -> User:
    """
    Create a new user.

    Raises:
        ConflictError: If the username is already taken
    """
    if get_user_by_username(db, username):
        raise ConflictError("User already exists")

    db_user = User(username=username, hashed_password=get_password_hash(password, rounds))
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same name.
        db.rollback()
        raise ConflictError("User already exists")
    db.refresh(db_user)
    return db_user


def _require_credentials(credentials: UserCredentials) -> tuple[str, str]:
    if not credentials.username or not credentials.password:
        raise ValidationError("Please enter all fields")
    return credentials.username, credentials.password


def register_user(db: Session, settings: Settings, credentials: UserCredentials) -> str:
    """Create the account and return a token for it."""
    username, password = _require_credentials(credentials)
    user = create_user(db, username, password, settings.BCRYPT_ROUNDS)
    logger.info(f"Registered user {user.username} with id {user.id}")
    return create_access_token(settings, user.id)


def login_user(db: Session, settings: Settings, credentials: UserCredentials) -> str:
    """Check the credentials and return a fresh token."""
    username, password = _require_credentials(credentials)
    user = get_user_by_username(db, username)
    if not user:
        raise ValidationError("User does not exist")
    if not verify_password(password, user.hashed_password, settings.BCRYPT_ROUNDS):
        logger.warning(f"Failed login for user {username}")
        raise ValidationError("Invalid credentials")
    logger.info(f"User {username} logged in")
    return create_access_token(settings, user.id)
