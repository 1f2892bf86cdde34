from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from datetime import datetime
import random
import re
import string
import json
from typing import List, Optional

from src.shortlink.core.config import Settings, logger
from src.shortlink.models.link import Link
from src.shortlink.services.exceptions import NotFoundError, StoreError, ValidationError

SHORT_CODE_ALPHABET = string.ascii_lowercase + string.digits

_http_url = TypeAdapter(HttpUrl)

# Characters pydantic would silently strip or percent-encode.
_UNSAFE_URL_CHARS = re.compile(r"[\s<>\x00-\x1f\x7f]")


def generate_short_code(length: int = 6) -> str:
    """
    Generate a random base-36 short code of specified length.

    Args:
        length: Length of the short code to generate, defaults to 6

    Returns:
        A random string of lowercase letters and digits
    """
    return "".join(random.choice(SHORT_CODE_ALPHABET) for _ in range(length))


def validate_original_url(original_url: Optional[str]) -> str:
    """
    Check that the value is an absolute http(s) URL.

    Returns the value unchanged so the redirect target is exactly what was
    submitted, not pydantic's normalised form.

    Raises:
        ValidationError: If the value is missing or not a URL
    """
    if not original_url or _UNSAFE_URL_CHARS.search(original_url):
        raise ValidationError("Invalid URL")
    try:
        _http_url.validate_python(original_url)
    except PydanticValidationError:
        raise ValidationError("Invalid URL")
    return original_url


def serialize_link(link: Link) -> dict:
    return {
        "id": link.id,
        "original_url": link.original_url,
        "short_code": link.short_code,
        "user_id": link.user_id,
        "created_at": link.created_at.isoformat() if link.created_at else None,
    }


def deserialize_link(data: dict) -> Link:
    link = Link(
        id=data["id"],
        original_url=data["original_url"],
        short_code=data["short_code"],
        user_id=data["user_id"],
    )

    if data["created_at"]:
        link.created_at = datetime.fromisoformat(data["created_at"])

    return link


def _cache_link(cache, link: Link, ttl: int) -> None:
    try:
        cache.setex(f"url:{link.short_code}", ttl, json.dumps(serialize_link(link)))
    except Exception as e:
        logger.error(f"Redis error: {e}")


def get_link_by_short_code(
    db: Session, cache, short_code: str, ttl: int = 86400
) -> Optional[Link]:
    """
    Get a link by short code from cache or database.

    Args:
        db: Database session
        cache: Redis client (or DummyRedis)
        short_code: Short code to look up
        ttl: Lifetime of the cache entry written on a miss

    Returns:
        Link object if found, None otherwise
    """
    try:
        cached_link_json = cache.get(f"url:{short_code}")
        if cached_link_json:
            return deserialize_link(json.loads(cached_link_json))
    except Exception as e:
        logger.error(f"Redis error: {e}")

    link = db.query(Link).filter(Link.short_code == short_code).first()
    if link:
        _cache_link(cache, link, ttl)
    return link


def get_link_by_id(db: Session, link_id: str) -> Optional[Link]:
    """Look a link up by id. Ids that are not integers match nothing."""
    try:
        key = int(link_id)
    except (TypeError, ValueError):
        return None
    return db.get(Link, key)


def list_links_by_owner(db: Session, user_id: int) -> List[Link]:
    return (
        db.query(Link)
        .filter(Link.user_id == user_id)
        .order_by(Link.created_at, Link.id)
        .all()
    )


def create_link(
    db: Session, cache, settings: Settings, original_url: Optional[str], user_id: int
) -> Link:
    """
    Create a shortened link owned by a user.

    A short code already taken makes the unique index reject the insert;
    the code is regenerated up to SHORT_CODE_MAX_ATTEMPTS times.

    Args:
        db: Database session
        cache: Redis client (or DummyRedis)
        settings: Application settings
        original_url: URL to shorten
        user_id: ID of the owning user

    Returns:
        Created Link object

    Raises:
        ValidationError: If original_url is not a URL
        StoreError: If no free short code was found
    """
    original_url = validate_original_url(original_url)

    for _ in range(settings.SHORT_CODE_MAX_ATTEMPTS):
        short_code = generate_short_code(settings.SHORT_CODE_LENGTH)
        db_link = Link(original_url=original_url, short_code=short_code, user_id=user_id)
        db.add(db_link)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Short code {short_code} already taken, regenerating")
            continue

        db.refresh(db_link)
        _cache_link(cache, db_link, settings.CACHE_TTL_SECONDS)
        logger.info(f"User {user_id} shortened {original_url} to {short_code}")
        return db_link

    logger.error(
        f"No free short code after {settings.SHORT_CODE_MAX_ATTEMPTS} attempts for user {user_id}"
    )
    raise StoreError()


def delete_link(db: Session, cache, link: Link) -> None:
    short_code = link.short_code
    db.delete(link)
    db.commit()

    try:
        cache.delete(f"url:{short_code}")
    except Exception as e:
        logger.error(f"Redis error: {e}")


def delete_user_link(db: Session, cache, link_id: str, user_id: int) -> None:
    """
    Delete a link on behalf of its owner.

    Raises:
        NotFoundError: If the link does not exist or belongs to another user
    """
    link = get_link_by_id(db, link_id)
    if not link or link.user_id != user_id:
        raise NotFoundError("URL not found")

    delete_link(db, cache, link)
    logger.info(f"User {user_id} deleted link {link_id}")
