from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.shortlink.api.deps import get_db, get_cache, get_request_settings, get_current_user_id
from src.shortlink.core.config import Settings
from src.shortlink.schemas.link import Link, LinkCreate, Message, ShortenResponse
from src.shortlink.services.link_service import (
    create_link,
    delete_user_link,
    list_links_by_owner,
)

router = APIRouter()


@router.post("/shorten", response_model=ShortenResponse)
def shorten(
    link: LinkCreate,
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
    settings: Settings = Depends(get_request_settings),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    Create a shortened URL.

    Requires authentication.
    """
    db_link = create_link(db, cache, settings, link.original_url, current_user_id)
    return {"short_url": db_link.short_code}


@router.get("", response_model=list[Link])
def list_links(
    db: Session = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    List the caller's links.

    Requires authentication.
    """
    return list_links_by_owner(db, current_user_id)


@router.delete("/{link_id}", response_model=Message)
def delete_link(
    link_id: str,
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    Delete one of the caller's links.

    Links owned by someone else answer 404, same as missing ones.
    """
    delete_user_link(db, cache, link_id, current_user_id)
    return {"msg": "URL deleted successfully"}
