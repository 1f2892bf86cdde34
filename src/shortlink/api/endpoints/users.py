from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.shortlink.api.deps import get_db, get_request_settings
from src.shortlink.core.config import Settings
from src.shortlink.schemas.user import UserCredentials, Token
from src.shortlink.services.user_service import register_user, login_user

router = APIRouter()


@router.post("/register", response_model=Token)
def register(
    credentials: UserCredentials,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_request_settings),
):
    """
    Register a new user.

    Creates the account and returns a token for it, so the client is
    logged in straight away.
    """
    return {"token": register_user(db, settings, credentials)}


@router.post("/login", response_model=Token)
def login(
    credentials: UserCredentials,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_request_settings),
):
    """
    Login with username and password.

    Returns a JWT for the x-auth-token header of subsequent requests.
    """
    return {"token": login_user(db, settings, credentials)}
