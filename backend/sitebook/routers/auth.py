"""Login: single admin account from settings; returns an opaque access_token for the client to send as Bearer."""
import secrets

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from sitebook.config import settings

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    access_token: str


class MeResponse(BaseModel):
    username: str
    role: str = "admin"


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest):
    """ADMIN_USERNAME / ADMIN_PASSWORD match -> access_token, otherwise 401."""
    user_ok = secrets.compare_digest(body.username.strip(), settings.admin_username)
    pass_ok = secrets.compare_digest(body.password, settings.admin_password)
    if user_ok and pass_ok:
        return LoginResponse(access_token=secrets.token_urlsafe(32))
    raise HTTPException(status_code=401, detail="Invalid username or password")


@router.get("/me", response_model=MeResponse)
async def me():
    return MeResponse(username=settings.admin_username, role="admin")
