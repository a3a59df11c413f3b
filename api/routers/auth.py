from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.models import User
from affiliate.services.users import authenticate_user, register_user
from api.auth import get_current_user, issue_token
from api.schemas import AuthResponse, LoginRequest, RegisterRequest, Token, UserResponse
from core.db import get_session

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_session)):
    """Create an account and return a token for it."""
    user = await register_user(db, payload.name, payload.email, payload.password)
    return AuthResponse(access_token=issue_token(user), user=UserResponse.model_validate(user))


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_session)):
    user = await authenticate_user(db, payload.email, payload.password)
    return AuthResponse(access_token=issue_token(user), user=UserResponse.model_validate(user))


@router.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_session),
):
    """OAuth2 password flow; the username field carries the email."""
    user = await authenticate_user(db, form_data.username, form_data.password)
    return Token(access_token=issue_token(user))


@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user: User = Depends(get_current_user)):
    return current_user
