"""
Session endpoints:
  POST /api/auth/register - create an account and log in
  POST /api/auth/login    - start a session
  POST /api/auth/logout   - end the session
  GET  /api/auth/me       - the logged-in user
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import IntegrityError

from connection_api.auth import (
    get_current_user_id,
    hash_password,
    login_session,
    logout_session,
    verify_password,
)
from connection_api.dependencies import get_storage
from connection_api.schemas import LoginRequest, RegisterRequest, UserResponse
from connection_api.storage.base import RecommendationStorage

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    request: Request,
    storage: RecommendationStorage = Depends(get_storage),
):
    if await storage.get_user_by_username(body.username):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Username '{body.username}' already taken",
        )

    try:
        user = await storage.create_user(
            username=body.username,
            password_hash=hash_password(body.password),
            display_name=body.display_name,
            interest_tags=body.interest_tags,
        )
        await storage.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same name
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Username '{body.username}' already taken",
        )
    login_session(request, user)
    logger.info("Registered user %s (id=%s)", user.username, user.id)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=UserResponse)
async def login(
    body: LoginRequest,
    request: Request,
    storage: RecommendationStorage = Depends(get_storage),
):
    user = await storage.get_user_by_username(body.username)
    if user is None or not verify_password(user, body.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    login_session(request, user)
    return UserResponse.model_validate(user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(request: Request):
    logout_session(request)


@router.get("/me", response_model=UserResponse)
async def me(
    user_id: str = Depends(get_current_user_id),
    storage: RecommendationStorage = Depends(get_storage),
):
    user = await storage.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.model_validate(user)
