from fastapi import APIRouter, Depends, status, HTTPException, Request
from fastapi.security import OAuth2PasswordRequestForm
from typing import Annotated
import logging

from lightbox.database import transaction
from lightbox.dependencies import db_dependency
from lightbox.limits import limiter, LOGIN_LIMIT
from lightbox.models.user import User
from lightbox.schemas.user import UserCreate, UserResponse, Token
from lightbox.services.auth_service import (
    authenticate_user,
    create_access_token,
    get_password_hash,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(db: db_dependency, user_request: UserCreate):
    if db.query(User).filter(User.email == user_request.email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Email already registered"
        )
    user_model = User(
        email=user_request.email,
        password_hash=get_password_hash(user_request.password),
        display_name=user_request.display_name,
        is_active=True,
    )
    with transaction(db):
        db.add(user_model)
    db.refresh(user_model)
    logger.info(f"Registered user {user_model.id}")
    return user_model


@router.post("/login", response_model=Token, status_code=status.HTTP_200_OK)
@limiter.limit(LOGIN_LIMIT)
def login_for_access_token(
    request: Request,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: db_dependency,
):
    user = authenticate_user(form_data.username, form_data.password, db)
    if not user:
        logger.warning(f"Failed login for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )
    token = create_access_token(user.email, user.id)
    return {"access_token": token, "token_type": "bearer"}
