"""Identity routes.

Credentials are handled by an external provider; this only maps a
username to a user row and issues the bearer token the core expects.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from coursevault.db.sessions import get_db, transaction
from coursevault.models.user import User
from coursevault.core.security import token_for_user, get_current_user_id


router = APIRouter(prefix="/auth", tags=["Authentication"])


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    username: str


class UserResponse(BaseModel):
    id: int
    username: str


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """Create a user and return a token for it."""
    if db.query(User).filter(User.username == request.username).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already registered"
        )

    with transaction(db):
        user = User(username=request.username)
        db.add(user)
        db.flush()
        user_id = user.id

    return TokenResponse(access_token=token_for_user(user_id), user_id=user_id, username=request.username)


@router.get("/me", response_model=UserResponse)
def me(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == user_id).first()
    return UserResponse(id=user.id, username=user.username)
