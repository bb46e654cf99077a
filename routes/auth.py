from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from models import User
import schemas
from auth import authenticate_user, create_user_token, get_current_active_user
from errors import Unauthorized
from .limiter import limiter

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/login", response_model=schemas.Token)
@limiter.limit("5/minute")
async def login(request: Request, user_login: schemas.UserLogin, db: Session = Depends(get_db)):
    """Login endpoint - Rate limited to prevent brute force attacks"""
    user = authenticate_user(db, user_login.email, user_login.password)
    if not user:
        raise Unauthorized("Incorrect email or password")
    return {"access_token": create_user_token(user), "token_type": "bearer"}


@router.get("/me", response_model=schemas.UserResponse)
async def read_me(current_user: User = Depends(get_current_active_user)):
    """Get current user info"""
    return current_user
