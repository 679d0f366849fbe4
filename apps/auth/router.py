import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload
from apps.auth.schemas import UserBase, UserCreate, Token
from apps.auth.models import UserModel
from apps.auth.services import (
    get_db, create_user, authenticate_user, get_current_admin,
    create_access_token, get_current_user
)
from fastapi.security import OAuth2PasswordRequestForm
from typing import List

logger = logging.getLogger(__name__)

router = APIRouter()


def user_to_response(user: UserModel) -> dict:
    # Pydantic cannot serialize the Role object to a string on its own
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.name if user.role else "unknown",
    }


@router.post("/token", response_model=Token)
def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = authenticate_user(db, email=form_data.username, password=form_data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Incorrect email or password")
    access_token = create_access_token(data={"sub": user.email})
    logger.info(f"Issued access token for {user.email}")
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/users", response_model=UserBase, status_code=status.HTTP_201_CREATED)
def create_new_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    admin: UserModel = Depends(get_current_admin)
):
    """Create a new user account (Admin only)"""
    db_user = create_user(db, user)
    logger.info(f"Created user {db_user.email} with role {user.role}")
    return user_to_response(db_user)


@router.get("/users", response_model=List[UserBase])
def list_users(db: Session = Depends(get_db), admin: UserModel = Depends(get_current_admin)):
    """
    Endpoint for admins to list all users.
    Returns a list of all users with their name, email, and role.
    """
    users_with_roles = db.query(UserModel).options(joinedload(UserModel.role)).all()
    return [user_to_response(user) for user in users_with_roles]


@router.get("/users/me", response_model=UserBase)
def read_users_me(current_user: UserModel = Depends(get_current_user)):
    """
    Returns the current authenticated user's details.
    """
    return user_to_response(current_user)
