# chatapp/routers/auth.py

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import or_
from sqlalchemy.orm import Session

from chatapp.common.deps import get_current_user
from chatapp.core.exceptions import InvalidRequest
from chatapp.core.security import create_access_token, get_password_hash, verify_password
from chatapp.db.session import get_db
from chatapp.models.user import (
    ProfileUpdate,
    StrangerMessageUpdate,
    User,
    UserCreate,
    UserPublic,
    UserRead,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/signup", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def signup(user: UserCreate, db: Session = Depends(get_db)):
    email = user.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise InvalidRequest("Email already exists")

    new_user = User(
        email=email,
        full_name=user.full_name,
        hashed_password=get_password_hash(user.password),
        profile_pic="",
        allow_stranger_message=False,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    logger.info("New user %s signed up", new_user.id)
    return new_user


@router.post("/login")
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == form_data.username.strip().lower()).first()
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(data={"sub": str(user.id)})
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/check", response_model=UserRead)
def check_auth(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/update-profile", response_model=UserRead)
def update_profile(
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    for key, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(current_user, key, value)
    db.commit()
    db.refresh(current_user)
    return current_user


@router.patch("/stranger-message", response_model=UserRead)
def update_allow_stranger_message(
    body: StrangerMessageUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    current_user.allow_stranger_message = body.allow_stranger_message
    db.commit()
    db.refresh(current_user)
    return current_user


@router.get("/search-users", response_model=List[UserPublic])
def search_users(
    q: str = Query("", max_length=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(User).filter(User.id != current_user.id)
    term = q.strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(User.full_name.ilike(pattern), User.email.ilike(pattern)))
    return query.order_by(User.full_name).limit(20).all()
