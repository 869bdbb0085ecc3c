import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from chainxchange.core.security import create_access_token, hash_password, verify_password
from chainxchange.crud.user import user as crud_user
from chainxchange.models.user import User
from chainxchange.schemas.user import LoginResponse, Token, User as UserSchema, UserCreate

logger = logging.getLogger(__name__)


class AuthService:
    def register(self, db: Session, *, user_in: UserCreate) -> User:
        if crud_user.get_by_email(db, email=user_in.email):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already registered"
            )
        if crud_user.get_by_username(db, username=user_in.username):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Username already taken"
            )

        new_user = crud_user.create(db, obj_in={
            "username": user_in.username,
            "email": user_in.email,
            "hashed_password": hash_password(user_in.password),
            "wallet": 0.0,
            "achievements": [],
        })
        logger.info(f"Registered user {new_user.id} ({new_user.username})")
        return new_user

    def login(self, db: Session, *, username: str, password: str) -> LoginResponse:
        user = crud_user.get_by_username(db, username=username.strip())
        if not user or not verify_password(password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password"
            )

        access_token = create_access_token(user.id, user.username)
        logger.info(f"User {user.id} logged in")
        return LoginResponse(
            token=Token(access_token=access_token, token_type="bearer"),
            user=UserSchema.model_validate(user),
        )

auth_service = AuthService()
