from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from chainxchange.core.database import get_db
from chainxchange.models.user import User
from chainxchange.schemas.response import APIResponse
from chainxchange.schemas.user import LoginRequest, LoginResponse, User as UserSchema, UserCreate
from chainxchange.services.auth import auth_service
from chainxchange.utils import deps

router = APIRouter()

@router.post("", response_model=APIResponse[UserSchema], status_code=status.HTTP_201_CREATED)
async def register_user(user_in: UserCreate, db: Session = Depends(get_db)):
    new_user = auth_service.register(db, user_in=user_in)
    return APIResponse(message="User registered", data=UserSchema.model_validate(new_user))

@router.post("/login", response_model=APIResponse[LoginResponse])
async def login(login_in: LoginRequest, db: Session = Depends(get_db)):
    result = auth_service.login(db, username=login_in.username, password=login_in.password)
    return APIResponse(message="Login successful", data=result)

@router.get("/me", response_model=APIResponse[UserSchema])
async def read_current_user(user: User = Depends(deps.get_current_user)):
    return APIResponse(message="Current user retrieved", data=UserSchema.model_validate(user))
