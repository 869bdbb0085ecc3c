from pydantic import BaseModel, EmailStr, field_validator, ConfigDict
from typing import Optional, List
from datetime import datetime


class Achievement(BaseModel):
    name: str
    description: str
    icon: str
    unlocked_at: Optional[datetime] = None

class UserBase(BaseModel):
    username: str
    email: EmailStr

class UserCreate(UserBase):
    """Schema for registering a trader."""
    password: str

    @field_validator("username")
    def not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError("Username cannot be empty")
        return v.strip()

    @field_validator("email")
    def lowercase(cls, v):
        return v.lower()

    @field_validator("password")
    def check_password(cls, v):
        if not v:
            raise ValueError("Password cannot be empty")
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        return v

class UserUpdate(BaseModel):
    wallet: Optional[float] = None
    achievements: Optional[List[Achievement]] = None

class User(UserBase):
    id: int
    wallet: float
    achievements: List[Achievement] = []
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class LoginRequest(BaseModel):
    username: str
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class LoginResponse(BaseModel):
    token: Token
    user: User
