from sqlmodel import SQLModel, Field
from pydantic import field_validator
from typing import Optional
from datetime import datetime
import uuid


class UserBase(SQLModel):
    email: str = Field(max_length=254)
    name: str = Field(min_length=1, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("Invalid email address")
        return value


class UserCreate(UserBase):
    password: str = Field(min_length=6, max_length=72)


class UserRead(UserBase):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class UserLogin(SQLModel):
    email: str
    password: str


class AuthResult(SQLModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
