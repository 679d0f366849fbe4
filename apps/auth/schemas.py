from pydantic import BaseModel
from typing import Optional


class UserBase(BaseModel):
    id: int
    name: str
    email: str
    role: str = 'user'


class UserCreate(BaseModel):
    name: str
    email: str
    role: str = 'user'
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    email: Optional[str] = None
    role: Optional[str] = None
