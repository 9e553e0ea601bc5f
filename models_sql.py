from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class Paste(BaseModel):
    id: str
    content: str
    language: Optional[str] = None
    password_hash: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: datetime
    view_count: int = 0
    owner_id: Optional[int] = None

    @property
    def is_protected(self) -> bool:
        return self.password_hash is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class PasteView(BaseModel):
    paste: Paste
    is_owner: bool = False


class PasteCreate(BaseModel):
    content: str = ""
    language: Optional[str] = None
    password: Optional[str] = None
    expiration: Optional[str] = None


class PasswordForm(BaseModel):
    password: str = ""


class User(BaseModel):
    id: int
    username: str
    password_hash: str
    created_at: datetime


class UserCreate(BaseModel):
    username: str = ""
    password: str = ""
    confirm_password: str = ""


class LoginForm(BaseModel):
    username: str = ""
    password: str = ""
