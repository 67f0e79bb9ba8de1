from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# --- User ---

class UserBase(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    email: str = Field(max_length=255)


class SignUpUser(UserBase):
    password: str = Field(min_length=8, max_length=128)


class UserResponse(UserBase):
    id: int
    role: str
    created_at: datetime
    last_login_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


# --- Auth ---

class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    token: str


class MessageResponse(BaseModel):
    detail: str


# --- Board ---

class BoardCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None


class BoardResponse(BoardCreate):
    id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Article ---

class WriteArticle(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)


class EditArticle(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    content: str | None = Field(None, min_length=1)


class ArticleResponse(BaseModel):
    id: int
    title: str
    content: str
    board_id: int
    author_id: int | None
    author_username: str | None = None
    created_at: datetime
    updated_at: datetime | None
