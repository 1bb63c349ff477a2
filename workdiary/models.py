"""
Pydantic models for Work Diary

Shared by the API server (request bodies and response models) and by the
client-side state components (Local Mirror contents). On the wire every field
is camelCase; in Python it is snake_case.
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import date, datetime, timezone
from enum import Enum


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReactionType(str, Enum):
    LIKE = "like"
    HEART = "heart"
    CELEBRATE = "celebrate"
    SUPPORT = "support"


# Users

class UserCreate(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=6)

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserRef(ApiModel):
    id: str
    name: str
    email: Optional[str] = None

class AuthResponse(ApiModel):
    token: str
    user: UserRef


# Diary entries

class Comment(ApiModel):
    id: str
    user: UserRef
    content: str
    created_at: datetime

class Reaction(ApiModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)

    user_id: str
    type: ReactionType

class Todo(ApiModel):
    id: str
    content: str
    completed: bool = False
    created_at: datetime
    updated_at: datetime

class DiaryEntry(ApiModel):
    id: str
    user: UserRef
    content: str
    date: date
    comments: List[Comment] = []
    reactions: List[Reaction] = []
    todos: List[Todo] = []
    created_at: datetime
    updated_at: datetime

class DiaryPage(ApiModel):
    diaries: List[DiaryEntry]
    total_pages: int
    current_page: int


# Request bodies

class DiaryContent(BaseModel):
    content: str

class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1)

class ReactionCreate(BaseModel):
    type: ReactionType

class TodoCreate(BaseModel):
    content: str = Field(..., min_length=1)

class TodoUpdate(BaseModel):
    completed: bool


def utcnow() -> datetime:
    """Naive UTC timestamp, the form MongoDB hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
