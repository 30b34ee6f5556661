"""
backend/models/progress_entry.py
Shareable progress posts on a goal, with likes and comments.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ProgressEntry(BaseModel):
    id: str
    goal_id: str
    user_id: str
    content: str
    day: int = Field(ge=1)
    likes: List[str] = Field(default_factory=list)
    is_edited: bool = False
    created_at: datetime
    updated_at: datetime


class Comment(BaseModel):
    id: str
    progress_entry_id: str
    user_id: str
    content: str
    likes: List[str] = Field(default_factory=list)
    is_edited: bool = False
    created_at: datetime
    updated_at: datetime


class ProgressEntryView(ProgressEntry):
    comment_count: int = 0
    likes_count: int = 0


class CreateProgressEntryRequest(BaseModel):
    goal_id: str = Field(min_length=1)
    content: str = Field(min_length=1, max_length=5000)


class UpdateProgressEntryRequest(BaseModel):
    content: str = Field(min_length=1, max_length=5000)


class CreateCommentRequest(BaseModel):
    content: str = Field(min_length=1, max_length=2000)


class UpdateCommentRequest(BaseModel):
    content: str = Field(min_length=1, max_length=2000)


class EntryPage(BaseModel):
    items: List[ProgressEntryView]
    page: int
    limit: int


class CommentPage(BaseModel):
    items: List[Comment]
    page: int
    limit: int
    total: Optional[int] = None
