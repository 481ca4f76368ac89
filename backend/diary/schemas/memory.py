from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from diary.models.participant import Participant


class MemoryOut(BaseModel):
    """A photo in the feed with its like/comment stats."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: Participant
    image_url: str
    description: str
    created_at: datetime

    uploader_name: str
    like_count: int = 0
    comment_count: int = 0
    liked_by_him: bool = False
    liked_by_her: bool = False


class MemoryUploadResponse(BaseModel):
    memory: MemoryOut
    message: str


class MemoryListResponse(BaseModel):
    memories: List[MemoryOut]
    total: int
    has_more: bool
    current_page: int
    total_pages: int


class LikeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    memory_id: str
    user_id: Participant
    created_at: datetime


class LikeInfo(BaseModel):
    like_count: int
    liked_by_him: bool
    liked_by_her: bool
    likes: List[LikeOut]


class LikeToggleResponse(LikeInfo):
    liked: bool


class CommentCreateRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    content: str = Field(..., description='Comment text (1-500 chars)')
    parent_comment_id: Optional[str] = Field(default=None, max_length=36)


class CommentUpdateRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    content: str


class CommentOut(BaseModel):
    id: str
    memory_id: str
    user_id: Participant
    user_name: str
    content: str
    parent_comment_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    level: int = 0


class CommentDeleteResponse(BaseModel):
    deleted: bool
    deleted_count: int
