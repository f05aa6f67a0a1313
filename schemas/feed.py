from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class PostResponse(BaseModel):
    id: int
    user_id: int
    title: str
    content: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CommentResponse(BaseModel):
    id: int
    post_id: int
    user_id: int
    reply_user_id: int = 0
    content: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
