from pydantic import BaseModel, Field
from typing import List


class WatchEvent(BaseModel):
    user_id: str = Field(..., min_length=1, description="Opaque user identifier")
    video_id: str = Field(..., min_length=1, description="Opaque video identifier")


class WatchStats(BaseModel):
    users: int = 0
    videos: int = 0
    watch_events: int = 0


class WatchResult(BaseModel):
    updated: bool = True
    recommendations: List[str] = Field(default_factory=list)


class Recommendations(BaseModel):
    video_id: str
    recommendations: List[str] = Field(default_factory=list)


class Popularity(BaseModel):
    video_id: str
    views: int


class UserHistory(BaseModel):
    user_id: str
    videos: List[str] = Field(default_factory=list)
