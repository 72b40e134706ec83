from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PlaybackRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    project: str
    video_id: str = Field(alias="videoId")
    video_url: str = Field(alias="videoUrl") # Original locator
    title: Optional[str] = None
    is_playing: bool = Field(default=False, alias="isPlaying")
    current_time: float = Field(default=0.0, alias="currentTime") # Playhead, seconds
    is_minimized: bool = Field(default=False, alias="isMinimized")
    added_by: str = Field(alias="addedBy") # User id of whoever set the video
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class ShareVideoRequest(BaseModel):
    video_url: str = Field(alias="videoUrl", min_length=1)
    title: Optional[str] = None


class PlaybackStateUpdate(BaseModel):
    is_playing: Optional[bool] = Field(default=None, alias="isPlaying")
    current_time: Optional[float] = Field(default=None, alias="currentTime")
    is_minimized: Optional[bool] = Field(default=None, alias="isMinimized")
