from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


# --- Auth ---
class LoginRequest(BaseModel):
    username: str
    password: str


# --- Events ---
class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    event_date: Optional[date] = None
    location: Optional[str] = None


class EventOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    event_date: date
    location: Optional[str] = None
    thumbnail_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EventSummary(EventOut):
    photo_count: int = 0
    video_count: int = 0


# --- Media ---
class MediaOut(BaseModel):
    id: str
    event_id: Optional[str] = None
    url: str
    media_type: str
    description: Optional[str] = None
    ai_description: Optional[str] = None
    tags: list[str] = []
    faces_count: Optional[int] = None
    setting: Optional[str] = None
    thumbnail_url: Optional[str] = None
    file_size: Optional[int] = None
    order_index: int = 0
    event_date: Optional[date] = None
    uploaded_at: datetime

    class Config:
        from_attributes = True


# --- AI functions ---
class PhotoMetadataRequest(BaseModel):
    imageUrl: Optional[str] = None


class VideoMetadataRequest(BaseModel):
    videoUrl: Optional[str] = None


class ImageSearchRequest(BaseModel):
    imageBase64: Optional[str] = None


def media_to_dict(record) -> dict:
    return MediaOut.model_validate(record).model_dump(mode="json")
