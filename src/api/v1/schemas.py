from datetime import datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, Field, HttpUrl, field_validator

from ...models.enums import FeedSourceKind, FetchedItemStatus
from ...pipeline.schemas import FetchSummary, GenerationSummary, PublishSummary

__all__ = [
    "FetchSummary",
    "GenerationSummary",
    "PublishSummary",
]


class ProcessRequest(BaseModel):
    limit: int = Field(default=5, ge=1, le=50, description="Pending items to generate in this sweep")


class CombineRequest(BaseModel):
    item_ids: List[int] = Field(..., min_length=1, description="Items to merge; the first becomes the primary")

    class Config:
        json_schema_extra = {
            "example": {"item_ids": [12, 15, 18]}
        }


class CombineResponse(BaseModel):
    primary_item_id: int


class PublishRequest(BaseModel):
    item_id: int
    author_id: Optional[str] = Field(None, description="Defaults to the publishing settings author")
    category_id: Optional[str] = Field(None, description="Defaults to the publishing settings category")


class PublishResponse(BaseModel):
    post_id: int


class FetchedItemResponse(BaseModel):
    id: int
    source_id: int
    original_url: str
    original_title: str
    original_excerpt: Optional[str] = None
    published_at: Optional[datetime] = None
    status: FetchedItemStatus
    generated_title: Optional[str] = None
    generated_excerpt: Optional[str] = None
    generated_content: Optional[str] = None
    processed_at: Optional[datetime] = None
    post_id: Optional[int] = None
    fetched_at: datetime

    class Config:
        from_attributes = True


class FetchedItemListResponse(BaseModel):
    items: List[FetchedItemResponse]
    total: int
    page: int
    limit: int


class ItemStatusUpdateRequest(BaseModel):
    status: FetchedItemStatus


class PublishingSettingsResponse(BaseModel):
    auto_publish: bool
    daily_quota: int
    default_author_id: Optional[str] = None
    default_category_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublishingSettingsUpdateRequest(BaseModel):
    auto_publish: Optional[bool] = None
    daily_quota: Optional[int] = Field(None, ge=0, le=100)
    default_author_id: Optional[str] = None
    default_category_id: Optional[str] = None

    @field_validator("auto_publish", "daily_quota")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class FeedSourceCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    url: HttpUrl
    kind: FeedSourceKind = FeedSourceKind.RSS
    language: str = "zh-TW"
    is_active: bool = True
    poll_interval_minutes: int = Field(default=60, ge=5)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class FeedSourceUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    url: Optional[HttpUrl] = None
    language: Optional[str] = None
    is_active: Optional[bool] = None
    poll_interval_minutes: Optional[int] = Field(None, ge=5)


class FeedSourceResponse(BaseModel):
    id: int
    name: str
    url: str
    kind: FeedSourceKind
    language: str
    is_active: bool
    poll_interval_minutes: int
    last_polled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    environment: str
    database: str
    item_counts: Dict[str, int]
    timestamp: str
