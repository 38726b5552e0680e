"""Summary counters returned by every batch operation"""

from pydantic import BaseModel, Field


class FetchSummary(BaseModel):
    sources_polled: int = Field(default=0, description="Sources fetched and parsed successfully")
    new_items_created: int = Field(default=0, description="Fetched items inserted as PENDING")
    source_errors: int = Field(default=0, description="Sources that failed to fetch or store")


class GenerationSummary(BaseModel):
    processed: int = 0
    errors: int = 0


class PublishSummary(BaseModel):
    published: int = 0
    errors: int = 0
