from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.sql import func

from ..core.database import Base
from ..exceptions import ConfigurationError

SETTINGS_KEY = "default"


class PublishingSettings(Base):
    __tablename__ = "publishing_settings"

    id = Column(String(50), primary_key=True, default=SETTINGS_KEY)
    auto_publish = Column(Boolean, nullable=False, default=False)
    daily_quota = Column(Integer, nullable=False, default=0)
    default_author_id = Column(String(100), nullable=True)
    default_category_id = Column(String(100), nullable=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def to_config(self) -> "PublishingConfig":
        return PublishingConfig(
            auto_publish=bool(self.auto_publish),
            daily_quota=self.daily_quota or 0,
            default_author_id=self.default_author_id,
            default_category_id=self.default_category_id,
        )


@dataclass(frozen=True)
class PublishingConfig:
    """Snapshot of the settings row, taken once per auto-publish run."""
    auto_publish: bool
    daily_quota: int
    default_author_id: Optional[str]
    default_category_id: Optional[str]

    @property
    def has_defaults(self) -> bool:
        return bool(self.default_author_id) and bool(self.default_category_id)

    def require_defaults(self) -> Tuple[str, str]:
        if not self.has_defaults:
            raise ConfigurationError("Default author and category must be set before publishing")
        return self.default_author_id, self.default_category_id
