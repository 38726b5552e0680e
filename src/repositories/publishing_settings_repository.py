from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.publishing_settings import PublishingSettings, SETTINGS_KEY


class PublishingSettingsRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_or_create(self) -> PublishingSettings:
        """Singleton settings row, created with auto-publish disabled and a zero quota."""
        settings = self.session.get(PublishingSettings, SETTINGS_KEY)
        if settings:
            return settings

        settings = PublishingSettings(id=SETTINGS_KEY, auto_publish=False, daily_quota=0)
        self.session.add(settings)
        try:
            self.session.commit()
        except IntegrityError:
            # Created concurrently by another request
            self.session.rollback()
            return self.session.get(PublishingSettings, SETTINGS_KEY)
        self.session.refresh(settings)
        return settings

    def update(self, **fields) -> PublishingSettings:
        settings = self.get_or_create()
        for key, value in fields.items():
            if hasattr(settings, key):
                setattr(settings, key, value)
        self.session.commit()
        self.session.refresh(settings)
        return settings
