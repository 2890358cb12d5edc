from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000
    root_path: str = ""

    debug: bool = False
    reload: bool = False

    cache_ttl: int = 300

    hubspot_token: str = ""
    hubspot_base_url: str = "https://api.hubapi.com"
    hubspot_timeout: float = 10.0
    hubspot_max_retries: int = 3
    hubspot_retry_delay: float = 1.0  # seconds, doubled on every retry
    hubspot_webhook_secret: str | None = None
    hubspot_webhook_max_age: int = 300  # seconds

    contacts_object: str = "0-1"
    bookings_object: str = "2-50158943"
    exam_sessions_object: str = "2-50158913"
    notes_object: str = "notes"

    booking_contact_association: int = 1289
    booking_session_association: int = 1291
    note_contact_association: int = 202

    batch_object_limit: int = Field(100, gt=0)
    batch_association_limit: int = Field(1000, gt=0)
    batch_association_create_limit: int = Field(100, gt=0)

    exam_timezone: str = "America/Toronto"
    limited_slots_threshold: int = 3

    redis_url: str = Field("redis://redis:6379/4", pattern=r"^redis://.*$")

    sentry_dsn: str | None = None
    sentry_environment: str = "test"


settings = Settings()
