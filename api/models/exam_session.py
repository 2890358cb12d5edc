from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any, ClassVar

from pydantic import BaseModel, Field

from api.logger import get_logger
from api.settings import settings
from api.utils.ids import canonical_id
from api.utils.utc import local_today, parse_date, parse_datetime, utcnow


logger = get_logger(__name__)


class ExamType(str, enum.Enum):
    SITUATIONAL_JUDGMENT = "Situational Judgment"
    CLINICAL_SKILLS = "Clinical Skills"
    MINI_MOCK = "Mini-mock"

    @property
    def credit_property(self) -> str:
        return {
            ExamType.SITUATIONAL_JUDGMENT: "sj_credits",
            ExamType.CLINICAL_SKILLS: "cs_credits",
            ExamType.MINI_MOCK: "sjmini_credits",
        }[self]

    @property
    def allows_shared_credits(self) -> bool:
        return self != ExamType.MINI_MOCK


class ExamSession(BaseModel):
    PROPERTIES: ClassVar[list[str]] = [
        "exam_date",
        "start_time",
        "end_time",
        "capacity",
        "total_bookings",
        "mock_type",
        "location",
        "is_active",
    ]

    id: str = Field(description="HubSpot record ID of the exam session")
    exam_type: ExamType = Field(description="The type of the exam")
    exam_date: date | None = Field(None, description="The date of the exam")
    start_time: datetime | None = Field(None, description="Start of the exam")
    end_time: datetime | None = Field(None, description="End of the exam")
    location: str | None = Field(None, description="Where the exam takes place")
    capacity: int = Field(0, description="Maximum number of bookings")
    booked_count: int = Field(0, description="Number of active bookings (best-effort counter)")
    active: bool = Field(True, description="Whether the exam can be booked")

    @classmethod
    def from_hubspot(cls, obj: dict[str, Any]) -> ExamSession:
        props = obj.get("properties") or {}
        return cls(
            id=canonical_id(obj["id"]),
            exam_type=ExamType(props.get("mock_type")),
            exam_date=parse_date(props.get("exam_date")),
            start_time=parse_datetime(props.get("start_time")),
            end_time=parse_datetime(props.get("end_time")),
            location=props.get("location") or None,
            capacity=parse_count(props.get("capacity")),
            booked_count=parse_count(props.get("total_bookings")),
            active=str(props.get("is_active", "true")).lower() == "true",
        )

    @property
    def available_slots(self) -> int:
        return max(0, self.capacity - self.booked_count)

    @property
    def full(self) -> bool:
        return self.available_slots <= 0

    @property
    def status(self) -> str:
        if self.full:
            return "full"
        if self.available_slots <= settings.limited_slots_threshold:
            return "limited"
        return "available"

    def is_past(self, now: datetime | None = None) -> bool:
        """
        Return whether the exam has already taken place.

        If the start time is known it is compared to `now`, otherwise the exam counts as past once its date
        (in the exam timezone) is over.
        """

        if self.start_time:
            return self.start_time <= (now or utcnow())
        if self.exam_date:
            today = now.date() if now else local_today()
            return self.exam_date < today
        return False

    @property
    def serialize(self) -> dict[str, Any]:
        return {
            "mock_exam_id": self.id,
            "mock_type": self.exam_type.value,
            "exam_date": self.exam_date.isoformat() if self.exam_date else None,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "location": self.location or "TBD",
            "capacity": self.capacity,
            "total_bookings": self.booked_count,
            "available_slots": self.available_slots,
            "is_active": self.active,
            "status": self.status,
        }


def parse_count(value: Any) -> int:
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError, OverflowError):
        return 0


def parse_session(obj: dict[str, Any]) -> ExamSession | None:
    """Build an `ExamSession` from a HubSpot object, returning `None` for records that cannot be parsed."""

    try:
        return ExamSession.from_hubspot(obj)
    except ValueError as e:
        logger.warning(f"Skipping malformed exam session {obj.get('id')}: {e}")
        return None


def parse_sessions(objs: list[dict[str, Any]]) -> list[ExamSession]:
    return [session for obj in objs if (session := parse_session(obj))]
