from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, ClassVar

from pydantic import BaseModel, Field

from api.models.credits import CreditType, credit_type_from_token, token_label
from api.models.exam_session import ExamSession, ExamType
from api.utils.ids import canonical_id
from api.utils.utc import parse_datetime


class BookingStatus(str, enum.Enum):
    SCHEDULED = "Scheduled"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"
    NO_SHOW = "No Show"

    @classmethod
    def parse(cls, status: str | None, is_active: str | None = None) -> BookingStatus:
        status = (status or "").strip().lower().replace("_", " ")
        is_active = (is_active or "").strip().lower()
        if status in ("cancelled", "canceled") or is_active in ("cancelled", "canceled", "false"):
            return cls.CANCELLED
        if status in ("noshow", "no show"):
            return cls.NO_SHOW
        if status == "completed":
            return cls.COMPLETED
        return cls.SCHEDULED


class Location(str, enum.Enum):
    MISSISSAUGA = "mississauga"
    CALGARY = "calgary"
    VANCOUVER = "vancouver"
    MONTREAL = "montreal"
    RICHMOND_HILL = "richmond_hill"


class Booking(BaseModel):
    PROPERTIES: ClassVar[list[str]] = [
        "booking_id",
        "name",
        "email",
        "student_id",
        "mock_type",
        "mock_exam_id",
        "dominant_hand",
        "attending_location",
        "credit_type",
        "token_used",
        "status",
        "is_active",
        "cancelled_at",
        "cancellation_reason",
        "hs_createdate",
    ]

    id: str = Field(description="HubSpot record ID of the booking")
    booking_id: str = Field(description="Human readable booking identifier")
    student_id: str = Field(description="The student's ID")
    email: str = Field(description="The student's email address")
    name: str = Field("", description="The student's name")
    exam_session_id: str | None = Field(None, description="HubSpot record ID of the booked exam session")
    exam_type: ExamType | None = Field(None, description="The type of the booked exam")
    credit_type: CreditType | None = Field(None, description="The credit bucket consumed by this booking")
    status: BookingStatus = Field(BookingStatus.SCHEDULED, description="The status of the booking")
    dominant_hand: bool | None = Field(None, description="Whether the student is right-handed")
    attending_location: Location | None = Field(None, description="Where the student attends the exam")
    created_at: datetime | None = Field(None, description="When the booking was created")
    cancelled_at: datetime | None = Field(None, description="When the booking was cancelled")
    cancellation_reason: str | None = Field(None, description="Why the booking was cancelled")

    @classmethod
    def from_hubspot(cls, obj: dict[str, Any]) -> Booking:
        props = obj.get("properties") or {}
        dominant_hand = props.get("dominant_hand")
        mock_type = props.get("mock_type")
        location = props.get("attending_location")
        return cls(
            id=canonical_id(obj["id"]),
            booking_id=props.get("booking_id") or "",
            student_id=props.get("student_id") or "",
            email=props.get("email") or "",
            name=props.get("name") or "",
            exam_session_id=canonical_id(props["mock_exam_id"]) if props.get("mock_exam_id") else None,
            exam_type=ExamType(mock_type) if mock_type in ExamType._value2member_map_ else None,
            credit_type=(
                CreditType(props["credit_type"])
                if props.get("credit_type") in CreditType._value2member_map_
                else credit_type_from_token(props.get("token_used"))
            ),
            status=BookingStatus.parse(props.get("status"), props.get("is_active")),
            dominant_hand=None if dominant_hand in (None, "") else str(dominant_hand).lower() == "true",
            attending_location=Location(location) if location in Location._value2member_map_ else None,
            created_at=parse_datetime(props.get("hs_createdate") or obj.get("createdAt")),
            cancelled_at=parse_datetime(props.get("cancelled_at")),
            cancellation_reason=props.get("cancellation_reason") or None,
        )

    @property
    def active(self) -> bool:
        return self.status != BookingStatus.CANCELLED

    def to_properties(self) -> dict[str, str]:
        props = {
            "booking_id": self.booking_id,
            "name": self.name,
            "email": self.email,
            "student_id": self.student_id,
            "status": self.status.value,
            "is_active": "Cancelled" if self.status == BookingStatus.CANCELLED else "Active",
        }
        if self.exam_session_id:
            props["mock_exam_id"] = self.exam_session_id
        if self.exam_type:
            props["mock_type"] = self.exam_type.value
        if self.exam_type and self.credit_type:
            props["credit_type"] = self.credit_type.value
            props["token_used"] = token_label(self.credit_type, self.exam_type)
        if self.dominant_hand is not None:
            props["dominant_hand"] = str(self.dominant_hand).lower()
        if self.attending_location:
            props["attending_location"] = self.attending_location.value
        return props

    def serialize(self, session: ExamSession | None = None) -> dict[str, Any]:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "name": self.name,
            "email": self.email,
            "mock_type": self.exam_type.value if self.exam_type else None,
            "status": self.status.value,
            "credit_type": self.credit_type.value if self.credit_type else None,
            "dominant_hand": self.dominant_hand,
            "attending_location": self.attending_location.value if self.attending_location else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "mock_exam": session.serialize if session else None,
        }
