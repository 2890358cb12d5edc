from __future__ import annotations

import enum
from typing import Any, ClassVar

from pydantic import BaseModel, Field

from api.models.exam_session import ExamType, parse_count
from api.utils.ids import canonical_id


SHARED_CREDITS_PROPERTY = "shared_mock_credits"


class CreditType(str, enum.Enum):
    SPECIFIC = "specific"
    SHARED = "shared"


class CreditBalance(BaseModel):
    PROPERTIES: ClassVar[list[str]] = [*(t.credit_property for t in ExamType), SHARED_CREDITS_PROPERTY]

    contact_id: str = Field(description="HubSpot record ID of the student's contact")
    specific: dict[ExamType, int] = Field(default_factory=dict, description="Credits usable for one exam type")
    shared: int = Field(0, ge=0, description="Credits usable for any exam type except mini mocks")

    @classmethod
    def from_hubspot(cls, obj: dict[str, Any]) -> CreditBalance:
        props = obj.get("properties") or {}
        return cls(
            contact_id=canonical_id(obj["id"]),
            specific={t: parse_count(props.get(t.credit_property)) for t in ExamType},
            shared=parse_count(props.get(SHARED_CREDITS_PROPERTY)),
        )

    def specific_for(self, exam_type: ExamType) -> int:
        return self.specific.get(exam_type, 0)

    def shared_for(self, exam_type: ExamType) -> int:
        return self.shared if exam_type.allows_shared_credits else 0

    def available_for(self, exam_type: ExamType) -> int:
        return self.specific_for(exam_type) + self.shared_for(exam_type)

    def get(self, credit_type: CreditType, exam_type: ExamType) -> int:
        if credit_type == CreditType.SPECIFIC:
            return self.specific_for(exam_type)
        return self.shared

    def with_value(self, credit_type: CreditType, exam_type: ExamType, value: int) -> CreditBalance:
        if credit_type == CreditType.SPECIFIC:
            return self.model_copy(update={"specific": {**self.specific, exam_type: value}})
        return self.model_copy(update={"shared": value})


def credit_property(credit_type: CreditType, exam_type: ExamType) -> str:
    if credit_type == CreditType.SPECIFIC:
        return exam_type.credit_property
    return SHARED_CREDITS_PROPERTY


def token_label(credit_type: CreditType, exam_type: ExamType) -> str:
    """Return the value of the legacy `token_used` booking property."""

    if credit_type == CreditType.SHARED:
        return "Shared Token"
    return f"{exam_type.value} Token"


def credit_type_from_token(token: str | None) -> CreditType | None:
    if not token:
        return None
    if token == "Shared Token":
        return CreditType.SHARED
    if any(token == f"{t.value} Token" for t in ExamType):
        return CreditType.SPECIFIC
    return None
