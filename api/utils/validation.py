import re
from typing import Any

from api.exceptions.auth import InvalidInputError
from api.models.exam_session import ExamType
from api.utils.ids import canonical_id


STUDENT_ID_PATTERN = r"^[A-Z0-9]+$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
MAX_REASON_LENGTH = 500


def validate_identity(student_id: str, email: str) -> None:
    """Validate the student credentials before they are used for any request to the CRM."""

    errors = []
    if not student_id:
        errors.append("Student ID is required")
    elif not re.match(STUDENT_ID_PATTERN, student_id):
        errors.append("Student ID must contain only uppercase letters and numbers")

    if not email:
        errors.append("Email is required")
    elif not re.match(EMAIL_PATTERN, email):
        errors.append("Please enter a valid email address")

    if errors:
        raise InvalidInputError(*errors)


def validate_reason(reason: str | None) -> None:
    if reason and len(reason) > MAX_REASON_LENGTH:
        raise InvalidInputError(f"Cancellation reason cannot exceed {MAX_REASON_LENGTH} characters")


def validate_booking_details(exam_type: ExamType, dominant_hand: bool | None, attending_location: Any) -> None:
    """Check the fields that are only required for some exam types."""

    errors = []
    if exam_type == ExamType.CLINICAL_SKILLS and dominant_hand is None:
        errors.append("Dominant hand selection is required for Clinical Skills exams")
    if exam_type in (ExamType.SITUATIONAL_JUDGMENT, ExamType.MINI_MOCK) and not attending_location:
        errors.append("Attending location is required for Situational Judgment and Mini-mock exams")

    if errors:
        raise InvalidInputError(*errors)


def validate_booking_id(booking_id: Any) -> str:
    try:
        return canonical_id(booking_id)
    except (TypeError, ValueError):
        raise InvalidInputError("Invalid booking id") from None
