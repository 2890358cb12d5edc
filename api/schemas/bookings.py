from datetime import datetime

from pydantic import BaseModel, Field

from api.models.booking import BookingStatus, Location
from api.models.credits import CreditType
from api.models.exam_session import ExamType
from api.schemas.sessions import Session


class StudentCredentials(BaseModel):
    student_id: str = Field(description="The student's ID")
    email: str = Field(description="The student's email address")


class VerifyRequest(StudentCredentials):
    mock_type: ExamType = Field(description="The type of exam the student wants to book")


class BookingRequest(StudentCredentials):
    mock_exam_id: str = Field(description="HubSpot record ID of the exam session to book")
    mock_type: ExamType = Field(description="The type of the exam session")
    name: str = Field(min_length=1, max_length=100, description="The student's name")
    contact_id: str | int | None = Field(None, description="HubSpot record ID of the student's contact")
    dominant_hand: bool | None = Field(None, description="Whether the student is right-handed (Clinical Skills)")
    attending_location: Location | None = Field(
        None, description="Where the student attends the exam (Situational Judgment and Mini-mock)"
    )


class CancelRequest(StudentCredentials):
    reason: str | None = Field(None, description="Why the booking is cancelled")


class Booking(BaseModel):
    id: str = Field(description="HubSpot record ID of the booking")
    booking_id: str = Field(description="Human readable booking identifier")
    name: str = Field(description="The student's name")
    email: str = Field(description="The student's email address")
    mock_type: ExamType | None = Field(description="The type of the booked exam")
    status: BookingStatus = Field(description="The status of the booking")
    credit_type: CreditType | None = Field(description="The credit bucket consumed by this booking")
    dominant_hand: bool | None = Field(description="Whether the student is right-handed")
    attending_location: Location | None = Field(description="Where the student attends the exam")
    created_at: datetime | None = Field(description="When the booking was created")
    cancelled_at: datetime | None = Field(description="When the booking was cancelled")
    mock_exam: Session | None = Field(description="The booked exam session")


class Reservation(BaseModel):
    booking: Booking = Field(description="The created booking")
    credit_type: CreditType = Field(description="The credit bucket that has been used")
    remaining_credits: int = Field(description="Credits left for this exam type")
    confirmation_message: str = Field(description="Human readable confirmation")


class CreditsRestored(BaseModel):
    credit_type: CreditType = Field(description="The credit bucket that has been refunded")
    amount: int = Field(description="Number of refunded credits")
    remaining_credits: int = Field(description="Credits available for this exam type after the refund")


class Cancellation(BaseModel):
    booking_id: str = Field(description="Human readable booking identifier")
    status: BookingStatus = Field(description="The new status of the booking")
    credits_restored: CreditsRestored = Field(description="The refunded credit")
    message: str = Field(description="Human readable confirmation")


class Pagination(BaseModel):
    current_page: int = Field(description="The current page")
    total_pages: int = Field(description="Number of pages")
    total_bookings: int = Field(description="Number of bookings matching the filter")
    has_next: bool = Field(description="Whether there is a next page")
    has_previous: bool = Field(description="Whether there is a previous page")


class BookingList(BaseModel):
    bookings: list[Booking] = Field(description="The bookings on this page")
    pagination: Pagination = Field(description="Pagination info")
    partial: bool = Field(description="Whether some bookings could not be loaded")
