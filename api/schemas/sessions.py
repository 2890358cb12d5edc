from datetime import date, datetime

from pydantic import BaseModel, Field

from api.models.exam_session import ExamType


class Session(BaseModel):
    mock_exam_id: str = Field(description="HubSpot record ID of the exam session")
    mock_type: ExamType = Field(description="The type of the exam")
    exam_date: date | None = Field(description="The date of the exam")
    start_time: datetime | None = Field(description="Start of the exam")
    end_time: datetime | None = Field(description="End of the exam")
    location: str = Field(description="Where the exam takes place")
    capacity: int = Field(description="Maximum number of bookings")
    total_bookings: int = Field(description="Number of active bookings")
    available_slots: int = Field(description="Number of slots left")
    is_active: bool = Field(description="Whether the exam can be booked")
    status: str = Field(description="`available`, `limited` or `full`")
