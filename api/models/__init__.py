from .association import Association
from .booking import Booking, BookingStatus, Location
from .contact import Contact
from .credits import CreditBalance, CreditType
from .exam_session import ExamSession, ExamType


__all__ = [
    "Association",
    "Booking",
    "BookingStatus",
    "Contact",
    "CreditBalance",
    "CreditType",
    "ExamSession",
    "ExamType",
    "Location",
]
