from starlette import status

from api.exceptions.api_exception import APIException


class BookingNotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Booking not found"
    description = "The requested booking does not exist."
    code = "BOOKING_NOT_FOUND"


class ForbiddenError(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Access denied. This booking does not belong to you."
    description = "The booking is not owned by the requesting student."
    code = "ACCESS_DENIED"


class DuplicateBookingError(APIException):
    status_code = status.HTTP_409_CONFLICT
    detail = "Duplicate booking detected: You already have a booking for this exam session"
    description = "The student already has an active booking for this exam session."
    code = "DUPLICATE_BOOKING"


class AlreadyCancelledError(APIException):
    status_code = status.HTTP_409_CONFLICT
    detail = "Booking is already cancelled"
    description = "The booking has already been cancelled."
    code = "ALREADY_CANCELED"


class ContactMismatchError(ForbiddenError):
    detail = "The given contact does not match the student credentials"
    description = "The contact id of the request does not belong to the authenticated student."
