from starlette import status

from api.exceptions.api_exception import APIException


class ExamSessionNotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Mock exam not found"
    description = "The requested exam session does not exist."
    code = "EXAM_NOT_FOUND"


class ExamSessionNotActiveError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Mock exam is not available for booking"
    description = "The requested exam session is not active."
    code = "EXAM_NOT_ACTIVE"


class ExamTypeMismatchError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Mock exam type does not match the requested exam type"
    description = "The exam type of the request differs from the exam type of the session."
    code = "EXAM_TYPE_MISMATCH"


class SessionFullError(APIException):
    status_code = status.HTTP_409_CONFLICT
    detail = "This mock exam session is now full"
    description = "The requested exam session has no available slots left."
    code = "EXAM_FULL"


class ExamInPastError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "This mock exam has already taken place"
    description = "Bookings for exam sessions in the past cannot be created or cancelled."
    code = "EXAM_IN_PAST"
