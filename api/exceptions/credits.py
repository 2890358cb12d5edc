from starlette import status

from api.exceptions.api_exception import APIException


class InsufficientCreditsError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Insufficient credits for booking"
    description = "The student does not have any credits left that can be used for this exam type."
    code = "INSUFFICIENT_CREDITS"

    def __init__(self, available: int = 0):
        super().__init__()

        self.available = available
        self.detail = f"Insufficient credits for booking: {available} credits available"
