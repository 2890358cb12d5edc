from starlette import status

from api.exceptions.api_exception import APIException


class InvalidInputError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid input"
    description = "The request data is malformed."
    code = "VALIDATION_ERROR"

    def __init__(self, *messages: str):
        super().__init__()

        self.messages = list(messages)
        if messages:
            self.detail = f"Invalid input: {', '.join(messages)}"


class AuthenticationFailedError(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Authentication failed. Please check your Student ID and email."
    description = "No student with the given student id and email exists."
    code = "AUTH_FAILED"


class InvalidSignatureError(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Unauthorized"
    description = "The webhook signature is missing, expired or invalid."
    code = "INVALID_SIGNATURE"
