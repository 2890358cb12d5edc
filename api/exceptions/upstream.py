from __future__ import annotations

from typing import TYPE_CHECKING

from starlette import status

from api.exceptions.api_exception import APIException


if TYPE_CHECKING:
    from api.services.compensation import CompensationReport


class UpstreamUnavailableError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "The booking service is temporarily unavailable. Please try again in a moment."
    description = "The CRM could not be reached or rejected every request."
    code = "UPSTREAM_UNAVAILABLE"


class PartialFailureError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Your request could not be completed. Please try again later or contact support."
    description = "A multi-step operation failed and could not be fully rolled back."
    code = "PARTIAL_FAILURE"

    def __init__(self, report: CompensationReport):
        super().__init__()

        self.report = report
