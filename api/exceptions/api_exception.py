from typing import Any, Type

from starlette.exceptions import HTTPException


class APIException(HTTPException):
    status_code: int
    detail: str
    description: str
    code: str

    def __init__(self) -> None:
        super().__init__(self.status_code, self.detail)


def responses(
    default_type: Any, *args: Type[APIException], success_status: int = 200
) -> dict[int | str, dict[str, Any]]:
    """Build the `responses` documentation of an endpoint from the exceptions it may raise."""

    exceptions: dict[int, list[Type[APIException]]] = {}
    for exc in args:
        exceptions.setdefault(exc.status_code, []).append(exc)

    return {
        success_status: {"model": default_type},
        **{
            status_code: {
                "description": " / ".join(exc.description for exc in excs),
                "content": {
                    "application/json": {
                        "examples": {
                            exc.__name__: {
                                "description": exc.description,
                                "value": {"success": False, "error": exc.detail, "code": exc.code},
                            }
                            for exc in excs
                        }
                    }
                },
            }
            for status_code, excs in exceptions.items()
        },
    }
