# cores/exceptions.py
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


class LMSError(APIException):
    """Base for errors the scoring/analytics services surface to callers."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "The request could not be processed."
    default_code = "lms_error"

    def __init__(self, message=None, **extra):
        super().__init__(detail=message or self.default_detail)
        self.message = str(self.detail)
        self.extra = extra


class ValidationError(LMSError):
    default_detail = "Invalid input."
    default_code = "invalid"


class InvalidGrade(ValidationError):
    default_detail = "Invalid grade."
    default_code = "invalid_grade"


class NotFound(LMSError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class Forbidden(LMSError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized for this resource."
    default_code = "forbidden"


class AttemptLimitExceeded(LMSError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "attempt_limit"

    def __init__(self, used, allowed):
        self.used = used
        self.allowed = allowed
        super().__init__(
            f"Attempt limit reached ({allowed}).",
            attempts={"used": used, "allowed": allowed, "left": 0},
        )


class DecryptError(Exception):
    """A PII token failed authentication, had a bad shape, or matched no key."""


class StorageError(Exception):
    """An object storage call failed."""


def lms_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, LMSError):
        response.data = {"success": False, "message": exc.message, **exc.extra}
    elif isinstance(response.data, dict) and "detail" in response.data:
        response.data = {"success": False, "message": str(response.data["detail"])}
    else:
        # serializer field errors
        response.data = {"success": False, "message": "Invalid request.", "errors": response.data}
    return response
