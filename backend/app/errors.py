# typed errors raised by the assessment workflow and data layer
# each error carries the http status and machine code used by the api handler and the client

from typing import Optional


class PathifyError(Exception):
    """base class for all domain errors"""

    status_code: int = 400
    code: str = "error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"detail": self.detail, "code": self.code}


class ValidationError(PathifyError):
    """missing or malformed required field"""

    status_code = 422
    code = "validation_error"


class NotFoundError(PathifyError):
    """referenced child, psychologist, request, or user does not exist"""

    status_code = 404
    code = "not_found"


class PreconditionFailedError(PathifyError):
    """workflow guard violated: the child is not in the required status"""

    status_code = 412
    code = "precondition_failed"


class AuthorizationError(PathifyError):
    """role or ownership mismatch"""

    status_code = 403
    code = "forbidden"


class ConflictError(PathifyError):
    """a concurrent transition won the race"""

    status_code = 409
    code = "conflict"


ERRORS_BY_CODE: dict[str, type[PathifyError]] = {
    cls.code: cls
    for cls in (ValidationError, NotFoundError, PreconditionFailedError, AuthorizationError, ConflictError)
}


def error_from_response(status_code: int, body: Optional[dict]) -> Optional[PathifyError]:
    """rebuild a typed error from an api error body, none if the status is not a domain error"""
    body = body or {}
    detail = body.get("detail")
    if not isinstance(detail, str):
        # pydantic request validation returns a list of issues
        detail = str(detail) if detail else "Request failed"

    cls = ERRORS_BY_CODE.get(body.get("code", ""))
    if cls is not None:
        return cls(detail)

    for candidate in ERRORS_BY_CODE.values():
        if candidate.status_code == status_code:
            return candidate(detail)
    if status_code == 401:
        return AuthorizationError(detail)
    return None
