"""HTTP error builders shared by the routers."""

from fastapi import HTTPException, status
from postgrest.exceptions import APIError

from crm_backend.access import RowLevelSecurityError


def not_found(what: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": "not_found", "details": f"{what} not found"}
    )


def invalid_request(details: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": "invalid_request", "details": details}
    )


def policy_violation(exc: RowLevelSecurityError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": "policy_violation", "details": str(exc)}
    )


def server_error(error: str, details: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": error, "details": details}
    )


def empty_update() -> HTTPException:
    return invalid_request("At least one field must be provided for update")


# Postgres SQLSTATEs PostgREST passes through in APIError.code
_RLS_VIOLATION = "42501"
_CLIENT_ERROR_CODES = {
    "23502": "A required field is missing",
    "23503": "Referenced record does not exist",
    "23505": "Record already exists",
    "23514": "Value not allowed",
    "22P02": "Malformed identifier",
}


def from_api_error(exc: APIError, error: str, details: str) -> HTTPException:
    """
    Map a database error to the standard error shape.

    Row-level security rejections by the database answer exactly like the
    in-process policy check; constraint violations are 400; anything else
    is a 500 with the given error code.
    """
    if exc.code == _RLS_VIOLATION:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "policy_violation", "details": exc.message or str(exc)}
        )
    if exc.code in _CLIENT_ERROR_CODES:
        return invalid_request(_CLIENT_ERROR_CODES[exc.code])
    return server_error(error, details)
