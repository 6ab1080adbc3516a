from typing import Any, Optional, Dict, Tuple
from fastapi.responses import JSONResponse

from contesto.utils.serialize import to_json

# (success, message, data, status_code) returned by every service operation
ServiceResult = Tuple[bool, str, Any, int]


def success_response(
    message: str = "Success",
    data: Any = None,
    status_code: int = 200
) -> JSONResponse:
    """
    Standard success response

    Args:
        message: Success message
        data: Response data (optional); Mongo documents are made JSON-safe
        status_code: HTTP status code (default: 200)

    Returns:
        JSONResponse with success format
    """
    response = {
        "success": True,
        "message": message
    }

    if data is not None:
        response["data"] = to_json(data)

    return JSONResponse(content=response, status_code=status_code)


def error_response(
    message: str = "Error",
    status_code: int = 400
) -> JSONResponse:
    """
    Standard error response

    Args:
        message: Error message
        status_code: HTTP status code (default: 400)

    Returns:
        JSONResponse with error format
    """
    return JSONResponse(
        content={
            "success": False,
            "message": message
        },
        status_code=status_code
    )


def validation_error_response(
    message: str = "Validation error",
    errors: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """
    Standard validation error response (422), with per-field errors when given.
    """
    response = {
        "success": False,
        "message": message
    }

    if errors:
        response["errors"] = errors

    return JSONResponse(content=response, status_code=422)


def service_response(
    result: ServiceResult,
    data_key: Optional[str] = None
) -> JSONResponse:
    """
    Convert a ``(success, message, data, status_code)`` service result into a response.

    The status code chosen by the service is used either way. On success the
    data is wrapped under ``data_key`` when one is given.
    """
    success, message, data, status_code = result

    if not success:
        return error_response(message=message, status_code=status_code)

    if data_key is not None:
        data = {data_key: data}

    return success_response(message=message, data=data, status_code=status_code)
