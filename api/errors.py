"""
Mapping of sale errors to HTTP responses.

- Authorization -> 403
- Validation -> 400
- Schedule, Capacity, Funds -> 409
- Collaborator transfer failures -> 502
"""

from __future__ import annotations

from fastapi import HTTPException

from domain.errors import AuthorizationError, SaleError, ValidationError
from repositories.memory import AssetTransferError


def http_error(error: Exception, action: str) -> HTTPException:
    """Translate an exception raised while performing `action`."""

    if isinstance(error, HTTPException):
        return error
    if isinstance(error, AuthorizationError):
        return HTTPException(status_code=403, detail=f"{type(error).__name__}: {error}")
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=f"{type(error).__name__}: {error}")
    if isinstance(error, SaleError):
        return HTTPException(status_code=409, detail=f"{type(error).__name__}: {error}")
    if isinstance(error, AssetTransferError):
        return HTTPException(status_code=502, detail=f"Transfer rejected while trying to {action}: {error}")
    return HTTPException(status_code=500, detail=f"Failed to {action}: {str(error)}")


__all__ = ["http_error"]
