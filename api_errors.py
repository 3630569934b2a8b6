from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    field: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": False,
            "code": self.code,
            "message": self.message,
            "field": self.field,
        }


def missing_fields_error(fields: list[str]) -> ApiError:
    if len(fields) == 1:
        field = fields[0]
        return ApiError(
            status_code=400,
            code="missing_field",
            message=f"{field} is required",
            field=field,
        )
    joined = ", ".join(fields)
    return ApiError(
        status_code=400,
        code="missing_fields",
        message=f"{joined} are required",
        field=",".join(fields),
    )


def validation_error(message: str, field: Optional[str] = None, status_code: int = 400) -> ApiError:
    return ApiError(status_code=status_code, code="validation_error", message=message, field=field)


def not_found(resource: str, field: Optional[str] = None, code: str = "not_found") -> ApiError:
    return ApiError(status_code=404, code=code, message=f"{resource} not found", field=field)


def forbidden(message: str, field: Optional[str] = None) -> ApiError:
    return ApiError(status_code=403, code="forbidden", message=f"Unauthorized: {message}", field=field)
