"""Standard API response models."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error response model."""

    error: dict

    @classmethod
    def create(
        cls,
        code: str,
        message: str,
        details: dict | None = None,
    ) -> "ErrorResponse":
        error_dict = {"code": code, "message": message}
        if details:
            error_dict["details"] = details
        return cls(error=error_dict)
