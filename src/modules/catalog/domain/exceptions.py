"""Catalog domain exceptions."""

from fastapi import status

from src.core.domain.exceptions import DomainException


class DataUnavailableError(DomainException):
    """Raised when the registry is unreachable and nothing is cached."""

    http_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "DATA_UNAVAILABLE"

    def __init__(self, message: str = "Channel registry is unavailable"):
        super().__init__(message)


class InvalidCuratedConfigError(DomainException):
    """Raised when the curated channel file is malformed."""

    http_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INVALID_CURATED_CONFIG"

    def __init__(self, message: str):
        super().__init__(f"Invalid curated channel configuration: {message}")


class RegistryFetchError(RuntimeError):
    """Registry request failed (network, HTTP status or payload shape)."""
