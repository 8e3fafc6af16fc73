"""
Custom exception hierarchy for the Smart Pay relay.

All application-level exceptions inherit from AppException so they can be
caught by a single global handler. The payment flows themselves convert
these into redirect targets or silent no-ops; only the HTTP layer ever sees
them unhandled.
"""


class AppException(Exception):
    """Base for all app exceptions."""

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: dict | None = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class MappingError(AppException):
    """Raised when checkout data cannot be expressed in the PSP vocabulary."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(
            status_code=422,
            error_code="MAPPING_ERROR",
            message=message,
            details=details,
        )


class UnsupportedCountryError(MappingError):
    def __init__(self, country: str):
        super().__init__(
            message=f"Unknown or unsupported country code '{country}'",
            details={"kind": "UnsupportedCountry", "value": country},
        )


class UnsupportedBrandError(MappingError):
    def __init__(self, brand: str):
        super().__init__(
            message=f"Unknown or unsupported payment method '{brand}'",
            details={"kind": "UnsupportedBrand", "value": brand},
        )


class SmartPayAuthenticationError(AppException):
    """Raised when the PSP rejects the refresh or access token."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(
            status_code=502,
            error_code="PSP_AUTHENTICATION_ERROR",
            message=message,
            details=details,
        )


class SignatureError(AppException):
    """Raised when inbound data is not signed with the expected key."""

    def __init__(self, message: str = "Illegal signature", details: dict | None = None):
        super().__init__(
            status_code=400,
            error_code="ILLEGAL_SIGNATURE",
            message=message,
            details=details,
        )


class UnavailableContextError(AppException):
    """Raised when an operation needs request data that is not available."""

    def __init__(self, message: str = "Request context not available"):
        super().__init__(
            status_code=400,
            error_code="UNAVAILABLE_CONTEXT",
            message=message,
        )


class ExternalServiceError(AppException):
    """Raised when an external API call (Smart Pay) fails."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(
            status_code=502,
            error_code="EXTERNAL_SERVICE_ERROR",
            message=message,
            details=details,
        )
