"""
Custom exceptions for CreatorConnect business logic.

Services raise these; the error handler registered in create_app() turns
them into the standard error body with the HTTP status in `status_code`.
"""


class CreatorConnectError(Exception):
    """Base exception for all CreatorConnect business logic errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "CREATORCONNECT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(CreatorConnectError):
    """Resource not found."""

    status_code = 404

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with ID {identifier} not found"
        super().__init__(message, f"{resource.upper()}_NOT_FOUND")


class CampaignNotFoundError(NotFoundError):
    """Campaign not found."""

    def __init__(self, identifier=None):
        super().__init__("Campaign", identifier)


class CompanyNotFoundError(NotFoundError):
    """Company not found."""

    def __init__(self, identifier=None):
        super().__init__("Company", identifier)


class CnpjNotFoundError(NotFoundError):
    """CNPJ unknown to every registry we query."""

    def __init__(self, cnpj: str = None):
        self.cnpj = cnpj
        CreatorConnectError.__init__(self, "CNPJ não encontrado", "CNPJ_NOT_FOUND")


class ValidationError(CreatorConnectError):
    """Invalid input data."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class InsufficientBalanceError(CreatorConnectError):
    """Not enough wallet balance for the operation."""

    def __init__(self, current: int, required: int):
        self.current = current
        self.required = required
        super().__init__("Saldo insuficiente na carteira", "INSUFFICIENT_BALANCE")


class InvalidStatusTransitionError(CreatorConnectError):
    """Invalid status transition for a resource."""

    status_code = 409

    def __init__(self, resource: str, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        message = f"Cannot change {resource} status from '{from_status}' to '{to_status}'"
        super().__init__(message, "INVALID_STATUS_TRANSITION")


class DuplicateError(CreatorConnectError):
    """Resource already exists."""

    status_code = 409

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} already exists"
        if identifier:
            message = f"{resource} with {identifier} already exists"
        super().__init__(message, "DUPLICATE_ENTRY")


class AuthorizationError(CreatorConnectError):
    """User not authorized for this operation."""

    status_code = 403

    def __init__(self, message: str = "Not authorized for this operation"):
        super().__init__(message, "PERMISSION_DENIED")


class NotQualifiedError(CreatorConnectError):
    """Creator does not match the campaign targeting."""

    status_code = 403

    def __init__(self, message: str = "Creator does not meet campaign requirements"):
        super().__init__(message, "NOT_QUALIFIED")


class ExternalServiceError(CreatorConnectError):
    """Error communicating with a third-party API (Meta, BrasilAPI, ViaCEP)."""

    status_code = 502

    def __init__(self, service: str, message: str, original_error: Exception = None):
        self.service = service
        self.original_error = original_error
        super().__init__(f"{service}: {message}", "EXTERNAL_SERVICE_ERROR")
