"""
Utility modules for CreatorConnect.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    unauthorized,
    forbidden,
    not_found,
    conflict,
    too_many_requests,
    internal_error
)
from .exceptions import (
    CreatorConnectError,
    NotFoundError,
    CampaignNotFoundError,
    CompanyNotFoundError,
    CnpjNotFoundError,
    ValidationError,
    InsufficientBalanceError,
    InvalidStatusTransitionError,
    DuplicateError,
    AuthorizationError,
    NotQualifiedError,
    ExternalServiceError
)
