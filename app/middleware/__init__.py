"""
Middleware package for CreatorConnect.
"""
from .auth import (
    require_auth,
    require_role,
    require_company,
    create_access_token,
    create_refresh_token,
    decode_token,
    user_from_token,
    company_access,
    TokenExpiredError,
)
from .rate_limit import limiter, init_rate_limiter
from .request_id import init_request_id_tracking
