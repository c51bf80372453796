from fancard.middlewares.db_middleware import DatabaseMiddleware
from fancard.middlewares.auth_middleware import RoleMiddleware, IsAdmin, IsStaff
from fancard.middlewares.rate_limit_middleware import RateLimitMiddleware
from fancard.middlewares.scan_middleware import ScanReleaseMiddleware

__all__ = ["DatabaseMiddleware", "RoleMiddleware", "IsAdmin", "IsStaff", "RateLimitMiddleware",
           "ScanReleaseMiddleware"]
