from storefront.utils.base.enums import BaseEnum, UserRole
from storefront.utils.base.errors import (
    Conflict,
    DependencyFailure,
    NotFound,
    NotificationError,
    RateLimited,
    ServiceError,
    Unauthorized,
    ValidationError,
    handle_errors,
)
