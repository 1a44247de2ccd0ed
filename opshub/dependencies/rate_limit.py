"""
Rate limit dependency for FastAPI routes.
"""
from fastapi import Depends
from opshub.dependencies.auth import TokenPayload, get_current_user
from opshub.errors import RateLimitError
from opshub.services.rate_limiter import rate_limiter


async def check_rate_limit(user: TokenPayload = Depends(get_current_user)) -> TokenPayload:
    """
    Authenticate the caller and apply their request window.
    
    Raises 429 if limit exceeded.
    """
    allowed, retry_after = await rate_limiter.is_allowed(user.sub)
    if not allowed:
        raise RateLimitError(retry_after)
    return user
