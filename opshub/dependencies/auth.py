"""
Authentication dependencies for FastAPI.

SECURITY: Every record query MUST include the user_id taken from the token.
"""
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from opshub.errors import AuthError
from opshub.services.jwt_service import JWTService


# auto_error=False so a missing header renders through the AuthError handler
security = HTTPBearer(auto_error=False)


class TokenPayload(BaseModel):
    """JWT token payload model."""
    sub: str      # user_id
    email: str | None = None
    role: str | None = None


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security)
) -> TokenPayload:
    """
    Dependency that requires a valid bearer token.
    
    Usage:
        @router.post("/protected")
        async def protected_route(user: TokenPayload = Depends(get_current_user)):
            ...
    """
    if credentials is None:
        raise AuthError("Missing authorization header")
    
    payload = JWTService().verify_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise AuthError("Invalid or expired token")
    
    user = TokenPayload(**payload)
    request.state.user_id = user.sub
    return user
