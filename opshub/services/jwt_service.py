"""
JWT verification for tokens issued by the hosted auth service.
"""
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from opshub.config import settings


class JWTService:
    """Service for verifying (and, for local tooling, creating) JWT tokens."""
    
    def create_token(self, user_id: str, email: str | None = None, expires_minutes: int = 60) -> str:
        """
        Create a token shaped like the auth service's access tokens.
        
        Used by tests and local scripts; production tokens come from the
        auth service.
        """
        payload = {
            "sub": user_id,
            "email": email,
            "aud": settings.JWT_AUDIENCE,
            "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
        }
        return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    
    def verify_token(self, token: str) -> dict | None:
        """
        Verify and decode a JWT token.
        
        Returns:
            Decoded payload dict or None if invalid, expired or for another audience
        """
        try:
            return jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
                audience=settings.JWT_AUDIENCE
            )
        except JWTError:
            return None
