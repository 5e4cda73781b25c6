"""
Authentication Middleware
JWT authentication dependency for the chat endpoints.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header
from pydantic import BaseModel
import structlog

from chat_service.dependencies import get_identity_provider
from chat_service.exceptions.base_exceptions import AuthenticationError
from chat_service.services.identity_provider import JWTIdentityProvider

logger = structlog.get_logger()


class AuthContext(BaseModel):
    """Authentication context for requests"""
    user_id: str
    token_type: str = "bearer"


async def get_auth_context(
        identity: Annotated[JWTIdentityProvider, Depends(get_identity_provider)],
        authorization: Optional[str] = Header(default=None, alias="Authorization")
) -> AuthContext:
    """
    Extract and validate authentication context from request

    Args:
        identity: Token verifier
        authorization: Authorization header with Bearer token

    Returns:
        AuthContext with the verified user id

    Raises:
        AuthenticationError: If the header is missing or the token is invalid
    """
    if not authorization:
        raise AuthenticationError("Authorization header missing")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid authorization header format")

    user_id = identity.verify_token(token.strip())

    structlog.contextvars.bind_contextvars(user_id=user_id)
    logger.debug("Authentication successful", user_id=user_id)

    return AuthContext(user_id=user_id)
