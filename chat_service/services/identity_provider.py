"""
Identity Provider

JWT verification for chat endpoints. Tokens carry the user id in the
``userId`` claim (``sub`` is accepted as well) and must not be expired.
``issue_token`` exists for operators and tests; account management lives
outside this service.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
import structlog

from chat_service.config.settings import Settings
from chat_service.exceptions.base_exceptions import AuthenticationError

logger = structlog.get_logger(__name__)

USER_ID_CLAIMS = ("userId", "sub")


class JWTIdentityProvider:
    """HMAC-signed JWT verification and issuance"""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 1440):
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "JWTIdentityProvider":
        return cls(
            secret_key=settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            expire_minutes=settings.JWT_EXPIRE_MINUTES,
        )

    def verify_token(self, token: str) -> str:
        """
        Verify a token and extract the user id

        Args:
            token: Encoded JWT

        Returns:
            User id carried by the token

        Raises:
            AuthenticationError: If the token is invalid, expired or has no user id
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp"]}
            )
        except ExpiredSignatureError:
            logger.warning("Expired JWT token")
            raise AuthenticationError("Token has expired")
        except InvalidTokenError as e:
            logger.warning("Invalid JWT token", error=str(e))
            raise AuthenticationError("Invalid or expired token")

        user_id = self._extract_user_id(payload)
        if not user_id:
            logger.warning("JWT token carries no user id")
            raise AuthenticationError("Invalid or expired token")
        return user_id

    def issue_token(self, user_id: str, expires_in: Optional[timedelta] = None) -> str:
        """
        Sign a token for a user

        Args:
            user_id: User id to embed
            expires_in: Lifetime; defaults to the configured expiry

        Returns:
            Encoded JWT
        """
        now = datetime.now(timezone.utc)
        lifetime = expires_in if expires_in is not None else timedelta(minutes=self.expire_minutes)
        payload = {
            "userId": user_id,
            "sub": user_id,
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    @staticmethod
    def _extract_user_id(payload: Dict[str, Any]) -> Optional[str]:
        for claim in USER_ID_CLAIMS:
            value = payload.get(claim)
            if value:
                return str(value)
        return None
