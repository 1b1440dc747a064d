import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Supabase signs access tokens with asymmetric keys published in its JWKS
ALLOWED_ALGORITHMS = ("RS256", "RS384", "RS512", "ES256", "ES384", "ES512")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


class JWTBearer(HTTPBearer):
    """Validates a Supabase access token and returns its claims."""

    def __init__(self):
        super().__init__(auto_error=False)
        self._jwks_client: PyJWKClient | None = None

    def _jwks(self, settings: Settings) -> PyJWKClient:
        if self._jwks_client is None:
            logger.debug("Using JWKS from %s", settings.supabase_jwks_url)
            self._jwks_client = PyJWKClient(settings.supabase_jwks_url)
        return self._jwks_client

    def decode(self, token: str, settings: Settings) -> dict:
        """Verify signature, expiry and audience.

        Raises:
            jwt.InvalidTokenError: If the token cannot be trusted.
        """
        algorithm = jwt.get_unverified_header(token).get("alg")
        if algorithm not in ALLOWED_ALGORITHMS:
            raise jwt.InvalidTokenError(f"Algorithm {algorithm} is not accepted")

        signing_key = self._jwks(settings).get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=[algorithm],
            audience="authenticated",
        )

    async def __call__(
        self,
        credentials: Annotated[
            HTTPAuthorizationCredentials | None,
            Depends(HTTPBearer(auto_error=False)),
        ],
        settings: Annotated[Settings, Depends(get_settings)],
    ) -> dict:
        if credentials is None:
            logger.warning("Rejected request without a bearer token")
            raise _unauthorized("Missing authorization header")

        try:
            payload = self.decode(credentials.credentials, settings)
        except jwt.ExpiredSignatureError:
            logger.warning("Rejected expired token")
            raise _unauthorized("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.warning("Rejected invalid token: %s", e)
            raise _unauthorized(f"Invalid token: {e}")

        logger.debug("Authenticated user %s", payload.get("sub"))
        return payload


jwt_bearer = JWTBearer()

CurrentUser = Annotated[dict, Depends(jwt_bearer)]


async def get_current_player_id(token_payload: CurrentUser) -> str:
    """The caller's user id, which is also their player id in a game."""
    user_id = token_payload.get("sub")
    if not user_id:
        raise _unauthorized("Token has no subject")
    return user_id


CurrentPlayerId = Annotated[str, Depends(get_current_player_id)]
