"""
FastAPI dependency functions for authentication.

Verifies Supabase Auth bearer tokens against the project's JWKS (ES256
signing keys) and hands route handlers an AuthenticatedUser. The caller
identity used by the access layer is derived from the verified 'sub' claim
only; ids sent in request bodies are never trusted.
"""

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Header, HTTPException, status
from jwt import PyJWKClient, decode
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError, PyJWKClientError

from crm_backend.access.identity import CallerIdentity
from crm_backend.config import settings

logger = logging.getLogger(__name__)

# Lazily created; PyJWKClient caches keys and handles rotation
_jwks_client: PyJWKClient | None = None


@dataclass
class AuthenticatedUser:
    """
    A verified caller.

    Attributes:
        user_id: The user's UUID from the JWT 'sub' claim
        access_token: The raw JWT, used to build the per-request Supabase client
    """
    user_id: str
    access_token: str

    @property
    def caller(self) -> CallerIdentity:
        """Explicit identity passed to services and policy checks."""
        return CallerIdentity.from_user_id(self.user_id)


def get_jwks_client() -> PyJWKClient:
    """
    Shared JWKS client for the Supabase project, created on first use.

    Raises:
        ValueError: If SUPABASE_URL is not set
    """
    global _jwks_client

    if _jwks_client is not None:
        return _jwks_client

    if not settings.SUPABASE_JWKS_URL:
        raise ValueError("SUPABASE_URL is not set; cannot fetch signing keys")

    logger.info(f"Fetching signing keys from {settings.SUPABASE_JWKS_URL}")
    _jwks_client = PyJWKClient(settings.SUPABASE_JWKS_URL, cache_keys=True, max_cached_keys=16)
    return _jwks_client


def _unauthorized(error: str, details: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "details": details}
    )


def _extract_bearer(authorization: str | None) -> str:
    if not authorization:
        logger.warning("Missing Authorization header")
        raise _unauthorized("unauthorized", "Missing Authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning("Invalid Authorization header format")
        raise _unauthorized("unauthorized", "Invalid Authorization header format")

    return parts[1]


def _verify(token: str) -> str:
    """
    Verify signature, expiry, audience and issuer; return the 'sub' claim.

    Raises:
        HTTPException: 401 for every verification failure
    """
    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)

        payload = decode(
            token,
            signing_key.key,
            algorithms=list(settings.JWT_ALGORITHMS),
            audience=settings.JWT_AUDIENCE,
            issuer=settings.SUPABASE_JWT_ISSUER,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_aud": True,
                "verify_iss": True,
            }
        )

    except ExpiredSignatureError:
        logger.warning("Token has expired")
        raise _unauthorized("token_expired", "Authentication token has expired")

    except PyJWKClientError as e:
        logger.error(f"JWKS client error: {str(e)}")
        raise _unauthorized("jwks_error", "Unable to verify token signature")

    except InvalidTokenError as e:
        logger.warning(f"Invalid token: {str(e)}")
        raise _unauthorized("invalid_token", "Invalid authentication token")

    except Exception as e:
        logger.error(f"Unexpected error during token verification: {str(e)}")
        raise _unauthorized("unauthorized", "Token verification failed")

    user_id = payload.get("sub")
    if not user_id:
        logger.error("Token payload missing 'sub' claim")
        raise _unauthorized("unauthorized", "Invalid token: missing user ID")

    logger.info(f"Token verified successfully for user_id={user_id}")
    return str(user_id)


async def verify_token(authorization: Annotated[str | None, Header()] = None) -> str:
    """
    Verify the bearer token and return the caller's user_id.

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired
    """
    return _verify(_extract_bearer(authorization))


async def get_authenticated_user(
    authorization: Annotated[str | None, Header()] = None
) -> AuthenticatedUser:
    """
    Verify the bearer token and return the caller together with the token.

    Usage:
        @router.get("/clients")
        async def list_clients(
            auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
        ):
            supabase_client = get_supabase_client(auth_user.access_token)
            ...
    """
    token = _extract_bearer(authorization)
    user_id = _verify(token)
    return AuthenticatedUser(user_id=user_id, access_token=token)
