"""
Supabase JWT Authentication Middleware

Resolves the caller of a todo endpoint to a stable owner id using the
Supabase JWKS, or rejects the request with 401 before any store access.
"""
import time
import logging
from typing import Optional
from fastapi import HTTPException, Header
from jose import jwt, jwk
from jose.exceptions import ExpiredSignatureError, JOSEError, JWTClaimsError
import httpx

from app import config

logger = logging.getLogger(__name__)

# JWKS cache
_jwks_cache: Optional[dict] = None
_jwks_cache_time: float = 0


def get_supabase_url() -> str:
    """Get Supabase URL from configuration"""
    url = config.SUPABASE_URL
    if not url:
        raise ValueError("SUPABASE_URL must be set")
    return url


def get_jwks_url() -> str:
    """Get JWKS URL from Supabase URL"""
    return f"{get_supabase_url()}/auth/v1/.well-known/jwks.json"


def get_jwt_issuer() -> str:
    """Get JWT issuer from Supabase URL"""
    return f"{get_supabase_url()}/auth/v1"


def reset_jwks_cache():
    """Drop the cached key set (useful for testing)"""
    global _jwks_cache, _jwks_cache_time
    _jwks_cache = None
    _jwks_cache_time = 0


async def get_jwks() -> dict:
    """
    Fetch and cache JWKS from Supabase
    Returns cached JWKS if available and not expired
    """
    global _jwks_cache, _jwks_cache_time

    now = time.time()

    if _jwks_cache and (now - _jwks_cache_time) < config.JWKS_CACHE_SECONDS:
        return _jwks_cache

    jwks_url = get_jwks_url()
    logger.info(f"Fetching JWKS from Supabase: {jwks_url}")

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(jwks_url, timeout=10.0)
            response.raise_for_status()
            _jwks_cache = response.json()
            _jwks_cache_time = now
            logger.info("JWKS cached successfully")
            return _jwks_cache
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Failed to fetch JWKS: {e}")
        # Fall back to an expired key set rather than locking everyone out
        if _jwks_cache:
            logger.warning("Using expired JWKS cache due to fetch failure")
            return _jwks_cache
        raise HTTPException(
            status_code=500,
            detail="Failed to fetch authentication keys"
        )


async def verify_token(token: str) -> dict:
    """
    Verify a Supabase JWT token using JWKS (public keys).
    Accepts ES256 and RS256 signatures.

    Returns the decoded JWT payload
    Raises HTTPException(401) if verification fails
    """
    try:
        jwks = await get_jwks()

        unverified_header = jwt.get_unverified_header(token)
        kid = unverified_header.get("kid")

        if not kid:
            raise HTTPException(
                status_code=401,
                detail="Token missing key ID (kid)"
            )

        key_data = None
        for jwk_key in jwks.get("keys", []):
            if jwk_key.get("kid") == kid:
                key_data = jwk_key
                break

        if not key_data:
            raise HTTPException(
                status_code=401,
                detail="Signing key not found"
            )

        key = jwk.construct(key_data)

        return jwt.decode(
            token,
            key,
            algorithms=["ES256", "RS256"],
            audience=config.JWT_AUDIENCE,
            issuer=get_jwt_issuer(),
        )
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=401,
            detail="Token has expired"
        )
    except JWTClaimsError as e:
        logger.warning(f"JWT claims validation failed: {e}")
        raise HTTPException(
            status_code=401,
            detail="Invalid token claims"
        )
    except JOSEError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise HTTPException(
            status_code=401,
            detail="Invalid authentication token"
        )


def get_user_id_from_payload(payload: dict) -> str:
    """
    Extract user ID from JWT payload
    Raises HTTPException if user ID is not present
    """
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=401,
            detail="Invalid token: no user ID"
        )
    return user_id


def parse_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of a 'Bearer <token>' header"""
    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized"
        )

    try:
        scheme, token = authorization.split(" ", 1)
    except ValueError:
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization header format. Expected 'Bearer <token>'"
        )

    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization scheme. Expected 'Bearer'"
        )

    return token.strip()


async def get_current_user_id(
    authorization: Optional[str] = Header(None)
) -> str:
    """
    FastAPI dependency to extract and verify JWT token from Authorization header
    Returns the authenticated user ID, which todo endpoints use as the owner
    """
    token = parse_bearer_token(authorization)
    payload = await verify_token(token)
    return get_user_id_from_payload(payload)
