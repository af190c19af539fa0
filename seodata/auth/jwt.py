"""
JWT Token Validation

Validates HS256 bearer tokens issued by the platform's identity provider.
"""

import logging
from typing import Dict, Any, Optional

import jwt
from jwt import PyJWTError

from seodata.auth.config import AuthConfig, get_auth_config

logger = logging.getLogger(__name__)


class JWTError(Exception):
    """Custom JWT validation error."""
    pass


def verify_token(token: str, config: Optional[AuthConfig] = None) -> Dict[str, Any]:
    """
    Verify and decode a bearer token.

    Args:
        token: The JWT token from the Authorization header
        config: Auth settings (defaults to the cached environment config)

    Returns:
        Decoded token payload containing user info

    Raises:
        JWTError: If token is invalid, expired, or malformed
    """
    config = config or get_auth_config()

    if not config.jwt_secret:
        raise JWTError("JWT_SECRET not configured")

    try:
        payload = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[config.jwt_algorithm],
            audience=config.jwt_audience,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise JWTError("Token has expired")
    except jwt.InvalidAudienceError:
        raise JWTError("Invalid token audience")
    except jwt.InvalidSignatureError:
        raise JWTError("Invalid token signature")
    except jwt.MissingRequiredClaimError as e:
        raise JWTError(f"Token missing '{e.claim}' claim")
    except jwt.DecodeError as e:
        raise JWTError(f"Token decode error: {str(e)}")
    except PyJWTError as e:
        raise JWTError(f"Token validation error: {str(e)}")

    if not payload.get("sub"):
        raise JWTError("Token missing 'sub' claim (user ID)")

    return payload


def extract_user_info(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract user information from a verified JWT payload.

    Expected payload structure:
    {
        "sub": "user-uuid",
        "email": "user@example.com",
        "aud": "authenticated",
        "user_metadata": {"full_name": "Jane Doe"},
        "exp": 1234567890
    }
    """
    user_metadata = payload.get("user_metadata") or {}

    return {
        "id": payload.get("sub"),
        "email": payload.get("email"),
        "full_name": user_metadata.get("full_name") or user_metadata.get("name"),
    }
