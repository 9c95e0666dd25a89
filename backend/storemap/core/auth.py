"""
Bearer-token authentication against the hosted auth provider.

The provider owns user accounts; this service only asks it who a token
belongs to and scopes every query by the returned user id.
"""
from dataclasses import dataclass
from typing import Optional
import logging

import requests
from fastapi import Header, HTTPException, status

from storemap.core import config

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    id: str
    email: Optional[str] = None


def verify_token(token: str) -> Optional[CurrentUser]:
    """Resolve a bearer token to its user, or None if the provider rejects it."""
    if not config.AUTH_URL:
        logger.error("AUTH_URL is not configured; rejecting token")
        return None

    try:
        response = requests.get(
            f"{config.AUTH_URL.rstrip('/')}/auth/v1/user",
            headers={
                "apikey": config.AUTH_API_KEY,
                "Authorization": f"Bearer {token}",
            },
            timeout=config.AUTH_TIMEOUT_SECONDS,
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"Token verification failed: {e}")
        return None

    if response.status_code != 200:
        logger.warning(f"Auth provider rejected token: {response.status_code}")
        return None

    try:
        data = response.json()
    except ValueError:
        logger.warning("Auth provider returned a non-JSON body")
        return None
    if not isinstance(data, dict) or not data.get("id"):
        return None
    return CurrentUser(id=str(data["id"]), email=data.get("email"))


def get_current_user(authorization: Optional[str] = Header(None)) -> CurrentUser:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized"
        )
    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header"
        )

    user = verify_token(authorization[len("Bearer "):].strip())
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )
    return user
