"""
FastAPI dependencies for the LinkedIn endpoints.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from linkedin_auth.infrastructure.linkedin_client import LinkedInClient
from linkedin_auth.oauth.config import LinkedInConfig, get_linkedin_config


bearer_scheme = HTTPBearer(auto_error=False)


def get_config() -> LinkedInConfig:
    """Provide LinkedInConfig dependency."""
    return get_linkedin_config()


def get_client(
    config: Annotated[LinkedInConfig, Depends(get_config)],
) -> LinkedInClient:
    """Provide a LinkedInClient using the configured timeout."""
    return LinkedInClient(timeout=config.timeout)


def require_configured(
    config: Annotated[LinkedInConfig, Depends(get_config)],
) -> LinkedInConfig:
    """
    Ensure the client ID and redirect URI are configured.

    Raises:
        HTTPException: 503 if LinkedIn is not configured
    """
    if not config.is_configured():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="LinkedIn OAuth is not configured",
        )
    return config


def require_exchange_secret(
    config: Annotated[LinkedInConfig, Depends(require_configured)],
) -> LinkedInConfig:
    """
    Ensure this server can exchange codes itself.

    Raises:
        HTTPException: 503 if no client secret is configured
    """
    if not config.client_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="LinkedIn client secret is not configured",
        )
    return config


def get_bearer_token(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> str:
    """
    Extract the LinkedIn access token from the Authorization header.

    Raises:
        HTTPException: 401 if no bearer token was sent
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Bearer token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


# Type aliases for cleaner dependency injection
Config = Annotated[LinkedInConfig, Depends(require_configured)]
ExchangeConfig = Annotated[LinkedInConfig, Depends(require_exchange_secret)]
Client = Annotated[LinkedInClient, Depends(get_client)]
BearerToken = Annotated[str, Depends(get_bearer_token)]
