"""
LinkedIn OAuth2 configuration.

Contains endpoint constants and the client configuration loaded from
environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

from linkedin_auth.core.domain import Scope
from linkedin_auth.core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


# LinkedIn OAuth endpoints
AUTHORIZATION_URL = "https://www.linkedin.com/oauth/v2/authorization"
ACCESS_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"

# LinkedIn REST API endpoints
API_BASE_URL = "https://api.linkedin.com/v2"
PROFILE_URL = f"{API_BASE_URL}/me"
EMAIL_URL = f"{API_BASE_URL}/emailAddress"

# Projections
EMAIL_PARAMS = {"q": "members", "projection": "(elements*(handle~))"}
DISPLAY_IMAGE_PARAMS = {"projection": "(profilePicture(displayImage~:playableStreams))"}

# No timeout is documented upstream
DEFAULT_TIMEOUT = 30.0

DEFAULT_SCOPES = [Scope.EMAIL_ADDRESS, Scope.LITE_PROFILE]


def parse_scopes(raw: str | None) -> list[Scope]:
    """
    Parse a comma separated scope list from configuration.

    Accepts member names (``LITE_PROFILE``) or provider strings
    (``r_liteprofile``). Empty input yields the default scopes.
    """
    if not raw or not raw.strip():
        return list(DEFAULT_SCOPES)

    scopes = []
    for item in raw.split(","):
        if not item.strip():
            continue
        try:
            scopes.append(Scope.parse(item))
        except ValueError:
            raise ConfigurationError(f"Unknown LinkedIn scope: {item.strip()}")
    return scopes


@dataclass
class LinkedInConfig:
    """
    LinkedIn client configuration.

    Required environment variables:
    - LINKEDIN_CLIENT_ID
    - LINKEDIN_REDIRECT_URI: must match the developer console exactly

    Optional:
    - LINKEDIN_CLIENT_SECRET: only for local exchange
    - LINKEDIN_BYPASS_SERVER_CHECK: "true" to exchange the code locally
    - LINKEDIN_SCOPES: comma separated, defaults to email + lite profile
    - LINKEDIN_TIMEOUT: network timeout in seconds
    """

    client_id: str | None = None
    redirect_uri: str | None = None
    client_secret: str | None = None
    scopes: list[Scope] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    timeout: float = DEFAULT_TIMEOUT
    bypass_server_check: bool = False

    @classmethod
    def from_env(cls) -> "LinkedInConfig":
        """Load configuration from environment variables."""
        return cls(
            client_id=os.getenv("LINKEDIN_CLIENT_ID"),
            redirect_uri=os.getenv("LINKEDIN_REDIRECT_URI"),
            client_secret=os.getenv("LINKEDIN_CLIENT_SECRET"),
            scopes=parse_scopes(os.getenv("LINKEDIN_SCOPES")),
            timeout=float(os.getenv("LINKEDIN_TIMEOUT", DEFAULT_TIMEOUT)),
            bypass_server_check=(
                os.getenv("LINKEDIN_BYPASS_SERVER_CHECK", "false").lower() == "true"
            ),
        )

    def is_configured(self) -> bool:
        """Check if the authorization request can be built."""
        return bool(self.client_id and self.redirect_uri and self.scopes)

    def can_exchange_locally(self) -> bool:
        """Check if the code can be exchanged on this side with the secret."""
        return bool(self.bypass_server_check and self.client_secret)

    def validate(self) -> None:
        """Validate required configuration. Call at startup to fail fast."""
        if not self.client_id:
            raise ConfigurationError("LINKEDIN_CLIENT_ID environment variable is required")
        if not self.redirect_uri:
            raise ConfigurationError(
                "LINKEDIN_REDIRECT_URI environment variable is required"
            )
        if not self.scopes:
            raise ConfigurationError("At least one scope must be provided")
        if self.bypass_server_check and not self.client_secret:
            raise ConfigurationError(
                "LINKEDIN_CLIENT_SECRET is required when bypassing the server check"
            )
        if self.timeout <= 0:
            raise ConfigurationError("LINKEDIN_TIMEOUT must be positive")
        if self.bypass_server_check:
            logger.warning(
                "Exchanging authorization codes locally with the client secret; "
                "do not ship this configuration to end users"
            )


@lru_cache()
def get_linkedin_config() -> LinkedInConfig:
    """Get LinkedIn configuration singleton."""
    return LinkedInConfig.from_env()
