"""
Core domain models for the LinkedIn authorization flow.

These models represent the request, token and profile data exchanged with
LinkedIn and are independent of the HTTP client or any web shell.

Profile parsing follows the v2 member profile shapes:
https://learn.microsoft.com/en-us/linkedin/shared/references/v2/profile/lite-profile
"""

import hmac
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


class Scope(Enum):
    """
    Permission scopes shown on the LinkedIn consent prompt.

    Each member's value is the fixed scope string LinkedIn expects.
    """

    EMAIL_ADDRESS = "r_emailaddress"
    BASIC_PROFILE = "r_basicprofile"
    LITE_PROFILE = "r_liteprofile"
    # Write-only
    SHARE_ON_LINKEDIN = "w_share"
    # Read-write, needs partner approval
    COMPANY_ADMIN = "rw_company_admin"
    # Write-only
    MEMBER_SOCIAL = "w_member_social"

    @classmethod
    def parse(cls, name: str) -> "Scope":
        """
        Look up a scope by member name or provider string.

        Used for configuration values such as ``LITE_PROFILE`` or
        ``r_liteprofile``. Raises ValueError for anything else.
        """
        candidate = name.strip()
        if candidate.upper() in cls.__members__:
            return cls[candidate.upper()]
        return cls(candidate)


def join_scopes(scopes: list[Scope]) -> str:
    """Join scopes into LinkedIn's space separated scope string, keeping order."""
    return " ".join(scope.value for scope in scopes)


class AuthorizationRequest(BaseModel):
    """
    A single login attempt: the authorization URL and its state token.

    The state must be echoed back unchanged by LinkedIn on redirect.
    """

    state: str = Field(description="Random anti-forgery token for this attempt")
    url: str = Field(description="LinkedIn authorization URL to open")

    model_config = ConfigDict(frozen=True)

    def verify(self, candidate: str) -> bool:
        """Check a state value returned on redirect against ours."""
        return hmac.compare_digest(candidate.encode(), self.state.encode())


class AccessToken(BaseModel):
    """
    OAuth2 access token returned by the token exchange.

    LinkedIn does not issue refresh tokens to this client class, so the
    token is only good until ``expires_at``.
    """

    token: str = Field(min_length=1, description="Bearer access token")
    expires_at: datetime = Field(description="Expiry instant (UTC)")

    @classmethod
    def from_expires_in(cls, token: str, expires_in: int) -> "AccessToken":
        """Create a token expiring ``expires_in`` seconds from now."""
        return cls(
            token=token,
            expires_at=datetime.now(UTC) + timedelta(seconds=expires_in),
        )

    def is_expired(self) -> bool:
        """Check if the access token is expired."""
        return datetime.now(UTC) >= self.expires_at


class LocalizedString(BaseModel):
    """LinkedIn MultiLocaleString reduced to a single text and its language."""

    text: str = ""
    language: str = ""

    @classmethod
    def empty(cls) -> "LocalizedString":
        return cls(text="", language="")

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "LocalizedString":
        """
        Parse a MultiLocaleString object.

        Expected shape::

            {"localized": {"en_US": "Jane"},
             "preferredLocale": {"country": "US", "language": "en"}}

        When ``localized`` holds several locales the first key is used.
        """
        localized = payload["localized"]
        if not localized:
            raise ValueError("localized map is empty")
        first_key = next(iter(localized))
        return cls(
            text=localized[first_key],
            language=payload["preferredLocale"]["language"],
        )


class ImageReference(BaseModel):
    """
    Profile picture reference.

    LinkedIn returns a URN instead of an image URL. The display URL is
    resolved with an extra projected call and cached on this instance only.
    """

    urn: str = Field(description="displayImage URN")

    _display_url: str = PrivateAttr(default="")

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "ImageReference":
        return cls(urn=payload["displayImage"])

    @property
    def display_url(self) -> str:
        """Resolved image URL, empty until resolved."""
        return self._display_url

    @property
    def is_resolved(self) -> bool:
        return bool(self._display_url)

    def remember_display_url(self, url: str) -> None:
        self._display_url = url


class LiteProfile(BaseModel):
    """Member profile available with the r_liteprofile scope."""

    id: str
    first_name: LocalizedString
    last_name: LocalizedString
    maiden_name: LocalizedString = Field(default_factory=LocalizedString.empty)
    profile_image: ImageReference

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "LiteProfile":
        """Create LiteProfile from the /v2/me response body."""
        maiden_name = (
            LocalizedString.from_response(payload["maidenName"])
            if "maidenName" in payload
            else LocalizedString.empty()
        )
        return cls(
            id=payload["id"],
            first_name=LocalizedString.from_response(payload["firstName"]),
            last_name=LocalizedString.from_response(payload["lastName"]),
            maiden_name=maiden_name,
            profile_image=ImageReference.from_response(payload["profilePicture"]),
        )


class BasicProfile(LiteProfile):
    """
    Member profile available with the r_basicprofile scope.

    LinkedIn's developer portal may list r_basicprofile while the app has not
    actually been granted it; the response then lacks these fields.
    """

    headline: LocalizedString
    localized_first_name: str
    localized_last_name: str
    localized_maiden_name: str
    localized_headline: str
    vanity_name: str

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "BasicProfile":
        """Create BasicProfile from the /v2/me response body."""
        return cls(
            id=payload["id"],
            first_name=LocalizedString.from_response(payload["firstName"]),
            last_name=LocalizedString.from_response(payload["lastName"]),
            maiden_name=LocalizedString.from_response(payload["maidenName"]),
            headline=LocalizedString.from_response(payload["headline"]),
            profile_image=ImageReference.from_response(payload["profilePicture"]),
            localized_first_name=payload["localizedFirstName"],
            localized_last_name=payload["localizedLastName"],
            localized_maiden_name=payload["localizedMaidenName"],
            localized_headline=payload["localizedHeadline"],
            vanity_name=payload["vanityName"],
        )
