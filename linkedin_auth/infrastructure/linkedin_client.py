"""
Client for the LinkedIn authorization-code flow and member profile API.

Implements the three legs of LinkedIn's Authorization Code Flow:
https://learn.microsoft.com/en-us/linkedin/shared/authentication/authorization-code-flow

    1. Build the authorization URL (with a fresh state token)
    2. Exchange the returned code for an access token
    3. Call the profile, email and profile picture endpoints with the token

Refresh tokens are only issued to select LinkedIn partners and are not
supported here.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx
from authlib.oauth2.rfc6749.parameters import prepare_grant_uri

from linkedin_auth.core.domain import (
    AccessToken,
    AuthorizationRequest,
    BasicProfile,
    ImageReference,
    LiteProfile,
    Scope,
    join_scopes,
)
from linkedin_auth.core.exceptions import (
    ConfigurationError,
    InsufficientScopeError,
    ProfileFetchError,
    TokenExchangeError,
)
from linkedin_auth.oauth.config import (
    ACCESS_TOKEN_URL,
    AUTHORIZATION_URL,
    DEFAULT_TIMEOUT,
    DISPLAY_IMAGE_PARAMS,
    EMAIL_PARAMS,
    PROFILE_URL,
    EMAIL_URL,
)


logger = logging.getLogger(__name__)

# Parsing failures that mean the body did not have the expected shape
_PARSE_ERRORS = (KeyError, IndexError, TypeError, ValueError)


def is_success(status_code: int) -> bool:
    """
    LinkedIn's success class test.

    Only 200 through 209 count as success; 2xx codes above 209 do not.
    """
    return status_code // 10 == 20


def build_authorization_request(
    client_id: str, redirect_uri: str, scopes: list[Scope]
) -> AuthorizationRequest:
    """
    Build the LinkedIn authorization URL and its state token.

    No network I/O is performed.

    Args:
        client_id: Client ID from the LinkedIn developer console
        redirect_uri: Redirect URI registered with LinkedIn
        scopes: Scopes to request, in the order they should appear

    Returns:
        AuthorizationRequest holding the URL and the generated state

    Raises:
        ConfigurationError: If any argument is empty or a scope is not a Scope
    """
    if not client_id:
        raise ConfigurationError("Missing client ID, cannot be left blank")
    if not scopes:
        raise ConfigurationError("At least one scope must be provided")
    if not redirect_uri:
        raise ConfigurationError("Redirect URI is required and cannot be left blank")
    for scope in scopes:
        if not isinstance(scope, Scope):
            raise ConfigurationError(f"Unsupported scope: {scope!r}")

    state = str(uuid.uuid4())
    # response_type must be "code" for this flow
    url = prepare_grant_uri(
        AUTHORIZATION_URL,
        client_id=client_id,
        response_type="code",
        redirect_uri=redirect_uri,
        scope=join_scopes(scopes),
        state=state,
    )
    return AuthorizationRequest(state=state, url=url)


class LinkedInClient:
    """
    Async client for LinkedIn's token and member endpoints.

    Pass an ``httpx.AsyncClient`` to share a connection pool; otherwise a
    short-lived client is opened for every call. Used as an async context
    manager, the client keeps one connection pool until exit.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._http_client = http_client
        self._owns_http_client = False
        self._timeout = timeout

    async def __aenter__(self) -> "LinkedInClient":
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_http_client = True
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            self._owns_http_client = False

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    def build_authorization_request(
        self, client_id: str, redirect_uri: str, scopes: list[Scope]
    ) -> AuthorizationRequest:
        """Build the authorization URL and state. See the module function."""
        return build_authorization_request(client_id, redirect_uri, scopes)

    async def exchange_code_for_token(
        self,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str,
    ) -> AccessToken:
        """
        Exchange an authorization code for an access token.

        Exposes the client secret to wherever this runs; only use it where
        the secret is safe (a server, or local testing). Single attempt.

        Args:
            client_id: Client ID from the developer console
            client_secret: Client secret from the developer console
            code: Authorization code from the redirect
            redirect_uri: Same redirect URI used for the authorization request

        Returns:
            AccessToken expiring ``expires_in`` seconds from now

        Raises:
            ConfigurationError: If any argument is empty
            TokenExchangeError: On network error, non-success status or bad body
        """
        if not client_id or not client_secret or not code or not redirect_uri:
            raise ConfigurationError(
                "client_id, client_secret, code and redirect_uri are all required"
            )

        form = {
            "grant_type": "authorization_code",
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "client_secret": client_secret,
            "code": code,
        }

        try:
            async with self._client() as client:
                response = await client.post(
                    ACCESS_TOKEN_URL, data=form, timeout=self._timeout
                )
        except httpx.RequestError as e:
            logger.error(f"Network error during token exchange: {e}")
            raise TokenExchangeError(f"Network error: {e}")

        if not is_success(response.status_code):
            logger.error(
                "Token exchange failed",
                extra={"status_code": response.status_code},
            )
            raise TokenExchangeError(
                f"Failed to fetch access token: {response.text}",
                body=response.text,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError:
            raise TokenExchangeError(
                "Token response is not valid JSON",
                body=response.text,
                status_code=response.status_code,
            )

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        expires_in = payload.get("expires_in") if isinstance(payload, dict) else None
        if not isinstance(access_token, str) or not access_token:
            raise TokenExchangeError(
                "No access token in response",
                body=response.text,
                status_code=response.status_code,
            )
        if not isinstance(expires_in, int) or isinstance(expires_in, bool):
            raise TokenExchangeError(
                "No expiry in token response",
                body=response.text,
                status_code=response.status_code,
            )

        logger.info(
            "Exchanged authorization code for access token",
            extra={"expires_in": expires_in},
        )
        return AccessToken.from_expires_in(access_token, expires_in)

    async def _get_json(
        self,
        url: str,
        token: str,
        what: str,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Authenticated GET returning the decoded JSON body."""
        headers = {"Authorization": f"Bearer {token}"}
        try:
            async with self._client() as client:
                response = await client.get(
                    url, headers=headers, params=params, timeout=self._timeout
                )
        except httpx.RequestError as e:
            logger.error(f"LinkedIn network error fetching {what}: {e}")
            raise ProfileFetchError(f"Network error: {e}")

        if not is_success(response.status_code):
            logger.error(
                f"LinkedIn API error fetching {what}",
                extra={"status_code": response.status_code},
            )
            raise ProfileFetchError(
                f"Cannot fetch {what} [{response.status_code}]: {response.text}",
                body=response.text,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError:
            raise ProfileFetchError(
                f"Invalid {what} response: not JSON",
                body=response.text,
                status_code=response.status_code,
            )

    async def fetch_lite_profile(self, token: str) -> LiteProfile:
        """
        Fetch the member's lite profile (r_liteprofile).

        Raises:
            ProfileFetchError: On network error or non-success status
            InsufficientScopeError: If the body lacks lite profile fields
        """
        payload = await self._get_json(PROFILE_URL, token, "lite profile")
        try:
            return LiteProfile.from_response(payload)
        except _PARSE_ERRORS as e:
            raise InsufficientScopeError(
                f"Cannot parse lite profile, was r_liteprofile granted? ({e!r})",
                body=str(payload),
            )

    async def fetch_basic_profile(self, token: str) -> BasicProfile:
        """
        Fetch the member's basic profile (r_basicprofile).

        Raises:
            ProfileFetchError: On network error or non-success status
            InsufficientScopeError: If the body lacks basic profile fields
        """
        payload = await self._get_json(PROFILE_URL, token, "basic profile")
        try:
            return BasicProfile.from_response(payload)
        except _PARSE_ERRORS as e:
            raise InsufficientScopeError(
                f"Cannot parse basic profile, was r_basicprofile granted? ({e!r})",
                body=str(payload),
            )

    async def fetch_email_address(self, token: str) -> str:
        """
        Fetch the member's primary email address (r_emailaddress).

        Raises:
            ProfileFetchError: On network error or non-success status
            InsufficientScopeError: If no email element is returned
        """
        payload = await self._get_json(EMAIL_URL, token, "email address", EMAIL_PARAMS)
        try:
            email = payload["elements"][0]["handle~"]["emailAddress"]
        except _PARSE_ERRORS as e:
            raise InsufficientScopeError(
                f"No email address in response, was r_emailaddress granted? ({e!r})",
                body=str(payload),
            )
        if not isinstance(email, str):
            raise InsufficientScopeError(
                "No email address in response", body=str(payload)
            )
        return email

    async def resolve_display_image_url(
        self, image_ref: ImageReference, token: str
    ) -> str:
        """
        Resolve the display image URL for a profile picture URN.

        The first successful call caches the URL on ``image_ref``; later calls
        return it without network I/O and without checking the token.

        Raises:
            ProfileFetchError: On network error, non-success status or bad body
        """
        if image_ref.is_resolved:
            return image_ref.display_url

        payload = await self._get_json(
            PROFILE_URL, token, "display image", DISPLAY_IMAGE_PARAMS
        )
        try:
            display_image = payload["profilePicture"]["displayImage~"]
            url = display_image["elements"][0]["identifiers"][0]["identifier"]
        except _PARSE_ERRORS as e:
            raise ProfileFetchError(
                f"Failed to fetch image: unexpected response ({e!r})",
                body=str(payload),
            )
        if not isinstance(url, str) or not url:
            raise ProfileFetchError("Failed to fetch image: empty identifier")

        image_ref.remember_display_url(url)
        logger.debug(f"Resolved display image for {image_ref.urn}")
        return url
