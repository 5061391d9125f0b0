"""
Redirect interception for the authorization step.

The hosting shell (embedded browser, web callback route, CLI) feeds every
navigation target to a RedirectInterceptor. URLs that do not start with the
redirect URI pass through. The redirect itself is never a real page: it is
held back, its query parameters are checked, and the authorization code is
exchanged for a token either locally with the client secret or by the
caller's own server.
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from urllib.parse import parse_qs, urlsplit

import httpx

from linkedin_auth.core.domain import AccessToken, AuthorizationRequest
from linkedin_auth.core.exceptions import (
    ConfigurationError,
    LinkedInError,
    ProviderError,
    StateMismatchError,
    TokenExchangeError,
)
from linkedin_auth.core.ports import (
    ErrorCallback,
    ServerResponseHandler,
    TokenCaptureCallback,
)
from linkedin_auth.infrastructure.linkedin_client import LinkedInClient, is_success
from linkedin_auth.oauth.config import DEFAULT_TIMEOUT


logger = logging.getLogger(__name__)


class InterceptorState(str, Enum):
    AWAITING_REDIRECT = "awaiting_redirect"
    COMPLETED_SUCCESS = "completed_success"
    COMPLETED_ERROR = "completed_error"


class NavigationDecision(str, Enum):
    """What the hosting browser view should do with a navigation."""

    NAVIGATE = "navigate"
    PREVENT = "prevent"


@dataclass(frozen=True)
class LocalExchange:
    """Exchange the code on this side with the client secret (unsafe in apps)."""

    client_id: str
    client_secret: str


def query_params(url: str) -> dict[str, str]:
    """First value of every query parameter, blank values kept."""
    parsed = parse_qs(urlsplit(url).query, keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items()}


def parse_redirect(url: str, request: AuthorizationRequest | None) -> str:
    """
    Validate a redirect URL and return its authorization code.

    Checks run in order: provider error, state, code. A redirect without a
    ``state`` parameter is not treated as a mismatch. Pass ``request=None``
    only on a delegated exchange server, where the client that generated the
    state has already verified it.

    Raises:
        ProviderError: If LinkedIn reported an error, or no code was returned
        StateMismatchError: If the returned state differs from ours
    """
    params = query_params(url)

    if "error" in params:
        raise ProviderError(params["error"], params.get("error_description", ""))

    if (
        request is not None
        and "state" in params
        and not request.verify(params["state"])
    ):
        raise StateMismatchError("State match failed, possible CSRF issue")

    code = params.get("code")
    if not code:
        raise ProviderError("missing_code", "Authorization code missing from redirect")
    return code


def parse_token_response(response: httpx.Response) -> AccessToken:
    """
    Default delegated-exchange handler.

    Reads a JSON body shaped like LinkedIn's own token response,
    ``{"access_token": "...", "expires_in": 5183999}``, as returned by
    the ``/linkedin/token`` route of the bundled web shell.
    """
    if not is_success(response.status_code):
        raise TokenExchangeError(
            f"Token server returned {response.status_code}",
            body=response.text,
            status_code=response.status_code,
        )
    payload = response.json()
    return AccessToken.from_expires_in(payload["access_token"], int(payload["expires_in"]))


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


class RedirectInterceptor:
    """
    Watches navigations for the redirect URI and completes the login.

    Exactly one of ``exchange`` (local exchange) or ``on_server_response``
    (delegated exchange) decides how the code becomes a token; when both are
    given the local exchange wins. Errors of every kind reach ``on_error`` as
    a message, and the typed exception stays on ``error``.
    """

    def __init__(
        self,
        request: AuthorizationRequest,
        redirect_uri: str,
        on_error: ErrorCallback,
        on_token_capture: TokenCaptureCallback,
        exchange: LocalExchange | None = None,
        on_server_response: ServerResponseHandler | None = None,
        client: LinkedInClient | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if not redirect_uri:
            raise ConfigurationError("Redirect URI is required and cannot be left blank")
        if exchange is None and on_server_response is None:
            raise ConfigurationError(
                "Either a local exchange or a server response handler is required"
            )

        self.request = request
        self.redirect_uri = redirect_uri
        self.state = InterceptorState.AWAITING_REDIRECT
        self.token: AccessToken | None = None
        self.error: LinkedInError | None = None
        self._in_flight = False

        self._on_error = on_error
        self._on_token_capture = on_token_capture
        self._exchange = exchange
        self._on_server_response = on_server_response
        self._client = client or LinkedInClient(http_client=http_client, timeout=timeout)
        self._http_client = http_client
        self._timeout = timeout

    @property
    def completed(self) -> bool:
        return self.state != InterceptorState.AWAITING_REDIRECT

    def matches(self, url: str) -> bool:
        return url.startswith(self.redirect_uri)

    def classify(self, url: str) -> NavigationDecision:
        """
        Decide whether the browser may follow a navigation.

        The redirect URI is not a real page, so it is never followed, even
        after the flow has completed.
        """
        if self.matches(url):
            return NavigationDecision.PREVENT
        return NavigationDecision.NAVIGATE

    async def handle(self, url: str) -> NavigationDecision:
        """
        Process a navigation target.

        Non-matching URLs are passed through untouched. A matching URL is
        always prevented; only the first one drives the flow, later ones
        (repeats, reloads, or arrivals while the exchange is running) are
        ignored.
        """
        decision = self.classify(url)
        if decision is NavigationDecision.NAVIGATE:
            return decision
        if self.completed or self._in_flight:
            logger.debug("Ignoring repeated redirect")
            return decision

        self._in_flight = True
        try:
            code = parse_redirect(url, self.request)
            token = await self._obtain_token(url, code)
        except LinkedInError as e:
            await self._fail(e)
            return decision
        finally:
            self._in_flight = False

        self.token = token
        self.state = InterceptorState.COMPLETED_SUCCESS
        logger.info("LinkedIn login completed", extra={"expires_at": token.expires_at})
        await _maybe_await(self._on_token_capture(token))
        return decision

    async def _obtain_token(self, url: str, code: str) -> AccessToken:
        if self._exchange is not None:
            return await self._client.exchange_code_for_token(
                client_id=self._exchange.client_id,
                client_secret=self._exchange.client_secret,
                code=code,
                redirect_uri=self.redirect_uri,
            )
        return await self._delegate(url)

    async def _delegate(self, url: str) -> AccessToken:
        """Hand the full redirect URL to the caller's server."""
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url)
        except httpx.RequestError as e:
            logger.error(f"Network error during delegated exchange: {e}")
            raise TokenExchangeError(f"Network error: {e}")

        try:
            token = await _maybe_await(self._on_server_response(response))
        except TokenExchangeError:
            raise
        except Exception as e:
            raise TokenExchangeError(
                f"Server response could not be parsed: {e}",
                body=response.text,
                status_code=response.status_code,
            ) from e

        if not isinstance(token, AccessToken):
            raise TokenExchangeError(
                "Server response handler did not return an AccessToken",
                body=response.text,
                status_code=response.status_code,
            )
        return token

    async def _fail(self, error: LinkedInError) -> None:
        self.error = error
        self.state = InterceptorState.COMPLETED_ERROR
        logger.warning(
            f"LinkedIn login failed: {error}",
            extra={"error_type": type(error).__name__},
        )
        await _maybe_await(self._on_error(str(error)))
