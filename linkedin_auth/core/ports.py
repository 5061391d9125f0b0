"""
Port definitions (interfaces) for the redirect-handling flow.

The hosting shell supplies these callbacks. The core depends on these
contracts, not on any particular UI or web framework.
"""

from typing import Awaitable, Protocol

import httpx

from linkedin_auth.core.domain import AccessToken


class ErrorCallback(Protocol):
    """Receives a human readable message when the flow fails."""

    def __call__(self, message: str) -> None | Awaitable[None]: ...


class TokenCaptureCallback(Protocol):
    """Receives the access token once the flow succeeds."""

    def __call__(self, token: AccessToken) -> None | Awaitable[None]: ...


class ServerResponseHandler(Protocol):
    """
    Parses the response of a delegated, server-side code exchange.

    The caller's server performs the third leg (code for token) with its own
    client secret. This handler reads whatever that server returns and
    produces an AccessToken, raising on anything it cannot parse.
    """

    def __call__(
        self, response: httpx.Response
    ) -> AccessToken | Awaitable[AccessToken]: ...
