"""
LinkedIn authentication exceptions.

Every failure raised by the client, the redirect interceptor and the
configuration layer derives from LinkedInError, so callers can catch the
whole family or branch on the specific kind.
"""


class LinkedInError(Exception):
    """Base exception for LinkedIn authentication errors."""

    pass


class ConfigurationError(LinkedInError):
    """Invalid caller input, detected before any network I/O."""

    pass


class TokenExchangeError(LinkedInError):
    """
    Token endpoint failure.

    Raised for a status outside the provider's success band, a malformed
    body, missing fields, a network error, or a failing delegated exchange.
    The raw response body is kept for diagnostics.
    """

    def __init__(self, message: str, body: str = "", status_code: int | None = None):
        super().__init__(message)
        self.body = body
        self.status_code = status_code


class ProfileFetchError(LinkedInError):
    """Profile, email or image endpoint failure."""

    def __init__(self, message: str, body: str = "", status_code: int | None = None):
        super().__init__(message)
        self.body = body
        self.status_code = status_code


class InsufficientScopeError(ProfileFetchError):
    """
    Response lacked fields the requested projection needs.

    LinkedIn answers a profile call made without the matching scope with a
    successful status and a reduced body, so a missing required field is the
    only signal that the wrong scope was granted.
    """

    pass


class StateMismatchError(LinkedInError):
    """Redirect carried a state that differs from the one we generated."""

    pass


class ProviderError(LinkedInError):
    """LinkedIn reported an error on the redirect (error / error_description)."""

    def __init__(self, error: str, description: str = ""):
        super().__init__(description)
        self.error = error
        self.description = description
