"""
LinkedIn OAuth2 API endpoints.

Hosts the login flow in a browser and acts as the exchange server:
- GET /linkedin/login - Start the flow, redirect to LinkedIn
- GET /linkedin/callback - Intercept the redirect, exchange the code
- GET /linkedin/token - Delegated exchange for clients without the secret
- GET /linkedin/me - Lite profile, email and picture for a bearer token

LinkedIn only accepts an exchange whose redirect_uri equals the one sent
with the authorization request, and both exchanging routes send
LINKEDIN_REDIRECT_URI. A deployment therefore serves one mode:
- Browser login: LINKEDIN_REDIRECT_URI points at /linkedin/callback.
- Delegated exchange: LINKEDIN_REDIRECT_URI points at /linkedin/token, and
  the client (e.g. scripts/linkedin_login.py) is configured with the same
  value so the redirect it intercepts is forwarded here.
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from linkedin_auth.core.domain import AuthorizationRequest
from linkedin_auth.core.exceptions import (
    ConfigurationError,
    InsufficientScopeError,
    LinkedInError,
    ProfileFetchError,
    ProviderError,
    StateMismatchError,
    TokenExchangeError,
)
from linkedin_auth.oauth.config import LinkedInConfig
from linkedin_auth.oauth.dependencies import BearerToken, Client, Config, ExchangeConfig
from linkedin_auth.oauth.redirect import (
    LocalExchange,
    RedirectInterceptor,
    parse_redirect,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/linkedin", tags=["linkedin"])

# Session key holding the pending AuthorizationRequest
SESSION_KEY = "linkedin_auth_request"


def handle_linkedin_error(e: LinkedInError) -> HTTPException:
    """Convert LinkedIn exceptions to HTTP exceptions."""
    if isinstance(e, (ProviderError, StateMismatchError, ConfigurationError)):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e) or "LinkedIn authorization failed",
        )
    if isinstance(e, InsufficientScopeError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
    if isinstance(e, ProfileFetchError) and e.status_code == 401:
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="LinkedIn rejected the access token",
        )
    if isinstance(e, TokenExchangeError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="LinkedIn token exchange failed",
        )
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"LinkedIn API error: {str(e)}",
    )


def redirect_url_for(config: LinkedInConfig, request: Request) -> str:
    """
    Rebuild the redirect URL LinkedIn sent the browser to.

    The configured redirect URI is used as the base so the check does not
    depend on the host or scheme seen behind a proxy.
    """
    base = config.redirect_uri or ""
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}{request.url.query}"


@router.get("/login")
async def login(request: Request, config: Config, client: Client):
    """
    Start the LinkedIn authorization flow.

    Stores the pending request (state and URL) in the session and redirects
    the browser to LinkedIn's consent page.
    """
    auth_request = client.build_authorization_request(
        client_id=config.client_id,
        redirect_uri=config.redirect_uri,
        scopes=config.scopes,
    )
    request.session[SESSION_KEY] = auth_request.model_dump()

    logger.info(
        "Starting LinkedIn OAuth flow",
        extra={"scopes": [scope.value for scope in config.scopes]},
    )
    return RedirectResponse(url=auth_request.url)


@router.get("/callback")
async def callback(request: Request, config: ExchangeConfig, client: Client):
    """
    Handle the redirect back from LinkedIn.

    Verifies the state against the pending request, then exchanges the
    code with this server's client secret.

    Raises:
        HTTPException: 400 without a pending login or on provider / state
            errors, 502 when the token exchange fails
    """
    stored = request.session.pop(SESSION_KEY, None)
    if not stored:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No LinkedIn login in progress",
        )

    interceptor = RedirectInterceptor(
        AuthorizationRequest(**stored),
        redirect_uri=config.redirect_uri,
        on_error=lambda message: None,
        on_token_capture=lambda token: None,
        exchange=LocalExchange(config.client_id, config.client_secret),
        client=client,
        timeout=config.timeout,
    )
    await interceptor.handle(redirect_url_for(config, request))

    if interceptor.error is not None:
        raise handle_linkedin_error(interceptor.error)

    token = interceptor.token
    return {
        "status": "success",
        "access_token": token.token,
        "expires_at": token.expires_at.isoformat(),
    }


@router.get("/token")
async def token(request: Request, config: ExchangeConfig, client: Client):
    """
    Exchange a code on behalf of a client that must not hold the secret.

    The client registers this route as its redirect URI, verifies the state
    itself, then forwards the whole redirect URL here. The response mirrors
    LinkedIn's token response.
    """
    try:
        code = parse_redirect(redirect_url_for(config, request), None)
        access_token = await client.exchange_code_for_token(
            client_id=config.client_id,
            client_secret=config.client_secret,
            code=code,
            redirect_uri=config.redirect_uri,
        )
    except LinkedInError as e:
        raise handle_linkedin_error(e)

    expires_in = int((access_token.expires_at - datetime.now(UTC)).total_seconds())
    return {
        "access_token": access_token.token,
        "expires_in": max(expires_in, 0),
    }


@router.get("/me")
async def me(token: BearerToken, client: Client):
    """
    Get the member's lite profile, email address and picture URL.

    Requires a token granted r_liteprofile and r_emailaddress.
    """
    try:
        profile = await client.fetch_lite_profile(token)
        email = await client.fetch_email_address(token)
        image_url = await client.resolve_display_image_url(
            profile.profile_image, token
        )
    except LinkedInError as e:
        raise handle_linkedin_error(e)

    return {
        "id": profile.id,
        "first_name": profile.first_name.text,
        "last_name": profile.last_name.text,
        "language": profile.first_name.language,
        "email": email,
        "profile_image_url": image_url,
    }
