"""
Unit tests for the LinkedIn client.
"""

from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from respx import MockRouter

from linkedin_auth.core.domain import AccessToken, ImageReference, Scope
from linkedin_auth.core.exceptions import (
    ConfigurationError,
    InsufficientScopeError,
    ProfileFetchError,
    TokenExchangeError,
)
from linkedin_auth.infrastructure.linkedin_client import (
    LinkedInClient,
    build_authorization_request,
    is_success,
)
from linkedin_auth.oauth.config import (
    ACCESS_TOKEN_URL,
    EMAIL_URL,
    PROFILE_URL,
)
from tests.conftest import REDIRECT_URI


def token_kwargs(**overrides):
    kwargs = {
        "client_id": "test-client-id",
        "client_secret": "test-secret",
        "code": "auth-code",
        "redirect_uri": REDIRECT_URI,
    }
    kwargs.update(overrides)
    return kwargs


class TestSuccessBand:
    """Tests for LinkedIn's 200-209 success class."""

    @pytest.mark.parametrize("status_code", [200, 201, 204, 209])
    def test_success_codes(self, status_code):
        """Test codes from 200 to 209 are success."""
        assert is_success(status_code) is True

    @pytest.mark.parametrize("status_code", [199, 210, 226, 299, 302, 400, 500])
    def test_failure_codes(self, status_code):
        """Test everything outside 200-209 is failure, including other 2xx."""
        assert is_success(status_code) is False


class TestBuildAuthorizationRequest:
    """Tests for building the authorization URL."""

    def test_url_contains_fixed_parameters(self):
        """Test the URL targets the authorization endpoint with all parameters."""
        request = build_authorization_request(
            client_id="test-client-id",
            redirect_uri=REDIRECT_URI,
            scopes=[Scope.EMAIL_ADDRESS, Scope.LITE_PROFILE],
        )

        parts = urlsplit(request.url)
        params = parse_qs(parts.query)
        assert parts.scheme == "https"
        assert parts.netloc == "www.linkedin.com"
        assert parts.path == "/oauth/v2/authorization"
        assert params["response_type"] == ["code"]
        assert params["client_id"] == ["test-client-id"]
        assert params["redirect_uri"] == [REDIRECT_URI]
        assert params["scope"] == ["r_emailaddress r_liteprofile"]

    def test_url_state_matches_request_state(self):
        """Test the state query parameter equals the returned state."""
        request = build_authorization_request(
            "test-client-id", REDIRECT_URI, [Scope.LITE_PROFILE]
        )

        params = parse_qs(urlsplit(request.url).query)
        assert params["state"] == [request.state]

    def test_scope_order_is_preserved(self):
        """Test scopes appear in caller order."""
        request = build_authorization_request(
            "test-client-id",
            REDIRECT_URI,
            [Scope.MEMBER_SOCIAL, Scope.LITE_PROFILE, Scope.EMAIL_ADDRESS],
        )

        params = parse_qs(urlsplit(request.url).query)
        assert params["scope"] == ["w_member_social r_liteprofile r_emailaddress"]

    def test_states_are_unique(self):
        """Test identical inputs produce different states."""
        first = build_authorization_request(
            "test-client-id", REDIRECT_URI, [Scope.LITE_PROFILE]
        )
        second = build_authorization_request(
            "test-client-id", REDIRECT_URI, [Scope.LITE_PROFILE]
        )

        assert first.state != second.state
        assert len(first.state) == 36

    @pytest.mark.parametrize(
        "client_id,redirect_uri",
        [
            ("test-client-id", REDIRECT_URI),
            ("", REDIRECT_URI),
            ("test-client-id", ""),
            ("other", "https://other.example.com/cb"),
        ],
    )
    def test_empty_scopes_raise(self, client_id, redirect_uri):
        """Test empty scopes always fail."""
        with pytest.raises(ConfigurationError):
            build_authorization_request(client_id, redirect_uri, [])

    def test_empty_client_id_raises(self):
        """Test a blank client ID fails."""
        with pytest.raises(ConfigurationError, match="client ID"):
            build_authorization_request("", REDIRECT_URI, [Scope.LITE_PROFILE])

    def test_empty_redirect_uri_raises(self):
        """Test a blank redirect URI fails."""
        with pytest.raises(ConfigurationError, match="Redirect URI"):
            build_authorization_request("test-client-id", "", [Scope.LITE_PROFILE])

    def test_free_form_scope_rejected(self):
        """Test plain strings are not accepted as scopes."""
        with pytest.raises(ConfigurationError, match="Unsupported scope"):
            build_authorization_request(
                "test-client-id", REDIRECT_URI, ["r_liteprofile"]
            )

    def test_client_method_delegates(self):
        """Test the client exposes the same builder."""
        request = LinkedInClient().build_authorization_request(
            "test-client-id", REDIRECT_URI, [Scope.LITE_PROFILE]
        )
        assert request.url.startswith("https://www.linkedin.com/oauth/v2/authorization?")


class TestExchangeCodeForToken:
    """Tests for the authorization code exchange."""

    @pytest.mark.asyncio
    async def test_exchange_success(self, respx_mock: MockRouter):
        """Test a 201 response yields an AccessToken."""
        route = respx_mock.post(ACCESS_TOKEN_URL).mock(
            return_value=httpx.Response(
                201, json={"access_token": "abc", "expires_in": 3600}
            )
        )

        token = await LinkedInClient().exchange_code_for_token(**token_kwargs())

        assert isinstance(token, AccessToken)
        assert token.token == "abc"
        expected = datetime.now(UTC) + timedelta(seconds=3600)
        assert abs((token.expires_at - expected).total_seconds()) < 1
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_exchange_sends_form(self, respx_mock: MockRouter):
        """Test the request carries the grant and client parameters."""
        route = respx_mock.post(ACCESS_TOKEN_URL).mock(
            return_value=httpx.Response(
                200, json={"access_token": "abc", "expires_in": 3600}
            )
        )

        await LinkedInClient().exchange_code_for_token(**token_kwargs())

        request = route.calls.last.request
        form = parse_qs(request.content.decode())
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert form == {
            "grant_type": ["authorization_code"],
            "client_id": ["test-client-id"],
            "redirect_uri": [REDIRECT_URI],
            "client_secret": ["test-secret"],
            "code": ["auth-code"],
        }

    @pytest.mark.asyncio
    async def test_exchange_bad_request(self, respx_mock: MockRouter):
        """Test a 400 response raises TokenExchangeError with the body."""
        body = '{"error":"invalid_request","error_description":"bad code"}'
        respx_mock.post(ACCESS_TOKEN_URL).mock(
            return_value=httpx.Response(400, text=body)
        )

        with pytest.raises(TokenExchangeError) as exc_info:
            await LinkedInClient().exchange_code_for_token(**token_kwargs())

        assert exc_info.value.body == body
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_exchange_status_outside_band(self, respx_mock: MockRouter):
        """Test a 2xx status above 209 is still a failure."""
        respx_mock.post(ACCESS_TOKEN_URL).mock(
            return_value=httpx.Response(
                226, json={"access_token": "abc", "expires_in": 3600}
            )
        )

        with pytest.raises(TokenExchangeError):
            await LinkedInClient().exchange_code_for_token(**token_kwargs())

    @pytest.mark.asyncio
    async def test_exchange_malformed_body(self, respx_mock: MockRouter):
        """Test a non-JSON body raises TokenExchangeError."""
        respx_mock.post(ACCESS_TOKEN_URL).mock(
            return_value=httpx.Response(200, text="<html>oops</html>")
        )

        with pytest.raises(TokenExchangeError) as exc_info:
            await LinkedInClient().exchange_code_for_token(**token_kwargs())

        assert exc_info.value.body == "<html>oops</html>"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"expires_in": 3600},
            {"access_token": "", "expires_in": 3600},
            {"access_token": "abc"},
            {"access_token": "abc", "expires_in": "3600"},
            ["abc", 3600],
        ],
    )
    async def test_exchange_missing_fields(self, respx_mock: MockRouter, payload):
        """Test missing or mistyped fields raise TokenExchangeError."""
        respx_mock.post(ACCESS_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=payload)
        )

        with pytest.raises(TokenExchangeError):
            await LinkedInClient().exchange_code_for_token(**token_kwargs())

    @pytest.mark.asyncio
    async def test_exchange_network_error(self, respx_mock: MockRouter):
        """Test a connection failure raises TokenExchangeError."""
        respx_mock.post(ACCESS_TOKEN_URL).mock(
            side_effect=httpx.ConnectError("Connection failed")
        )

        with pytest.raises(TokenExchangeError, match="Network error"):
            await LinkedInClient().exchange_code_for_token(**token_kwargs())

    @pytest.mark.asyncio
    async def test_exchange_timeout(self, respx_mock: MockRouter):
        """Test a timeout raises TokenExchangeError."""
        respx_mock.post(ACCESS_TOKEN_URL).mock(
            side_effect=httpx.ReadTimeout("Timed out")
        )

        with pytest.raises(TokenExchangeError):
            await LinkedInClient(timeout=0.5).exchange_code_for_token(**token_kwargs())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["client_id", "client_secret", "code", "redirect_uri"])
    async def test_exchange_requires_all_inputs(self, field):
        """Test blank inputs fail before any I/O."""
        with pytest.raises(ConfigurationError):
            await LinkedInClient().exchange_code_for_token(**token_kwargs(**{field: ""}))


class TestFetchProfiles:
    """Tests for profile and email retrieval."""

    @pytest.mark.asyncio
    async def test_fetch_lite_profile(self, respx_mock: MockRouter, lite_profile_payload):
        """Test the lite profile is fetched with the bearer token."""
        route = respx_mock.get(PROFILE_URL).mock(
            return_value=httpx.Response(200, json=lite_profile_payload)
        )

        profile = await LinkedInClient().fetch_lite_profile("test-token")

        assert profile.first_name.text == "Bob"
        assert profile.maiden_name.text == ""
        assert route.calls.last.request.headers["authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_fetch_lite_profile_unauthorized(self, respx_mock: MockRouter):
        """Test a 401 raises ProfileFetchError with the status."""
        respx_mock.get(PROFILE_URL).mock(
            return_value=httpx.Response(401, json={"message": "Invalid access token"})
        )

        with pytest.raises(ProfileFetchError) as exc_info:
            await LinkedInClient().fetch_lite_profile("expired-token")

        assert exc_info.value.status_code == 401
        assert "Invalid access token" in exc_info.value.body
        assert not isinstance(exc_info.value, InsufficientScopeError)

    @pytest.mark.asyncio
    async def test_fetch_lite_profile_network_error(self, respx_mock: MockRouter):
        """Test a connection failure raises ProfileFetchError."""
        respx_mock.get(PROFILE_URL).mock(
            side_effect=httpx.ConnectError("Connection failed")
        )

        with pytest.raises(ProfileFetchError, match="Network error"):
            await LinkedInClient().fetch_lite_profile("test-token")

    @pytest.mark.asyncio
    async def test_fetch_basic_profile(self, respx_mock: MockRouter, basic_profile_payload):
        """Test the basic profile is parsed."""
        respx_mock.get(PROFILE_URL).mock(
            return_value=httpx.Response(200, json=basic_profile_payload)
        )

        profile = await LinkedInClient().fetch_basic_profile("test-token")

        assert profile.vanity_name == "bsmith"
        assert profile.headline.text == "API Enthusiast at LinkedIn"

    @pytest.mark.asyncio
    async def test_fetch_basic_profile_with_lite_scope(
        self, respx_mock: MockRouter, lite_profile_payload
    ):
        """Test a lite-only body surfaces as InsufficientScopeError."""
        respx_mock.get(PROFILE_URL).mock(
            return_value=httpx.Response(200, json=lite_profile_payload)
        )

        with pytest.raises(InsufficientScopeError, match="r_basicprofile"):
            await LinkedInClient().fetch_basic_profile("test-token")

    @pytest.mark.asyncio
    async def test_fetch_profile_not_json(self, respx_mock: MockRouter):
        """Test a non-JSON body raises ProfileFetchError."""
        respx_mock.get(PROFILE_URL).mock(
            return_value=httpx.Response(200, text="not json")
        )

        with pytest.raises(ProfileFetchError, match="not JSON"):
            await LinkedInClient().fetch_lite_profile("test-token")

    @pytest.mark.asyncio
    async def test_fetch_email_address(self, respx_mock: MockRouter, email_payload):
        """Test the email is read from the projected handle element."""
        route = respx_mock.get(EMAIL_URL).mock(
            return_value=httpx.Response(200, json=email_payload)
        )

        email = await LinkedInClient().fetch_email_address("test-token")

        assert email == "bob.smith@example.com"
        params = route.calls.last.request.url.params
        assert params["q"] == "members"
        assert params["projection"] == "(elements*(handle~))"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [{"elements": []}, {"elements": [{"handle": "urn:li:emailAddress:1"}]}, {}],
    )
    async def test_fetch_email_address_missing(self, respx_mock: MockRouter, payload):
        """Test a body without the email element raises InsufficientScopeError."""
        respx_mock.get(EMAIL_URL).mock(return_value=httpx.Response(200, json=payload))

        with pytest.raises(InsufficientScopeError, match="r_emailaddress"):
            await LinkedInClient().fetch_email_address("test-token")

    @pytest.mark.asyncio
    async def test_fetch_email_address_server_error(self, respx_mock: MockRouter):
        """Test a 500 raises ProfileFetchError."""
        respx_mock.get(EMAIL_URL).mock(return_value=httpx.Response(500, text="boom"))

        with pytest.raises(ProfileFetchError) as exc_info:
            await LinkedInClient().fetch_email_address("test-token")

        assert exc_info.value.status_code == 500


class TestResolveDisplayImageUrl:
    """Tests for profile picture resolution."""

    @pytest.mark.asyncio
    async def test_resolve_is_memoized(self, respx_mock: MockRouter, display_image_payload):
        """Test two resolutions perform exactly one network call."""
        route = respx_mock.get(PROFILE_URL).mock(
            return_value=httpx.Response(200, json=display_image_payload)
        )
        image = ImageReference(urn="urn:li:digitalmediaAsset:C4D00AAAAbBCDEFGhiJ")
        client = LinkedInClient()

        first = await client.resolve_display_image_url(image, "test-token")
        second = await client.resolve_display_image_url(image, "test-token")

        assert first == "https://media.licdn.com/dms/image/100_100/photo.jpg"
        assert second == first
        assert image.display_url == first
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_resolved_reference_skips_io(self):
        """Test an already resolved reference is returned without a token check."""
        image = ImageReference(urn="urn:li:image:1")
        image.remember_display_url("https://media.licdn.com/cached.jpg")

        url = await LinkedInClient().resolve_display_image_url(image, "")

        assert url == "https://media.licdn.com/cached.jpg"

    @pytest.mark.asyncio
    async def test_resolve_failure_not_memoized(
        self, respx_mock: MockRouter, display_image_payload
    ):
        """Test a failed resolution leaves the reference unresolved."""
        route = respx_mock.get(PROFILE_URL).mock(
            side_effect=[
                httpx.Response(500, text="boom"),
                httpx.Response(200, json=display_image_payload),
            ]
        )
        image = ImageReference(urn="urn:li:image:1")
        client = LinkedInClient()

        with pytest.raises(ProfileFetchError):
            await client.resolve_display_image_url(image, "test-token")
        assert image.display_url == ""

        url = await client.resolve_display_image_url(image, "test-token")
        assert url == "https://media.licdn.com/dms/image/100_100/photo.jpg"
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_resolve_unexpected_body(self, respx_mock: MockRouter):
        """Test a body without playable streams raises ProfileFetchError."""
        respx_mock.get(PROFILE_URL).mock(
            return_value=httpx.Response(
                200, json={"profilePicture": {"displayImage": "urn:li:image:1"}}
            )
        )

        with pytest.raises(ProfileFetchError, match="Failed to fetch image"):
            await LinkedInClient().resolve_display_image_url(
                ImageReference(urn="urn:li:image:1"), "test-token"
            )


class TestClientLifecycle:
    """Tests for HTTP client ownership."""

    @pytest.mark.asyncio
    async def test_shared_http_client_is_used(
        self, respx_mock: MockRouter, email_payload
    ):
        """Test an injected client is used and left open."""
        respx_mock.get(EMAIL_URL).mock(
            return_value=httpx.Response(200, json=email_payload)
        )

        async with httpx.AsyncClient() as http_client:
            client = LinkedInClient(http_client=http_client)
            await client.fetch_email_address("test-token")
            await client.aclose()

            assert http_client.is_closed is False

    @pytest.mark.asyncio
    async def test_context_manager_closes_owned_client(
        self, respx_mock: MockRouter, email_payload
    ):
        """Test the context manager closes the client it created."""
        respx_mock.get(EMAIL_URL).mock(
            return_value=httpx.Response(200, json=email_payload)
        )

        async with LinkedInClient() as client:
            http_client = client._http_client
            assert await client.fetch_email_address("test-token") == (
                "bob.smith@example.com"
            )

        assert http_client.is_closed is True
        assert client._http_client is None
