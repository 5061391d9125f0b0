"""
Sign in with LinkedIn from the terminal and print the member profile.

Opens the authorization URL in a browser, then asks for the URL LinkedIn
redirected to (copy it from the address bar). With
LINKEDIN_BYPASS_SERVER_CHECK=true the code is exchanged here with
LINKEDIN_CLIENT_SECRET; otherwise the redirect URI is expected to be a
server (such as this project's /linkedin/token route) that does it.
"""

import argparse
import asyncio
import sys
import webbrowser

from dotenv import load_dotenv

from linkedin_auth.core.domain import AccessToken
from linkedin_auth.core.exceptions import LinkedInError
from linkedin_auth.infrastructure.linkedin_client import (
    LinkedInClient,
    build_authorization_request,
)
from linkedin_auth.oauth.config import LinkedInConfig
from linkedin_auth.oauth.redirect import (
    LocalExchange,
    RedirectInterceptor,
    parse_token_response,
)

# Load environment variables from .env file
load_dotenv()


async def run(basic: bool, open_browser: bool) -> int:
    config = LinkedInConfig.from_env()
    try:
        config.validate()
    except LinkedInError as e:
        print(f"Error: {e}. Check your .env file.")
        return 1

    request = build_authorization_request(
        client_id=config.client_id,
        redirect_uri=config.redirect_uri,
        scopes=config.scopes,
    )
    print(f"Open this URL to sign in:\n{request.url}\n")
    if open_browser:
        webbrowser.open(request.url)

    errors: list[str] = []
    tokens: list[AccessToken] = []

    async with LinkedInClient(timeout=config.timeout) as client:
        exchange = (
            LocalExchange(config.client_id, config.client_secret)
            if config.can_exchange_locally()
            else None
        )
        interceptor = RedirectInterceptor(
            request,
            redirect_uri=config.redirect_uri,
            on_error=errors.append,
            on_token_capture=tokens.append,
            exchange=exchange,
            on_server_response=parse_token_response,
            client=client,
            timeout=config.timeout,
        )

        while not interceptor.completed:
            url = input("Paste the URL you were redirected to: ").strip()
            if not interceptor.matches(url):
                print(f"That URL does not start with {config.redirect_uri}, try again.")
                continue
            await interceptor.handle(url)

        if errors:
            print(f"Sign-in failed: {errors[0]}")
            return 1

        token = tokens[0]
        print(f"Access token expires at {token.expires_at.isoformat()}")

        try:
            if basic:
                profile = await client.fetch_basic_profile(token.token)
                print(f"Headline: {profile.headline.text}")
                print(f"Vanity name: {profile.vanity_name}")
            else:
                profile = await client.fetch_lite_profile(token.token)
            print(f"Name: {profile.first_name.text} {profile.last_name.text}")
            print(f"Email: {await client.fetch_email_address(token.token)}")
            image_url = await client.resolve_display_image_url(
                profile.profile_image, token.token
            )
            print(f"Picture: {image_url}")
        except LinkedInError as e:
            print(f"Could not fetch profile: {e}")
            return 1

    return 0


def main():
    parser = argparse.ArgumentParser(description="Sign in with LinkedIn.")
    parser.add_argument(
        "--basic",
        action="store_true",
        help="Fetch the basic profile (needs r_basicprofile).",
    )
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Only print the authorization URL.",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(run(basic=args.basic, open_browser=not args.no_browser)))


if __name__ == "__main__":
    main()
