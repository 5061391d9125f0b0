"""
Shared test configuration and fixtures.
"""

import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

# Session secret is required before importing the app
with patch.dict(
    os.environ,
    {
        "SESSION_SECRET_KEY": "test-secret",
        "LINKEDIN_CLIENT_ID": "test-client-id",
        "LINKEDIN_REDIRECT_URI": "https://www.example.com/linkedin/callback",
    },
):
    from linkedin_auth.main import app

client = TestClient(app)

REDIRECT_URI = "https://www.example.com/linkedin/callback"


@pytest.fixture
def lite_profile_payload():
    """Sample /v2/me response for a token with r_liteprofile."""
    return {
        "id": "yrZCpj2Z12",
        "firstName": {
            "localized": {"en_US": "Bob"},
            "preferredLocale": {"country": "US", "language": "en"},
        },
        "lastName": {
            "localized": {"en_US": "Smith"},
            "preferredLocale": {"country": "US", "language": "en"},
        },
        "profilePicture": {
            "displayImage": "urn:li:digitalmediaAsset:C4D00AAAAbBCDEFGhiJ",
        },
    }


@pytest.fixture
def basic_profile_payload(lite_profile_payload):
    """Sample /v2/me response for a token with r_basicprofile."""
    return {
        **lite_profile_payload,
        "maidenName": {
            "localized": {"en_US": "Jones"},
            "preferredLocale": {"country": "US", "language": "en"},
        },
        "headline": {
            "localized": {"en_US": "API Enthusiast at LinkedIn"},
            "preferredLocale": {"country": "US", "language": "en"},
        },
        "localizedFirstName": "Bob",
        "localizedLastName": "Smith",
        "localizedMaidenName": "Jones",
        "localizedHeadline": "API Enthusiast at LinkedIn",
        "vanityName": "bsmith",
    }


@pytest.fixture
def email_payload():
    """Sample /v2/emailAddress response."""
    return {
        "elements": [
            {
                "handle": "urn:li:emailAddress:3775708763",
                "handle~": {"emailAddress": "bob.smith@example.com"},
            }
        ]
    }


@pytest.fixture
def display_image_payload():
    """Sample projected /v2/me response with playable display image streams."""
    return {
        "profilePicture": {
            "displayImage": "urn:li:digitalmediaAsset:C4D00AAAAbBCDEFGhiJ",
            "displayImage~": {
                "elements": [
                    {
                        "identifiers": [
                            {
                                "identifier": "https://media.licdn.com/dms/image/100_100/photo.jpg",
                                "identifierType": "EXTERNAL_URL",
                            }
                        ]
                    },
                    {
                        "identifiers": [
                            {
                                "identifier": "https://media.licdn.com/dms/image/200_200/photo.jpg",
                                "identifierType": "EXTERNAL_URL",
                            }
                        ]
                    },
                ]
            },
        }
    }
