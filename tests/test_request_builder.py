"""
Tests for the Extraction Request Builder

Tests for the actor payloads built in 'accounts' and 'tweets' modes,
including URL validation and tweet count handling.
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.request_builder import build_extraction_request, ExtractionRequest
from data.models import ExtractionType
from utils.exceptions import InvalidUrlError, ValidationError


COMMON_OPTIONS = {
    "withReplies": False,
    "includeUserInfo": True,
    "addUserInfo": True,
    "includeConversation": False,
    "proxyConfig": {"useApifyProxy": True, "apifyProxyGroups": ["RESIDENTIAL"]},
}


class TestAccountsMode:
    """Tests for building account timeline requests."""

    def test_builds_handles_payload(self):
        """
        Test the account payload.

        Verifies handles are taken from the canonicalized profile URLs and
        the requested count is passed through.
        """
        request = build_extraction_request(
            ExtractionType.ACCOUNTS,
            ["https://x.com/acme", "https://twitter.com/globex/"],
            5,
        )

        assert isinstance(request, ExtractionRequest)
        assert request.actor_id == "web.harvester~twitter-scraper"
        assert request.payload == {"handles": ["acme", "globex"], "tweetsDesired": 5, **COMMON_OPTIONS}
        assert request.target_count == 2

    def test_count_above_maximum_is_clamped(self):
        request = build_extraction_request("accounts", ["https://x.com/acme"], 500)
        assert request.payload["tweetsDesired"] == 100

    @pytest.mark.parametrize("count", [0, -3])
    def test_count_below_minimum_rejected(self, count):
        with pytest.raises(ValidationError):
            build_extraction_request("accounts", ["https://x.com/acme"], count)


class TestTweetsMode:
    """Tests for building individual tweet requests."""

    def test_builds_start_urls_payload(self):
        request = build_extraction_request(
            "tweets",
            ["https://twitter.com/acme/status/1", " https://x.com/globex/status/2 "],
            42,
        )

        assert request.payload == {
            "startUrls": [
                {"url": "https://x.com/acme/status/1"},
                {"url": "https://x.com/globex/status/2"},
            ],
            "tweetsDesired": 1,
            **COMMON_OPTIONS,
        }
        assert request.target_count == 2

    def test_count_ignored(self):
        """The per-account count has no meaning in tweets mode, even when invalid."""
        request = build_extraction_request("tweets", ["https://x.com/acme/status/1"], 0)
        assert request.payload["tweetsDesired"] == 1


class TestValidation:
    """Tests for input rejection."""

    def test_lists_every_invalid_url(self):
        with pytest.raises(InvalidUrlError) as exc_info:
            build_extraction_request(
                "tweets",
                ["https://x.com/ok/status/1", "https://example.com/a", "garbage"],
                1,
            )

        assert exc_info.value.invalid_urls == ["https://example.com/a", "garbage"]
        assert str(exc_info.value) == "Invalid URLs found: https://example.com/a, garbage"

    def test_unknown_mode(self):
        with pytest.raises(ValidationError):
            build_extraction_request("threads", ["https://x.com/acme"], 1)
