"""
Tests for CommentGenerationService Class

Tests for comment generation including preconditions, call ordering,
request shape, and stop-on-first-error behavior.
"""

import pytest
from unittest.mock import MagicMock
import httpx
import openai
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.generation_service import CommentGenerationService, build_instruction
from data.models import ApiKeys, LogLevel
from utils.exceptions import EmptyInputError, MissingCredentialError, NetworkError, UpstreamError, ValidationError


KEYS = ApiKeys(apify="apify_api_test", openai="sk-secret")
CHAT_URL = "https://api.openai.com/v1/chat/completions"


def completion(content):
    """Build a chat-completion response object."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def status_error(status_code, body):
    request = httpx.Request("POST", CHAT_URL)
    response = httpx.Response(status_code, request=request, json=body)
    return openai.APIStatusError(f"Error code: {status_code}", response=response, body=body)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def client_factory(client):
    return MagicMock(return_value=client)


@pytest.fixture
def service(activity_log, client_factory):
    return CommentGenerationService(activity_log, client_factory=client_factory, model="gpt-test")


class TestPreconditions:
    """Tests for checks done before any call is made."""

    def test_missing_key(self, service, client_factory, tweet_factory):
        with pytest.raises(MissingCredentialError):
            service.generate([tweet_factory()], "prompt", 1, ApiKeys(apify="apify_api_test"))
        client_factory.assert_not_called()

    def test_no_tweets(self, service, client_factory):
        with pytest.raises(EmptyInputError):
            service.generate([], "prompt", 1, KEYS)
        client_factory.assert_not_called()

    def test_zero_repeats_rejected(self, service, tweet_factory):
        with pytest.raises(ValidationError):
            service.check_preconditions([tweet_factory()], 0, KEYS)

    def test_repeats_clamped_to_maximum(self, service, tweet_factory):
        assert service.check_preconditions([tweet_factory()], 50, KEYS) == 20


class TestGenerate:
    """Tests for successful generation runs."""

    def test_generates_grouped_by_tweet(self, service, client, client_factory, tweet_factory, activity_log):
        """
        Test that comments are ordered by tweet, then by repeat.

        Verifies the client is built without retries and every call uses the
        combined instruction.
        """
        tweets = [tweet_factory(tweet_id="1", text="first"), tweet_factory(tweet_id="2", text="second")]
        client.chat.completions.create.side_effect = [completion(f" c{i} ") for i in range(4)]

        comments = service.generate(tweets, "Be kind.", 2, KEYS)

        assert [(c.tweet_id, c.comment) for c in comments] == [("1", "c0"), ("1", "c1"), ("2", "c2"), ("2", "c3")]
        assert all(c.expanded is False for c in comments)
        assert comments[2].tweet_text == "second"
        assert comments[2].tweet_url == tweets[1].url

        factory_kwargs = client_factory.call_args.kwargs
        assert factory_kwargs["api_key"] == "sk-secret"
        assert factory_kwargs["max_retries"] == 0

        first_call = client.chat.completions.create.call_args_list[0].kwargs
        assert first_call == {
            "model": "gpt-test",
            "messages": [{"role": "user", "content": 'Be kind.\n\nTweet: "first"'}],
            "max_tokens": 280,
            "temperature": 0.7,
        }
        assert len(activity_log.entries(LogLevel.SUCCESS)) == 4
        assert not activity_log.entries(LogLevel.ERROR)

    def test_empty_content_uses_placeholder(self, service, client, tweet_factory):
        client.chat.completions.create.return_value = completion("   ")

        comments = service.generate([tweet_factory()], "prompt", 1, KEYS)

        assert comments[0].comment == "Could not generate a comment"

    def test_build_instruction(self):
        assert build_instruction("Reply.", "hi") == 'Reply.\n\nTweet: "hi"'


class TestFailures:
    """Tests for the stop-on-first-error policy."""

    def test_rate_limit_mid_run(self, service, client, tweet_factory, activity_log):
        """
        Test Scenario: the 5th of 6 calls is rejected with 429.

        Verifies the run stops at the failing call, the error carries the
        status and the failing tweet, and exactly one error entry is recorded.
        """
        tweets = [tweet_factory(tweet_id=str(i)) for i in range(3)]
        error = status_error(429, {"error": {"message": "Rate limit reached", "type": "requests"}})
        client.chat.completions.create.side_effect = [completion("ok")] * 4 + [error]

        with pytest.raises(UpstreamError) as exc_info:
            service.generate(tweets, "prompt", 2, KEYS)

        assert exc_info.value.status_code == 429
        assert exc_info.value.tweet_id == "2"
        assert "Rate limit reached" in str(exc_info.value)
        assert client.chat.completions.create.call_count == 5

        errors = activity_log.entries(LogLevel.ERROR)
        assert len(errors) == 1
        details = errors[0].details
        assert details["httpStatus"] == 429
        assert details["tweetIndex"] == 2
        assert details["callNumber"] == 5
        assert details["totalCalls"] == 6
        assert details["discardedComments"] == 4
        assert "Rate limit reached" in details["responseBody"]

    def test_message_from_flat_body(self, service, client, tweet_factory):
        client.chat.completions.create.side_effect = status_error(400, {"message": "Bad prompt"})

        with pytest.raises(UpstreamError) as exc_info:
            service.generate([tweet_factory()], "prompt", 1, KEYS)

        assert "Bad prompt" in str(exc_info.value)

    def test_connection_error(self, service, client, tweet_factory, activity_log):
        client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", CHAT_URL))

        with pytest.raises(NetworkError):
            service.generate([tweet_factory()], "prompt", 1, KEYS)

        errors = activity_log.entries(LogLevel.ERROR)
        assert len(errors) == 1
        assert errors[0].details["httpStatus"] is None
