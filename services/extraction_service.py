"""
Extraction Service Module

This module runs the tweet scraping actor on Apify and normalizes its
loosely-typed result items into Tweet records. Every call leaves an audit
trail in the activity log.
"""

import json
import time
from typing import Any, Dict, List, Optional, Union

import requests

from config import settings
from data.activity_log import ActivityLog
from data.models import ApiKeys, ExtractionType, Tweet
from services.request_builder import ExtractionRequest, build_extraction_request
from utils.exceptions import (
    EmptyInputError, InvalidUrlError, MissingCredentialError, NetworkError,
    UpstreamError, ValidationError
)
from utils.helpers import first_present, iso_timestamp
from utils.logger import get_logger
from utils.url_utils import parse_url_list

logger = get_logger(__name__)

TEXT_UNAVAILABLE = "Text unavailable"
UNKNOWN_AUTHOR = "Unknown author"

# Ordered fallback chains for each Tweet field
ID_FIELDS = [("id",), ("tweetId",), ("tweet_id",)]
TEXT_FIELDS = [("text",), ("full_text",), ("tweet_text",), ("content",)]
URL_FIELDS = [("url",), ("tweetUrl",), ("tweet_url",)]
AUTHOR_FIELDS = [("author", "username"), ("user", "screen_name"), ("username",), ("handle",)]
CREATED_AT_FIELDS = [("created_at",), ("createdAt",), ("timestamp",)]

EMPTY_RESULT_REASONS = {
    ExtractionType.ACCOUNTS: [
        "The accounts may be private",
        "The accounts may not exist",
        "Temporary problems on the platform side",
        "The accounts may have no recent tweets",
    ],
    ExtractionType.TWEETS: [
        "The tweets may have been deleted",
        "The tweets may belong to private accounts",
        "The tweet URLs may be wrong",
        "Temporary problems on the platform side",
    ],
}

EMPTY_RESULT_SUGGESTIONS = {
    ExtractionType.ACCOUNTS: [
        "Check the account names",
        "Make sure the accounts are public",
        "Try other accounts",
    ],
    ExtractionType.TWEETS: [
        "Check the tweet URLs",
        "Make sure the tweets exist and are public",
        "Try other tweets",
    ],
}


def _now_ms() -> int:
    return int(time.time() * 1000)


# =============================================================================
# Field resolution
# =============================================================================

def resolve_raw_id(item: Dict[str, Any]) -> Optional[str]:
    """Return the item's own tweet id, or None if it carries none."""
    value = first_present(item, ID_FIELDS)
    return str(value) if value is not None else None


def resolve_tweet_id(item: Dict[str, Any], index: int, batch_stamp: int) -> str:
    """Tweet id, synthesized as tweet-{batch_stamp}-{index} when absent."""
    return resolve_raw_id(item) or f"tweet-{batch_stamp}-{index}"


def resolve_text(item: Dict[str, Any]) -> str:
    return str(first_present(item, TEXT_FIELDS, default=TEXT_UNAVAILABLE))


def resolve_url(item: Dict[str, Any], tweet_id: str) -> str:
    url = first_present(item, URL_FIELDS)
    if url:
        return str(url)
    return settings.TWEET_URL_TEMPLATE.format(tweet_id=resolve_raw_id(item) or tweet_id)


def resolve_author(item: Dict[str, Any]) -> str:
    return str(first_present(item, AUTHOR_FIELDS, default=UNKNOWN_AUTHOR))


def resolve_created_at(item: Dict[str, Any]) -> str:
    return str(first_present(item, CREATED_AT_FIELDS) or iso_timestamp())


def normalize_tweet(item: Dict[str, Any], index: int, batch_stamp: int) -> Tweet:
    """
    Map one raw scrape-result item to a Tweet.

    Args:
        item: Raw result object from the actor.
        index: Position of the item in the result array.
        batch_stamp: Millisecond timestamp shared by the whole batch.
    """
    tweet_id = resolve_tweet_id(item, index, batch_stamp)
    return Tweet(
        id=tweet_id,
        text=resolve_text(item),
        url=resolve_url(item, tweet_id),
        author=resolve_author(item),
        created_at=resolve_created_at(item),
    )


def _redact(text: str, secret: str) -> str:
    return text.replace(secret, "***") if secret else text


class ExtractionService:
    """Service for extracting tweets through the Apify scraping actor."""

    def __init__(self, activity_log: ActivityLog):
        """
        Initialize the extraction service.

        Args:
            activity_log: Durable log receiving the audit trail of every call.
        """
        self.activity_log = activity_log

    def prepare_request(self, mode: Union[ExtractionType, str], raw_urls: Union[str, List[str]],
                        tweets_per_account: Any, api_keys: ApiKeys) -> ExtractionRequest:
        """
        Check preconditions and build the actor request without touching the network.

        Raises:
            MissingCredentialError: If the Apify key is empty.
            EmptyInputError: If no URLs were given.
            InvalidUrlError: Naming every unsupported URL.
            ValidationError: For an unknown mode or an out-of-range count.
        """
        request_id = f"extract_{_now_ms()}"
        actor_id = settings.APIFY_ACTOR_ID
        if not api_keys.apify:
            self.activity_log.error("Apify API key is not configured", {
                "errorType": "MISSING_CREDENTIAL",
                "service": "apify",
                "requestId": request_id,
                "actor": actor_id,
            })
            raise MissingCredentialError("Apify", "Please set your Apify API key in settings")

        url_list = parse_url_list(raw_urls) if isinstance(raw_urls, str) else \
            [url.strip() for url in raw_urls if url and url.strip()]
        if not url_list:
            self.activity_log.error("No URLs to extract",
                                    {"errorType": "EMPTY_INPUT", "requestId": request_id, "actor": actor_id})
            raise EmptyInputError("Please enter at least one URL")

        try:
            return build_extraction_request(mode, url_list, tweets_per_account)
        except InvalidUrlError as e:
            self.activity_log.error(str(e), {
                "errorType": "INVALID_URLS",
                "errorCode": "VALIDATION_002",
                "invalidUrls": e.invalid_urls,
                "requestId": request_id,
                "actor": actor_id,
            })
            raise
        except ValidationError as e:
            self.activity_log.error(str(e), {"errorType": "INVALID_SETTINGS", "requestId": request_id, "actor": actor_id})
            raise

    def extract(self, mode: Union[ExtractionType, str], raw_urls: Union[str, List[str]],
                tweets_per_account: Any, api_keys: ApiKeys) -> List[Tweet]:
        """
        Extract tweets for a list of tweet or profile URLs.

        Args:
            mode: 'tweets' or 'accounts'.
            raw_urls: Newline-delimited text or a list of URLs.
            tweets_per_account: Tweets requested per handle in 'accounts' mode.
            api_keys: Credentials; only the Apify key is used.

        Returns:
            List[Tweet]: Normalized tweets, empty when the actor found nothing.
        """
        request = self.prepare_request(mode, raw_urls, tweets_per_account, api_keys)
        return self.execute(request, api_keys)

    def execute(self, request: ExtractionRequest, api_keys: ApiKeys) -> List[Tweet]:
        """
        Run a prepared request against the actor and normalize the result.

        Raises:
            NetworkError: If the request never completed.
            UpstreamError: If Apify answered with an error status or an unreadable body.
        """
        if not api_keys.apify:
            raise MissingCredentialError("Apify", "Please set your Apify API key in settings")

        request_id = f"extract_{_now_ms()}"
        actor_id = request.actor_id
        payload = request.payload
        handles = payload.get("handles")
        mode = ExtractionType.ACCOUNTS if handles is not None else ExtractionType.TWEETS
        endpoint = f"{settings.APIFY_API_BASE}/acts/{actor_id}/run-sync-get-dataset-items"
        scope = f" for {len(handles)} accounts" if handles is not None else ""

        start_details = {
            "type": mode.value,
            "urlsCount": request.target_count,
            "requestId": request_id,
            "timestamp": iso_timestamp(),
            "actor": actor_id,
            "apiEndpoint": endpoint,
            "requestBody": payload,
        }
        if handles is not None:
            start_details["handles"] = handles
            start_details["totalExpectedTweets"] = len(handles) * payload["tweetsDesired"]
        self.activity_log.info(f"Starting tweet extraction{scope}", start_details)

        try:
            response = requests.post(
                endpoint,
                params={"token": api_keys.apify, "timeout": settings.APIFY_RUN_TIMEOUT},
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=settings.APIFY_REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            details = {
                "errorType": type(e).__name__,
                "errorCode": "NETWORK_ERROR",
                "error": _redact(str(e), api_keys.apify),
                "requestId": request_id,
                "actor": actor_id,
                "apiEndpoint": endpoint,
                "requestBody": payload,
            }
            self.activity_log.error(f"Network error while calling Apify API{scope}", details)
            raise NetworkError(
                "Could not reach the Apify API. Check your internet connection, "
                "proxy or browser CORS restrictions and try again.",
                details=details,
            )

        self.activity_log.info(f"Received response from Apify API{scope}", {
            "status": response.status_code,
            "statusText": response.reason,
            "headers": dict(response.headers),
            "requestId": request_id,
            "actor": actor_id,
        })

        if not response.ok:
            raise self._upstream_error(response, request_id, actor_id, endpoint, payload, scope)

        try:
            data = response.json()
        except ValueError:
            details = {
                "errorCode": "MALFORMED_RESPONSE",
                "httpStatus": response.status_code,
                "responseBody": response.text,
                "requestId": request_id,
                "actor": actor_id,
            }
            self.activity_log.error(f"Apify API returned a response that is not JSON{scope}", details)
            raise UpstreamError("Apify API returned a malformed response",
                                status_code=response.status_code, details=details)

        if not isinstance(data, list):
            details = {
                "errorCode": "UNEXPECTED_RESPONSE",
                "httpStatus": response.status_code,
                "parsedResponse": data,
                "requestId": request_id,
                "actor": actor_id,
            }
            self.activity_log.error(f"Apify API returned an unexpected response shape{scope}", details)
            raise UpstreamError("Apify API returned an unexpected response",
                                status_code=response.status_code, details=details)

        success_details = {
            "dataLength": len(data),
            "sampleData": data[:settings.LOG_SAMPLE_SIZE],
            "requestId": request_id,
            "actor": actor_id,
        }
        if handles is not None:
            success_details["handles"] = handles
            success_details["expectedTweets"] = len(handles) * payload["tweetsDesired"]
            success_details["actualTweets"] = len(data)
        self.activity_log.success(f"Data received from Apify{scope}", success_details)

        if not data:
            if handles is not None:
                message = f"The Apify actor could not extract tweets for the accounts: {', '.join(handles)}"
                targets = {"handles": handles}
            else:
                message = "The Apify actor could not extract the requested tweets"
                targets = {"urls": payload.get("startUrls", [])}
            self.activity_log.warning(message, {
                **targets,
                "requestId": request_id,
                "possibleReasons": EMPTY_RESULT_REASONS[mode],
                "suggestions": EMPTY_RESULT_SUGGESTIONS[mode],
            })
            return []

        batch_stamp = _now_ms()
        tweets = [normalize_tweet(item, index, batch_stamp)
                  for index, item in enumerate(data) if isinstance(item, dict)]

        skipped = len(data) - len(tweets)
        if skipped:
            logger.warning(f"Skipped {skipped} result items that were not objects")

        if handles is not None:
            self.activity_log.info(f"Processed {len(tweets)} tweets from {len(handles)} accounts", {
                "handles": handles,
                "tweetsCount": len(tweets),
                "tweetsPerAccountRequested": payload["tweetsDesired"],
                "actualTweetsPerAccount": len(tweets) / len(handles) if handles else 0,
            })

        return tweets

    def _upstream_error(self, response: requests.Response, request_id: str, actor_id: str,
                        endpoint: str, payload: Dict[str, Any], scope: str) -> UpstreamError:
        """Log a non-success response and build the error to raise."""
        details: Dict[str, Any] = {
            "httpStatus": response.status_code,
            "httpStatusText": response.reason,
            "requestId": request_id,
            "apiEndpoint": endpoint,
            "requestBody": payload,
            "errorCode": f"HTTP_{response.status_code}",
            "actor": actor_id,
        }

        try:
            error_text = response.text
            details["responseBody"] = error_text
            try:
                error_json = json.loads(error_text)
                details["parsedError"] = error_json
                error = error_json.get("error") if isinstance(error_json, dict) else None
                if isinstance(error, dict):
                    details["errorMessage"] = error.get("message")
                    details["errorType"] = error.get("type")
                    details["errorCode"] = error.get("type") or f"HTTP_{response.status_code}"
            except ValueError:
                details["rawError"] = error_text
        except (UnicodeDecodeError, requests.exceptions.RequestException) as e:
            details["responseReadError"] = str(e)

        self.activity_log.error(f"Apify API returned an error{scope}: HTTP {response.status_code}", details)

        user_message = (details.get("errorMessage")
                        or details.get("rawError")
                        or f"HTTP {response.status_code}: {response.reason}")
        return UpstreamError(f"Apify API error{scope}: {user_message}",
                             status_code=response.status_code, details=details)
