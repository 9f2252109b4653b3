"""
Extraction Request Builder

Builds the scraping actor payload for the two extraction modes:
account timelines (handles + tweet count) and individual tweets (startUrls).
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Union

from config import settings
from data.models import ExtractionType
from utils.exceptions import InvalidUrlError, ValidationError
from utils.helpers import normalize_count
from utils.url_utils import canonicalize_host, extract_handle, is_supported_url


@dataclass(frozen=True)
class ExtractionRequest:
    """The actor to run and the JSON body to send it."""
    actor_id: str
    payload: Dict[str, Any]

    @property
    def target_count(self) -> int:
        """Number of handles or tweet URLs the request covers."""
        return len(self.payload.get("handles") or self.payload.get("startUrls") or [])


def _common_options() -> Dict[str, Any]:
    return {
        "withReplies": False,
        "includeUserInfo": True,
        "addUserInfo": True,
        "includeConversation": False,
        "proxyConfig": {
            "useApifyProxy": True,
            "apifyProxyGroups": list(settings.APIFY_PROXY_GROUPS),
        },
    }


def build_extraction_request(mode: Union[ExtractionType, str], raw_urls: List[str],
                             tweets_per_account: Any) -> ExtractionRequest:
    """
    Build the scraping request for a list of already-validated URLs.

    Args:
        mode: 'tweets' for individual tweet URLs, 'accounts' for profile URLs.
        raw_urls: Input URLs, one per entry.
        tweets_per_account: Tweets requested per handle; ignored in 'tweets' mode.

    Returns:
        ExtractionRequest: Actor identifier and payload.

    Raises:
        InvalidUrlError: Naming every entry that is not a supported platform URL.
        ValidationError: For an unknown mode or an out-of-range tweet count.
    """
    try:
        mode = ExtractionType(mode)
    except ValueError:
        raise ValidationError(f"Unknown extraction type: {mode!r}")

    urls = [url.strip() for url in raw_urls]
    invalid = [url for url in urls if not is_supported_url(url)]
    if invalid:
        raise InvalidUrlError(invalid)

    if mode == ExtractionType.ACCOUNTS:
        count = normalize_count(tweets_per_account, settings.MIN_TWEETS_PER_ACCOUNT,
                                settings.MAX_TWEETS_PER_ACCOUNT, "tweetsPerAccount")
        payload = {
            "handles": [extract_handle(canonicalize_host(url)) for url in urls],
            "tweetsDesired": count,
        }
    else:
        payload = {
            "startUrls": [{"url": canonicalize_host(url)} for url in urls],
            "tweetsDesired": 1,
        }

    payload.update(_common_options())
    return ExtractionRequest(actor_id=settings.APIFY_ACTOR_ID, payload=payload)
