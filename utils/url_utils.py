"""
URL and Handle Utilities

Pure helpers for validating platform URLs, rewriting them to the preferred
domain, and pulling account handles and tweet ids out of them.
"""

from typing import List
from urllib.parse import urlsplit, urlunsplit, quote

from config import settings

# Characters left unescaped in a URI component, besides letters, digits and "_.-~"
_URI_COMPONENT_SAFE = "!*'()"


def is_supported_url(raw: str) -> bool:
    """
    Check whether a URL points at one of the supported platform domains.

    Args:
        raw: The URL to check

    Returns:
        bool: True only if the host is exactly one of settings.SUPPORTED_DOMAINS
    """
    if not isinstance(raw, str):
        return False
    try:
        parts = urlsplit(raw.strip())
        # Raises ValueError for a non-numeric or out-of-range port
        parts.port
        return parts.hostname in settings.SUPPORTED_DOMAINS
    except ValueError:
        return False


def canonicalize_host(raw: str) -> str:
    """
    Rewrite the host of a platform URL to the preferred domain.

    Path, query and fragment are left untouched. Input that does not parse,
    or whose host is not a supported domain, is returned stripped but otherwise
    unchanged.

    Args:
        raw: The URL to rewrite

    Returns:
        str: The rewritten URL
    """
    url = raw.strip()
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError:
        return url

    if host not in settings.SUPPORTED_DOMAINS or host == settings.PREFERRED_DOMAIN:
        return url

    userinfo, at, hostport = parts.netloc.rpartition('@')
    _, colon, port = hostport.partition(':')
    netloc = f"{userinfo}{at}{settings.PREFERRED_DOMAIN}{colon}{port}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def extract_handle(raw: str) -> str:
    """
    Extract the account handle from a profile URL.

    Args:
        raw: A profile URL such as https://x.com/acme

    Returns:
        str: The first non-empty path segment, or "" if there is none
    """
    try:
        parts = urlsplit(raw.strip())
    except (ValueError, AttributeError):
        return ""
    if not parts.scheme or not parts.netloc:
        return ""
    segments = [segment for segment in parts.path.split('/') if segment]
    return segments[0] if segments else ""


def parse_url_list(raw: str) -> List[str]:
    """Split newline-delimited input into stripped, non-empty entries."""
    if not raw:
        return []
    return [line.strip() for line in raw.splitlines() if line.strip()]


def extract_tweet_id(tweet_url: str) -> str:
    """
    Extract the tweet id from a status URL.

    The id is the final path segment, with any query string removed.
    """
    if not tweet_url:
        return ""
    last_segment = tweet_url.rstrip('/').split('/')[-1]
    return last_segment.split('?')[0].split('#')[0]


def build_reply_intent_url(tweet_url: str, comment: str) -> str:
    """
    Build the platform's reply-composer URL with the comment pre-filled.

    Returns:
        str: The intent URL, or "" if no tweet id could be found
    """
    tweet_id = extract_tweet_id(tweet_url)
    if not tweet_id:
        return ""
    return f"{settings.REPLY_INTENT_URL}?in_reply_to={tweet_id}&text={quote(comment, safe=_URI_COMPONENT_SAFE)}"
