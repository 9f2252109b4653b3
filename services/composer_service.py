"""
Composer Service Module

Opens the platform's reply composer with a generated comment pre-filled,
or the original tweet, in a new browser tab. Nothing is posted by the
application itself.
"""

import webbrowser
from typing import Callable, Optional

from data.activity_log import ActivityLog
from utils.url_utils import build_reply_intent_url, extract_tweet_id


class ComposerService:
    """Service for handing tweets and comments over to the browser."""

    def __init__(self, activity_log: ActivityLog, opener: Optional[Callable[[str], bool]] = None):
        self.activity_log = activity_log
        self.opener = opener or webbrowser.open_new_tab

    def open_reply(self, tweet_url: str, comment: str) -> Optional[str]:
        """
        Open the reply composer for a tweet with the comment pre-filled.

        Returns:
            Optional[str]: The opened intent URL, or None if no tweet id could be found.
        """
        reply_url = build_reply_intent_url(tweet_url, comment)
        if not reply_url:
            self.activity_log.error("Could not extract the tweet id", {"tweetUrl": tweet_url})
            return None

        self.opener(reply_url)
        self.activity_log.info("Opened tweet with pre-filled comment", {
            "tweetUrl": tweet_url,
            "tweetId": extract_tweet_id(tweet_url),
            "commentLength": len(comment),
            "replyUrl": reply_url,
        })
        return reply_url

    def open_original(self, tweet_url: str) -> str:
        """Open the original tweet."""
        self.opener(tweet_url)
        self.activity_log.info("Opened original tweet", {"tweetUrl": tweet_url})
        return tweet_url
