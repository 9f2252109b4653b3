"""
Comment Generation Service Module

This module generates reply comments for extracted tweets with the OpenAI
chat-completion API. Calls are issued one at a time, tweet by tweet, and the
first failure aborts the whole run.
"""

import time
from typing import Any, Callable, List, Optional

import openai
from openai import OpenAI

from config import settings
from data.activity_log import ActivityLog
from data.models import ApiKeys, GeneratedComment, Tweet
from utils.exceptions import (
    EmptyInputError, MissingCredentialError, NetworkError, ServiceError, UpstreamError
)
from utils.helpers import normalize_count
from utils.logger import get_logger

logger = get_logger(__name__)

COMMENT_UNAVAILABLE = "Could not generate a comment"


def build_instruction(prompt: str, tweet_text: str) -> str:
    """Combine the user's prompt with the tweet being answered."""
    return f'{prompt}\n\nTweet: "{tweet_text}"'


def _status_error_message(error: openai.APIStatusError) -> str:
    body = error.body
    if isinstance(body, dict):
        nested = body.get("error")
        if isinstance(nested, dict) and nested.get("message"):
            return nested["message"]
        if body.get("message"):
            return body["message"]
    return error.message


class CommentGenerationService:
    """Service for generating tweet replies with OpenAI."""

    def __init__(self, activity_log: ActivityLog,
                 client_factory: Optional[Callable[..., Any]] = None,
                 model: Optional[str] = None):
        """
        Initialize the generation service.

        Args:
            activity_log: Durable log receiving the audit trail of every call.
            client_factory: Callable building an OpenAI client from an api_key; defaults to openai.OpenAI.
            model: Chat model identifier, defaults to settings.OPENAI_MODEL.
        """
        self.activity_log = activity_log
        self.client_factory = client_factory or OpenAI
        self.model = model or settings.OPENAI_MODEL

    def check_preconditions(self, tweets: List[Tweet], repeats_per_tweet: Any, api_keys: ApiKeys) -> int:
        """
        Validate a generation run before any call is made.

        Returns:
            int: The number of comments to generate per tweet.

        Raises:
            MissingCredentialError: If the OpenAI key is empty.
            EmptyInputError: If there are no tweets.
            ValidationError: If repeats_per_tweet is below 1.
        """
        if not api_keys.openai:
            self.activity_log.error("OpenAI API key is not configured",
                                    {"errorType": "MISSING_CREDENTIAL", "service": "openai"})
            raise MissingCredentialError("OpenAI", "Please set your OpenAI API key in settings")
        if not tweets:
            self.activity_log.error("No tweets to generate comments for", {"errorType": "EMPTY_INPUT"})
            raise EmptyInputError("Extract tweets first")
        return normalize_count(repeats_per_tweet, settings.MIN_COMMENTS_PER_TWEET,
                               settings.MAX_COMMENTS_PER_TWEET, "commentsPerTweet")

    def generate(self, tweets: List[Tweet], prompt: str, repeats_per_tweet: Any,
                 api_keys: ApiKeys) -> List[GeneratedComment]:
        """
        Generate comments for every tweet.

        Args:
            tweets: Tweets to answer, in display order.
            prompt: Instruction text prepended to each tweet.
            repeats_per_tweet: Number of comments per tweet.
            api_keys: Credentials; only the OpenAI key is used.

        Returns:
            List[GeneratedComment]: len(tweets) * repeats_per_tweet comments, grouped by
            tweet in input order.

        Raises:
            NetworkError: If a call never completed.
            UpstreamError: If OpenAI rejected a call. Comments generated earlier in
            the run are discarded.
        """
        repeats = self.check_preconditions(tweets, repeats_per_tweet, api_keys)

        generation_id = f"generate_{int(time.time() * 1000)}"
        total_calls = len(tweets) * repeats
        self.activity_log.info("Starting comment generation", {
            "tweets": len(tweets),
            "commentsPerTweet": repeats,
            "generationId": generation_id,
            "totalCommentsToGenerate": total_calls,
        })

        client = self.client_factory(
            api_key=api_keys.openai,
            max_retries=0,
            timeout=settings.GENERATION_REQUEST_TIMEOUT,
        )

        comments: List[GeneratedComment] = []
        call_number = 0

        for tweet_index, tweet in enumerate(tweets):
            for i in range(repeats):
                call_number += 1
                request_body = {
                    "model": self.model,
                    "messages": [{"role": "user", "content": build_instruction(prompt, tweet.text)}],
                    "max_tokens": settings.GENERATION_MAX_TOKENS,
                    "temperature": settings.GENERATION_TEMPERATURE,
                }
                self.activity_log.info(f"Generating comment {i + 1}/{repeats} for tweet {tweet.id}", {
                    "tweetId": tweet.id,
                    "generationId": generation_id,
                    "requestBody": request_body,
                })

                try:
                    response = client.chat.completions.create(**request_body)
                except openai.APIConnectionError as e:
                    raise self._failure(NetworkError, "Could not reach the OpenAI API. "
                                        "Check your internet connection and try again.",
                                        e, None, None, tweet, tweet_index, call_number,
                                        total_calls, generation_id, len(comments)) from e
                except openai.APIStatusError as e:
                    raise self._failure(UpstreamError, f"OpenAI API error: {e.status_code} - "
                                        f"{_status_error_message(e)}",
                                        e, e.status_code, e.response.text, tweet, tweet_index,
                                        call_number, total_calls, generation_id, len(comments)) from e

                comment = self._comment_text(response)
                comments.append(GeneratedComment(
                    tweet_id=tweet.id,
                    tweet_text=tweet.text,
                    tweet_url=tweet.url,
                    comment=comment,
                    expanded=False,
                ))
                self.activity_log.success(f"Comment generated for tweet {tweet.id}", {
                    "tweetId": tweet.id,
                    "commentLength": len(comment),
                    "generationId": generation_id,
                })

        logger.info(f"Generated {len(comments)} comments for {len(tweets)} tweets")
        return comments

    @staticmethod
    def _comment_text(response: Any) -> str:
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            content = None
        return content.strip() if content and content.strip() else COMMENT_UNAVAILABLE

    def _failure(self, error_cls, message: str, cause: Exception, status_code: Optional[int],
                 response_body: Optional[str], tweet: Tweet, tweet_index: int, call_number: int,
                 total_calls: int, generation_id: str, discarded: int) -> ServiceError:
        """Record the single error event of a failed run and build the error to raise."""
        details = {
            "errorType": type(cause).__name__,
            "httpStatus": status_code,
            "responseBody": response_body,
            "tweetId": tweet.id,
            "tweetIndex": tweet_index,
            "callNumber": call_number,
            "totalCalls": total_calls,
            "generationId": generation_id,
            "discardedComments": discarded,
        }
        self.activity_log.error(f"OpenAI API error for tweet {tweet.id}", details)
        if error_cls is UpstreamError:
            return UpstreamError(message, status_code=status_code, details=details, tweet_id=tweet.id)
        return error_cls(message, details=details, tweet_id=tweet.id)
