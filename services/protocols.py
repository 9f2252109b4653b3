"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for services used by the
orchestrator. These protocols enable loose coupling, dependency injection,
and easier testing.

Protocols defined:
- ExtractionServiceProtocol: Interface for tweet extraction
- GenerationServiceProtocol: Interface for comment generation
- ComposerServiceProtocol: Interface for opening the reply composer
- NotifierProtocol: Interface for short-lived user notifications
"""

from typing import Protocol, Optional, List, Any, Union

from data.models import ApiKeys, ExtractionType, GeneratedComment, LogLevel, Tweet
from services.request_builder import ExtractionRequest


class ExtractionServiceProtocol(Protocol):
    """Protocol defining the interface for tweet extraction services.

    Implementations should provide methods for:
    - Validating input and building a scraping request without network access
    - Executing a prepared request and normalizing the results
    """

    def prepare_request(
        self,
        mode: Union[ExtractionType, str],
        raw_urls: Union[str, List[str]],
        tweets_per_account: Any,
        api_keys: ApiKeys
    ) -> ExtractionRequest:
        """Validate input and build the scraping request.

        Raises:
            ValidationError: Or one of its subclasses, before any network call.
        """
        ...

    def execute(self, request: ExtractionRequest, api_keys: ApiKeys) -> List[Tweet]:
        """Run a prepared request.

        Returns:
            Normalized tweets; an empty list when the scraper found nothing.
        """
        ...


class GenerationServiceProtocol(Protocol):
    """Protocol defining the interface for comment generation services."""

    def check_preconditions(self, tweets: List[Tweet], repeats_per_tweet: Any, api_keys: ApiKeys) -> int:
        """Validate a run before any call is made and return the repeat count."""
        ...

    def generate(
        self,
        tweets: List[Tweet],
        prompt: str,
        repeats_per_tweet: Any,
        api_keys: ApiKeys
    ) -> List[GeneratedComment]:
        """Generate repeats_per_tweet comments for every tweet, in order."""
        ...


class ComposerServiceProtocol(Protocol):
    """Protocol defining the interface for opening tweets in the browser."""

    def open_reply(self, tweet_url: str, comment: str) -> Optional[str]:
        ...

    def open_original(self, tweet_url: str) -> str:
        ...


class NotifierProtocol(Protocol):
    """Protocol for the transient notification channel."""

    def notify(self, level: LogLevel, title: str, message: str) -> None:
        ...
