"""
Data Models for Tweet Comment Automator

This module contains data classes and models used throughout the application.
Dictionary forms use the camelCase keys of the exported JSON artifact.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from config import settings
from utils.helpers import clamp_count, iso_timestamp


class ExtractionType(str, Enum):
    """How the input URLs are interpreted."""
    TWEETS = "tweets"
    ACCOUNTS = "accounts"


class LogLevel(str, Enum):
    """Activity log entry types."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Tweet:
    """A tweet normalized from one scrape-result item."""
    id: str
    text: str
    url: str
    author: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "url": self.url,
            "author": self.author,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tweet":
        return cls(
            id=str(data["id"]),
            text=data.get("text", ""),
            url=data.get("url", ""),
            author=data.get("author", ""),
            created_at=data.get("createdAt", ""),
        )


@dataclass
class GeneratedComment:
    """One generated reply, with a snapshot of the tweet it answers."""
    tweet_id: str
    tweet_text: str
    tweet_url: str
    comment: str
    expanded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tweetId": self.tweet_id,
            "tweetText": self.tweet_text,
            "tweetUrl": self.tweet_url,
            "comment": self.comment,
            "expanded": self.expanded,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedComment":
        return cls(
            tweet_id=str(data["tweetId"]),
            tweet_text=data.get("tweetText", ""),
            tweet_url=data.get("tweetUrl", ""),
            comment=data.get("comment", ""),
            expanded=bool(data.get("expanded", False)),
        )


@dataclass(frozen=True)
class ApiKeys:
    """Credentials for the scraping and generation services. Empty means unset."""
    apify: str = ""
    openai: str = ""


@dataclass
class ExtractionSettings:
    """Session-scoped extraction and generation parameters."""
    extraction_type: ExtractionType = ExtractionType(settings.DEFAULT_EXTRACTION_TYPE)
    urls: str = ""
    tweets_per_account: int = settings.DEFAULT_TWEETS_PER_ACCOUNT
    prompt: str = settings.DEFAULT_PROMPT
    comments_per_tweet: int = settings.DEFAULT_COMMENTS_PER_TWEET

    def to_dict(self) -> Dict[str, Any]:
        return {
            "extractionType": self.extraction_type.value,
            "urls": self.urls,
            "tweetsPerAccount": self.tweets_per_account,
            "prompt": self.prompt,
            "commentsPerTweet": self.comments_per_tweet,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionSettings":
        """Restore persisted settings, forcing counts back into range."""
        try:
            extraction_type = ExtractionType(data.get("extractionType", settings.DEFAULT_EXTRACTION_TYPE))
        except ValueError:
            extraction_type = ExtractionType(settings.DEFAULT_EXTRACTION_TYPE)
        return cls(
            extraction_type=extraction_type,
            urls=data.get("urls") or "",
            tweets_per_account=clamp_count(
                data.get("tweetsPerAccount"), settings.MIN_TWEETS_PER_ACCOUNT,
                settings.MAX_TWEETS_PER_ACCOUNT, settings.DEFAULT_TWEETS_PER_ACCOUNT),
            prompt=data.get("prompt") or settings.DEFAULT_PROMPT,
            comments_per_tweet=clamp_count(
                data.get("commentsPerTweet"), settings.MIN_COMMENTS_PER_TWEET,
                settings.MAX_COMMENTS_PER_TWEET, settings.DEFAULT_COMMENTS_PER_TWEET),
        )

    def copy(self, **changes) -> "ExtractionSettings":
        return replace(self, **changes)


@dataclass
class SavedPrompt:
    """A personal prompt template."""
    id: str
    name: str
    text: str
    created_at: str = field(default_factory=iso_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "text": self.text, "createdAt": self.created_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SavedPrompt":
        return cls(
            id=str(data.get("id") or ""),
            name=data.get("name") or "",
            text=data.get("text") or "",
            created_at=data.get("createdAt") or iso_timestamp(),
        )


@dataclass
class PublicPrompt:
    """A prompt template shared with every user through the backend."""
    id: str
    name: str
    text: str
    created_at: str
    created_by: Optional[str] = None


@dataclass
class UserSettings:
    """The persisted per-user settings row."""
    apify_api_key: str = ""
    openai_api_key: str = ""
    saved_prompts: List[SavedPrompt] = field(default_factory=list)

    @property
    def api_keys(self) -> ApiKeys:
        return ApiKeys(apify=self.apify_api_key, openai=self.openai_api_key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apify_api_key": self.apify_api_key,
            "openai_api_key": self.openai_api_key,
            "saved_prompts": [prompt.to_dict() for prompt in self.saved_prompts],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSettings":
        prompts = data.get("saved_prompts")
        return cls(
            apify_api_key=data.get("apify_api_key") or "",
            openai_api_key=data.get("openai_api_key") or "",
            saved_prompts=[SavedPrompt.from_dict(p) for p in prompts] if isinstance(prompts, list) else [],
        )


@dataclass
class LogEntry:
    """One structured activity log event."""
    id: str
    timestamp: str
    type: LogLevel
    message: str
    details: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "message": self.message,
            "details": self.details,
        }

    def to_export_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "type": self.type.value,
            "message": self.message,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogEntry":
        return cls(
            id=str(data.get("id") or ""),
            timestamp=data.get("timestamp") or "",
            type=LogLevel(data.get("type", "info")),
            message=data.get("message") or "",
            details=data.get("details"),
        )
