"""
Session Export Module

Reads and writes the tweet_data_YYYY-MM-DD.json artifact holding the
extracted tweets, generated comments and extraction settings of a session.
"""

import json
import os
from dataclasses import dataclass
from typing import List

from data.models import ExtractionSettings, GeneratedComment, Tweet
from utils.exceptions import ValidationError
from utils.helpers import date_stamp, ensure_dir_exists, iso_timestamp
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SessionSnapshot:
    """Contents of an exported session file."""
    extracted_tweets: List[Tweet]
    generated_comments: List[GeneratedComment]
    extraction_settings: ExtractionSettings
    export_date: str


def build_export_payload(tweets: List[Tweet], comments: List[GeneratedComment],
                         extraction_settings: ExtractionSettings) -> dict:
    """Build the exported JSON document; key order is part of the format."""
    return {
        "extractedTweets": [tweet.to_dict() for tweet in tweets],
        "generatedComments": [comment.to_dict() for comment in comments],
        "extractionSettings": extraction_settings.to_dict(),
        "exportDate": iso_timestamp(),
    }


def export_session(directory: str, tweets: List[Tweet], comments: List[GeneratedComment],
                   extraction_settings: ExtractionSettings) -> str:
    """
    Write the session artifact to a directory.

    Args:
        directory: Target directory, created if missing.
        tweets: Extracted tweets.
        comments: Generated comments.
        extraction_settings: Current extraction settings.

    Returns:
        str: Path of the written file.
    """
    ensure_dir_exists(directory)
    path = os.path.join(directory, f"tweet_data_{date_stamp()}.json")
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(build_export_payload(tweets, comments, extraction_settings), f, indent=2, ensure_ascii=False)
    logger.info(f"Exported {len(tweets)} tweets and {len(comments)} comments to {path}")
    return path


def load_session(path: str) -> SessionSnapshot:
    """
    Read a previously exported session artifact.

    Raises:
        ValidationError: If the file is not a valid session export.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ValidationError(f"Could not read session export {path}: {e}")

    if not isinstance(data, dict):
        raise ValidationError(f"Session export {path} is not a JSON object")

    try:
        return SessionSnapshot(
            extracted_tweets=[Tweet.from_dict(item) for item in data.get("extractedTweets", [])],
            generated_comments=[GeneratedComment.from_dict(item) for item in data.get("generatedComments", [])],
            extraction_settings=ExtractionSettings.from_dict(data.get("extractionSettings") or {}),
            export_date=data.get("exportDate", ""),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ValidationError(f"Session export {path} is malformed: {e}")
