"""
Tests for Session Export

Tests for writing and reading the tweet_data export file.
"""

import json
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.exporter import build_export_payload, export_session, load_session
from data.models import ExtractionSettings, ExtractionType
from utils.exceptions import ValidationError


class TestExport:
    """Tests for export_session()."""

    def test_writes_expected_document(self, tmp_path, tweet_factory, comment_factory):
        tweets = [tweet_factory(text="Ünïcode ✓")]
        comments = [comment_factory()]
        extraction_settings = ExtractionSettings(extraction_type=ExtractionType.ACCOUNTS, urls="https://x.com/a")

        path = export_session(str(tmp_path / "exports"), tweets, comments, extraction_settings)

        assert os.path.basename(path).startswith("tweet_data_")
        with open(path, encoding="utf-8") as f:
            raw = f.read()
        assert "Ünïcode ✓" in raw
        data = json.loads(raw)
        assert list(data) == ["extractedTweets", "generatedComments", "extractionSettings", "exportDate"]
        assert data["extractedTweets"][0]["createdAt"] == tweets[0].created_at
        assert data["generatedComments"][0]["tweetId"] == comments[0].tweet_id
        assert data["extractionSettings"]["extractionType"] == "accounts"

    def test_payload_export_date(self, tweet_factory):
        payload = build_export_payload([tweet_factory()], [], ExtractionSettings())
        assert payload["exportDate"].endswith("Z")


class TestLoad:
    """Tests for load_session()."""

    def test_reads_exported_file(self, tmp_path, tweet_factory, comment_factory):
        tweets = [tweet_factory(tweet_id="1"), tweet_factory(tweet_id="2")]
        comments = [comment_factory(tweet_id="1")]
        path = export_session(str(tmp_path), tweets, comments, ExtractionSettings(comments_per_tweet=4))

        snapshot = load_session(path)

        assert snapshot.extracted_tweets == tweets
        assert snapshot.generated_comments == comments
        assert snapshot.extraction_settings.comments_per_tweet == 4

    def test_out_of_range_counts_clamped(self, tmp_path):
        path = tmp_path / "tweet_data.json"
        path.write_text(json.dumps({
            "extractionSettings": {"tweetsPerAccount": 1000, "commentsPerTweet": 0},
        }), encoding="utf-8")

        snapshot = load_session(str(path))

        assert snapshot.extraction_settings.tweets_per_account == 100
        assert snapshot.extraction_settings.comments_per_tweet == 1

    def test_rejects_non_object(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(ValidationError):
            load_session(str(path))

    def test_rejects_missing_file(self, tmp_path):
        with pytest.raises(ValidationError):
            load_session(str(tmp_path / "missing.json"))
