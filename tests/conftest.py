"""
Shared Test Fixtures for Tweet Comment Automator

This module provides common fixtures used across all test modules.
Fixtures include isolated settings paths, database connection mocks,
logging capture, HTTP responses, fake collaborators for the orchestrator,
and data factories for test objects.
"""

import pytest
from unittest.mock import MagicMock, patch
from typing import Optional, Dict, Any, List
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def mock_settings(tmp_path, monkeypatch):
    """
    Point every file-backed setting at a temporary directory.

    This fixture patches the real config.settings module attribute by
    attribute, so modules that imported it keep seeing the test values,
    and no test touches real API keys or the user's data directory.

    Usage:
        def test_something(mock_settings):
            mock_settings.MAX_LOG_ENTRIES = 5
            # ... test code

    Returns:
        module: The patched settings module.
    """
    from config import settings

    data_dir = tmp_path / "data"
    values = {
        "APIFY_API_KEY": "",
        "OPENAI_API_KEY": "",
        "DATA_DIR": str(data_dir),
        "SETTINGS_FILE": str(data_dir / "user_settings.json"),
        "SESSION_FILE": str(data_dir / "session.json"),
        "ACTIVITY_LOG_FILE": str(data_dir / "app_logs.json"),
        "EXPORT_DIR": str(tmp_path / "exports"),
        "SETTINGS_BACKEND": "local",
        "USER_ID": "test-user",
        "AUTO_GENERATE_AFTER_EXTRACT": False,
        "DB_SERVER": "test-server",
        "DB_NAME": "test-db",
        "DB_USER": "test-user",
        "DB_PASSWORD": "test-password",
        "DB_CONNECTION_STRING": "DRIVER={Test};SERVER=test-server;DATABASE=test-db;",
    }
    for name, value in values.items():
        monkeypatch.setattr(settings, name, value)

    yield settings


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def mock_db_connection():
    """
    Mock pyodbc database connection and cursor.

    This fixture provides a mock database connection that simulates
    pyodbc behavior without requiring an actual database connection.

    Usage:
        def test_database(mock_db_connection):
            conn, cursor = mock_db_connection
            cursor.fetchall.return_value = [('row1',), ('row2',)]
            # ... test code

    Returns:
        tuple: A tuple of (mock_connection, mock_cursor).
    """
    mock_cursor = MagicMock()
    mock_cursor.description = [('column1',), ('column2',)]
    mock_cursor.fetchall.return_value = []
    mock_cursor.fetchone.return_value = None
    mock_cursor.rowcount = 0

    mock_conn = MagicMock()
    mock_conn.cursor.return_value = mock_cursor
    mock_conn.commit.return_value = None
    mock_conn.rollback.return_value = None
    mock_conn.close.return_value = None

    with patch('pyodbc.connect', return_value=mock_conn):
        yield mock_conn, mock_cursor


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def capture_logs():
    """
    Capture log messages for assertion in tests.

    Records are captured on the application's root logger, which does not
    propagate to the Python root logger.

    Returns:
        list: A list that will contain captured log records.
    """
    import logging
    from utils.logger import ROOT_LOGGER_NAME

    class LogCapture(logging.Handler):
        def __init__(self):
            super().__init__()
            self.records = []

        def emit(self, record):
            self.records.append(record)

    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    original_level = app_logger.level
    app_logger.setLevel(logging.DEBUG)
    app_logger.addHandler(handler)

    yield handler.records

    app_logger.removeHandler(handler)
    app_logger.setLevel(original_level)


@pytest.fixture
def activity_log():
    """In-memory activity log."""
    from data.activity_log import ActivityLog
    return ActivityLog(storage_path=None)


# =============================================================================
# HTTP Response Fixtures
# =============================================================================

@pytest.fixture
def mock_http_response():
    """
    Factory fixture for creating mock HTTP responses.

    This fixture returns a factory function that creates mock response
    objects with configurable status codes, content, and headers.

    Usage:
        def test_http_request(mock_http_response):
            response = mock_http_response(
                status_code=200,
                json_data=[{'id': '1'}],
                headers={'Content-Type': 'application/json'}
            )
            # ... test code

    Returns:
        callable: A factory function for creating mock responses.
    """
    def _create_response(
        status_code: int = 200,
        text: str = '',
        json_data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        reason: Optional[str] = None,
        url: str = 'https://api.apify.com'
    ) -> MagicMock:
        """
        Create a mock HTTP response object.

        Args:
            status_code: HTTP status code (default 200).
            text: Text content (will be auto-generated from json_data if not provided).
            json_data: Value to return from response.json().
            headers: Response headers dictionary.
            reason: HTTP reason phrase.
            url: The URL of the response.

        Returns:
            MagicMock: A mock response object mimicking requests.Response.
        """
        import json

        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.url = url
        mock_response.headers = headers or {'Content-Type': 'application/json'}
        mock_response.ok = 200 <= status_code < 400
        mock_response.reason = reason or ('OK' if status_code < 400 else 'Error')

        # Set text content
        if text:
            mock_response.text = text
        elif json_data is not None:
            mock_response.text = json.dumps(json_data)
        else:
            mock_response.text = ''

        # Configure json() method
        if json_data is not None:
            mock_response.json.return_value = json_data
        else:
            mock_response.json.side_effect = ValueError("No JSON data")

        return mock_response

    return _create_response


@pytest.fixture
def mock_requests(mock_http_response):
    """
    Mock the requests library for HTTP testing.

    Usage:
        def test_api_call(mock_requests):
            mock_requests.post.return_value = mock_requests.response(
                json_data=[{'id': '1'}]
            )
            # ... test code

    Returns:
        MagicMock: A mock requests module with response factory attached.
    """
    with patch('requests.get') as mock_get, \
         patch('requests.post') as mock_post, \
         patch('requests.put') as mock_put, \
         patch('requests.delete') as mock_delete:

        mock_req = MagicMock()
        mock_req.get = mock_get
        mock_req.post = mock_post
        mock_req.put = mock_put
        mock_req.delete = mock_delete
        mock_req.response = mock_http_response

        yield mock_req


# =============================================================================
# Orchestrator Fakes
# =============================================================================

class InMemorySettingsStore:
    """SettingsStore keeping everything in memory."""

    def __init__(self, user_settings=None, session=None):
        from data.models import UserSettings
        self.user_settings = user_settings or UserSettings()
        self.session = session
        self.saved_sessions: List[Dict[str, Any]] = []

    def load(self):
        return self.user_settings

    def save(self, patch):
        return True, "Settings saved"

    def save_api_keys(self, keys):
        from config.validators import check_api_keys
        from data.models import UserSettings

        problems = check_api_keys(keys.apify, keys.openai)
        if problems:
            return False, "; ".join(problems)
        self.user_settings = UserSettings(apify_api_key=keys.apify, openai_api_key=keys.openai,
                                          saved_prompts=self.user_settings.saved_prompts)
        return True, "Settings saved"

    def list_prompts(self):
        return list(self.user_settings.saved_prompts)

    def upsert_prompt(self, name, text):
        return True, "Prompt saved"

    def delete_prompt(self, prompt_id):
        return True, "Prompt deleted"

    def load_session(self):
        return self.session

    def save_session(self, session):
        self.session = session
        self.saved_sessions.append(session)


class FakeTimer:
    """threading.Timer stand-in that only fires when told to."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args, **self.kwargs)


@pytest.fixture
def make_settings_store():
    """Factory for in-memory settings stores: make_settings_store(user_settings=None, session=None)."""
    return InMemorySettingsStore


@pytest.fixture
def settings_store():
    """Empty in-memory settings store with both API keys configured."""
    from data.models import UserSettings
    return InMemorySettingsStore(UserSettings(apify_api_key="apify_api_test", openai_api_key="sk-test"))


@pytest.fixture
def timers():
    """
    Factory that records every FakeTimer created.

    Returns:
        list: Created timers; the factory itself is available as timers.factory.
    """
    class _Timers(list):
        def factory(self, interval, function, args=None, kwargs=None):
            timer = FakeTimer(interval, function, args, kwargs)
            self.append(timer)
            return timer

    return _Timers()


# =============================================================================
# Data Model Factories
# =============================================================================

@pytest.fixture
def tweet_factory():
    """
    Factory fixture for creating Tweet test objects.

    Usage:
        def test_tweet(tweet_factory):
            tweet = tweet_factory(tweet_id='42', text='hello')

    Returns:
        callable: A factory function for creating Tweet objects.
    """
    from data.models import Tweet

    def _create_tweet(
        tweet_id: str = '1234567890',
        text: str = 'Test tweet content for unit testing.',
        url: Optional[str] = None,
        author: str = 'testuser',
        created_at: str = '2025-01-01T00:00:00.000Z'
    ):
        return Tweet(
            id=tweet_id,
            text=text,
            url=url or f'https://x.com/{author}/status/{tweet_id}',
            author=author,
            created_at=created_at,
        )

    return _create_tweet


@pytest.fixture
def comment_factory():
    """Factory fixture for creating GeneratedComment test objects."""
    from data.models import GeneratedComment

    def _create_comment(
        tweet_id: str = '1234567890',
        comment: str = 'Great point!',
        tweet_text: str = 'Test tweet content for unit testing.',
        tweet_url: Optional[str] = None
    ):
        return GeneratedComment(
            tweet_id=tweet_id,
            tweet_text=tweet_text,
            tweet_url=tweet_url or f'https://x.com/testuser/status/{tweet_id}',
            comment=comment,
        )

    return _create_comment


@pytest.fixture
def raw_scrape_item():
    """Factory for raw scrape-result items as returned by the actor."""
    def _create_item(**overrides) -> Dict[str, Any]:
        item = {
            'id': '1111',
            'text': 'Raw tweet text',
            'url': 'https://x.com/acme/status/1111',
            'author': {'username': 'acme'},
            'created_at': '2025-01-01T12:00:00.000Z',
        }
        item.update(overrides)
        return item

    return _create_item
