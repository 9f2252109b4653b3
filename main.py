"""
Tweet Comment Automator

This is the main entry point for the Tweet Comment Automator.
It extracts tweets through an Apify scraping actor, generates reply
comments for them with OpenAI, and opens a pre-filled reply composer
so the user can post the replies manually.
"""

import sys
import argparse
import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from config import settings
from config.validators import get_config_summary, validate_settings
from data.activity_log import ActivityLog
from data.database import DatabaseConnection
from data.exporter import export_session, load_session
from data.models import (
    ApiKeys, ExtractionSettings, ExtractionType, GeneratedComment, LogLevel, PublicPrompt, Tweet
)
from data.protocols import PublicPromptStore, SettingsStore
from data.settings_store import (
    PROMPT_ALREADY_SAVED, DatabasePublicPromptStore, DatabaseSettingsStore, LocalSettingsStore,
)
from services.composer_service import ComposerService
from services.extraction_service import ExtractionService
from services.generation_service import CommentGenerationService
from services.notifier import LoggingNotifier
from services.protocols import (
    ComposerServiceProtocol, ExtractionServiceProtocol, GenerationServiceProtocol, NotifierProtocol
)
from utils.exceptions import (
    TweetCommenterError, ConfigurationError, ValidationError, OperationInProgressError,
    OperationTimeoutError, ServiceError, NetworkError, DatabaseError
)
from utils.helpers import normalize_count, truncate_text
from utils.logger import get_logger, setup_file_logging
from utils.url_utils import parse_url_list

# Set up logging
logger = get_logger(__name__)


class SessionState(str, Enum):
    """States of the extraction/generation pipeline."""
    IDLE = "idle"
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"
    GENERATING = "generating"
    GENERATED = "generated"


BUSY_STATES = (SessionState.EXTRACTING, SessionState.GENERATING)


def create_settings_store() -> SettingsStore:
    """Build the settings store selected by SETTINGS_BACKEND."""
    if settings.SETTINGS_BACKEND == "database":
        return DatabaseSettingsStore(DatabaseConnection(), settings.USER_ID)
    return LocalSettingsStore()


class CommentAutomator:
    """
    Session orchestrator for the Tweet Comment Automator.

    This class owns the extracted tweets, the generated comments and the
    extraction settings of one session, drives extraction and generation,
    and guarantees the busy state is always released: on success, on failure,
    on an explicit reset, or when the watchdog abandons a run that never returns.
    """

    def __init__(
        self,
        activity_log: Optional[ActivityLog] = None,
        settings_store: Optional[SettingsStore] = None,
        extraction_service: Optional[ExtractionServiceProtocol] = None,
        generation_service: Optional[GenerationServiceProtocol] = None,
        composer_service: Optional[ComposerServiceProtocol] = None,
        notifier: Optional[NotifierProtocol] = None,
        public_prompt_store: Optional[PublicPromptStore] = None,
        auto_generate: Optional[bool] = None,
        watchdog_timeout: Optional[float] = None,
        timer_factory: Optional[Callable[..., Any]] = None,
        restore_session: bool = True,
        validate: bool = True
    ):
        """
        Initialize the orchestrator.

        Args:
            activity_log: Durable log sink, defaults to the persisted application log.
            settings_store: Store for keys, prompts and session state.
            extraction_service: Tweet extraction client.
            generation_service: Comment generation client.
            composer_service: Opens reply composers and tweets in the browser.
            notifier: Transient notification channel.
            public_prompt_store: Shared prompts; defaults to the database table when the
                settings store is database-backed, otherwise there are none.
            auto_generate: Chain generation after a successful extraction.
            watchdog_timeout: Seconds before a running operation is abandoned.
            timer_factory: threading.Timer compatible factory used for the watchdog.
            restore_session: Reload the last saved working set from the store.
            validate: Run configuration validation.
        """
        if validate:
            validate_settings()

        # An empty ActivityLog is falsy, so test for None explicitly
        self.activity_log = activity_log if activity_log is not None else ActivityLog(settings.ACTIVITY_LOG_FILE)
        self.settings_store = settings_store if settings_store is not None else create_settings_store()
        self.extraction_service = extraction_service or ExtractionService(self.activity_log)
        self.generation_service = generation_service or CommentGenerationService(self.activity_log)
        self.composer_service = composer_service or ComposerService(self.activity_log)
        self.notifier = notifier or LoggingNotifier()
        if public_prompt_store is None and isinstance(self.settings_store, DatabaseSettingsStore):
            public_prompt_store = DatabasePublicPromptStore(self.settings_store.db, self.settings_store.user_id)
        self.public_prompt_store = public_prompt_store

        self.auto_generate = settings.AUTO_GENERATE_AFTER_EXTRACT if auto_generate is None else auto_generate
        self.watchdog_timeout = watchdog_timeout or settings.OPERATION_WATCHDOG_TIMEOUT
        self.timer_factory = timer_factory or threading.Timer

        self.extraction_settings = ExtractionSettings()
        self.tweets: List[Tweet] = []
        self.comments: List[GeneratedComment] = []
        self.state = SessionState.IDLE

        self._lock = threading.RLock()
        self._run_token = 0
        self._watchdog = None

        self.api_keys = self._load_api_keys()

        if restore_session:
            self._restore_session()

    # =========================================================================
    # State helpers
    # =========================================================================

    @property
    def is_extracting(self) -> bool:
        return self.state == SessionState.EXTRACTING

    @property
    def is_generating(self) -> bool:
        return self.state == SessionState.GENERATING

    @property
    def is_busy(self) -> bool:
        return self.state in BUSY_STATES

    def _notify(self, level: LogLevel, title: str, message: str) -> None:
        try:
            self.notifier.notify(level, title, message)
        except Exception as e:
            logger.error(f"Notifier failed: {e}")

    def _reject(self, error: ValidationError, title: str) -> ValidationError:
        self._notify(LogLevel.ERROR, title, str(error))
        return error

    def _ensure_idle(self, operation: str) -> None:
        with self._lock:
            if not self.is_busy:
                return
            state = self.state.value
        error = OperationInProgressError(f"Cannot start {operation} while {state}")
        self.activity_log.error(str(error), {"errorType": "OPERATION_IN_PROGRESS", "state": state})
        raise self._reject(error, "Please wait")

    def _begin(self, busy_state: SessionState):
        """Enter a busy state and arm the watchdog. Returns (run token, state to fall back to)."""
        with self._lock:
            if self.is_busy:
                raise OperationInProgressError(f"Cannot start {busy_state.value} while {self.state.value}")
            previous = self.state
            self._run_token += 1
            token = self._run_token
            self.state = busy_state

            self._watchdog = self.timer_factory(self.watchdog_timeout, self._on_watchdog,
                                                args=(token, busy_state, previous))
            self._watchdog.daemon = True
            self._watchdog.start()
            return token, previous

    def _cancel_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    def _on_watchdog(self, token: int, busy_state: SessionState, previous: SessionState) -> None:
        """Abandon a run that has not finished within the watchdog ceiling."""
        with self._lock:
            if token != self._run_token or self.state != busy_state:
                return
            # Invalidate the run so a late result is never applied
            self._run_token += 1
            self._watchdog = None
            self.state = previous

        operation = "Extraction" if busy_state == SessionState.EXTRACTING else "Comment generation"
        self.activity_log.warning(f"{operation} did not finish within {self.watchdog_timeout} seconds and was abandoned", {
            "errorType": "TIMEOUT",
            "operation": busy_state.value,
            "timeoutSeconds": self.watchdog_timeout,
            "restoredState": previous.value,
        })
        self._notify(LogLevel.WARNING, "Operation timed out",
                     f"{operation} took too long and was stopped. Please try again.")

    def _discard_stale(self, operation: str, token: int) -> OperationTimeoutError:
        self.activity_log.info(f"Discarded {operation} result that arrived after the run was abandoned",
                               {"runToken": token})
        return OperationTimeoutError(f"{operation.capitalize()} was abandoned before it finished")

    # =========================================================================
    # Settings and keys
    # =========================================================================

    def _load_api_keys(self) -> ApiKeys:
        stored = self.settings_store.load().api_keys
        return ApiKeys(
            apify=stored.apify or settings.APIFY_API_KEY,
            openai=stored.openai or settings.OPENAI_API_KEY,
        )

    def save_api_keys(self, keys: ApiKeys) -> bool:
        """Validate and persist API keys; the new keys are used for the next run."""
        success, message = self.settings_store.save_api_keys(keys)
        if not success:
            self.activity_log.error(f"API keys were not saved: {message}", {"errorType": "INVALID_API_KEYS"})
            self._notify(LogLevel.ERROR, "Settings", message)
            return False

        self.api_keys = keys
        self.activity_log.success("API keys saved", {"apify": bool(keys.apify), "openai": bool(keys.openai)})
        self._notify(LogLevel.SUCCESS, "Settings", message)
        return True

    def update_settings(self, **changes) -> ExtractionSettings:
        """
        Change extraction settings for the next run.

        Accepts extraction_type, urls, tweets_per_account, prompt and comments_per_tweet.
        Counts below 1 are rejected and counts above their maximum are clamped.

        Raises:
            ValidationError: For unknown fields or invalid values.
        """
        allowed = {"extraction_type", "urls", "tweets_per_account", "prompt", "comments_per_tweet"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")

        if "extraction_type" in changes:
            try:
                changes["extraction_type"] = ExtractionType(changes["extraction_type"])
            except ValueError:
                raise ValidationError(f"Unknown extraction type: {changes['extraction_type']!r}")
        if "urls" in changes and isinstance(changes["urls"], (list, tuple)):
            changes["urls"] = "\n".join(changes["urls"])
        if "tweets_per_account" in changes:
            changes["tweets_per_account"] = normalize_count(
                changes["tweets_per_account"], settings.MIN_TWEETS_PER_ACCOUNT,
                settings.MAX_TWEETS_PER_ACCOUNT, "tweetsPerAccount")
        if "comments_per_tweet" in changes:
            changes["comments_per_tweet"] = normalize_count(
                changes["comments_per_tweet"], settings.MIN_COMMENTS_PER_TWEET,
                settings.MAX_COMMENTS_PER_TWEET, "commentsPerTweet")

        with self._lock:
            self.extraction_settings = self.extraction_settings.copy(**changes)
        self._persist_session()
        return self.extraction_settings

    def list_public_prompts(self) -> List[PublicPrompt]:
        if self.public_prompt_store is None:
            return []
        return self.public_prompt_store.list_public_prompts()

    def use_saved_prompt(self, name: str) -> str:
        """Select a prompt by name as the generation prompt, personal prompts first."""
        candidates = list(self.settings_store.list_prompts()) + self.list_public_prompts()
        for prompt in candidates:
            if prompt.name == name:
                self.update_settings(prompt=prompt.text)
                return prompt.text
        raise ValidationError(f"No saved prompt named '{name}'")

    def save_current_prompt(self, name: str) -> bool:
        """Save the current generation prompt as a personal prompt."""
        success, message = self.settings_store.upsert_prompt(name, self.extraction_settings.prompt)
        if not success:
            level = LogLevel.ERROR
        elif message == PROMPT_ALREADY_SAVED:
            level = LogLevel.INFO
        else:
            level = LogLevel.SUCCESS
        self.activity_log.add(level, message, {"name": name})
        self._notify(level, "Prompts", message)
        return success

    # =========================================================================
    # Extraction
    # =========================================================================

    def run_extraction(self) -> List[Tweet]:
        """
        Extract tweets for the URLs in the current extraction settings.

        On success the tweet list is replaced wholesale. With auto-generation
        enabled and an OpenAI key configured, comments are generated straight
        after for a non-empty result.

        Returns:
            List[Tweet]: The extracted tweets, possibly empty.

        Raises:
            ValidationError: Before any network call, leaving the state unchanged.
            ServiceError: NetworkError or UpstreamError from the scraping service.
            OperationTimeoutError: If the watchdog abandoned the run before it returned.
        """
        self._ensure_idle("extraction")

        current = self.extraction_settings
        keys = self.api_keys
        try:
            request = self.extraction_service.prepare_request(
                current.extraction_type, current.urls, current.tweets_per_account, keys)
        except ValidationError as e:
            raise self._reject(e, "Validation error")

        token, previous = self._begin(SessionState.EXTRACTING)
        tweets = None
        applied = False
        try:
            tweets = self.extraction_service.execute(request, keys)
        except ServiceError as e:
            with self._lock:
                still_current = token == self._run_token
            if still_current:
                hint = " (network problem)" if isinstance(e, NetworkError) else ""
                self._notify(LogLevel.ERROR, f"Extraction failed{hint}", str(e))
            raise
        finally:
            with self._lock:
                if token == self._run_token:
                    self._cancel_watchdog()
                    if tweets is not None:
                        self.tweets = list(tweets)
                        self.state = SessionState.EXTRACTED
                        applied = True
                    else:
                        self.state = previous

        if not applied:
            raise self._discard_stale("extraction", token)

        self._persist_session()

        if not tweets:
            self._notify(LogLevel.WARNING, "No tweets found",
                         "The scraper returned no tweets. The accounts may be private, "
                         "may not exist, or may have no recent tweets.")
            return tweets

        self._notify(LogLevel.SUCCESS, "Extraction complete", f"Extracted {len(tweets)} tweets")

        if self.auto_generate and self.api_keys.openai:
            try:
                self.run_generation()
            except TweetCommenterError as e:
                # Already recorded in the activity log and notified
                logger.warning(f"Automatic comment generation failed: {e}")

        return tweets

    # =========================================================================
    # Generation
    # =========================================================================

    def run_generation(self) -> List[GeneratedComment]:
        """
        Generate comments for the extracted tweets using the current prompt.

        The comment list is replaced only when every call succeeds; after a
        failure the previous comments are kept.

        Raises:
            ValidationError: Before any network call, leaving the state unchanged.
            ServiceError: NetworkError or UpstreamError from the generation service.
            OperationTimeoutError: If the watchdog abandoned the run before it returned.
        """
        self._ensure_idle("comment generation")

        with self._lock:
            tweets = list(self.tweets)
        current = self.extraction_settings
        keys = self.api_keys
        try:
            repeats = self.generation_service.check_preconditions(tweets, current.comments_per_tweet, keys)
        except ValidationError as e:
            raise self._reject(e, "Validation error")

        token, previous = self._begin(SessionState.GENERATING)
        comments = None
        applied = False
        try:
            comments = self.generation_service.generate(tweets, current.prompt, repeats, keys)
        except ServiceError as e:
            with self._lock:
                still_current = token == self._run_token
            if still_current:
                self._notify(LogLevel.ERROR, "Comment generation failed", str(e))
            raise
        finally:
            with self._lock:
                if token == self._run_token:
                    self._cancel_watchdog()
                    if comments is not None:
                        self.comments = list(comments)
                        self.state = SessionState.GENERATED
                        applied = True
                    else:
                        self.state = previous

        if not applied:
            raise self._discard_stale("comment generation", token)

        self._persist_session()
        self._notify(LogLevel.SUCCESS, "Comments generated",
                     f"Generated {len(comments)} comments for {len(tweets)} tweets")
        return comments

    # =========================================================================
    # Manual override and results
    # =========================================================================

    def reset(self) -> None:
        """Clear busy flags and all extracted and generated data, whatever the current state."""
        with self._lock:
            previous = self.state
            self._run_token += 1
            self._cancel_watchdog()
            self.tweets = []
            self.comments = []
            self.state = SessionState.IDLE

        self._persist_session()
        self.activity_log.info("Session state reset", {"previousState": previous.value})
        self._notify(LogLevel.INFO, "Reset", "All extraction and generation state was cleared")

    def toggle_expanded(self, index: int) -> GeneratedComment:
        """Flip the expanded flag of one generated comment."""
        with self._lock:
            comment = self.comments[index]
            comment.expanded = not comment.expanded
        return comment

    def open_reply(self, index: int) -> Optional[str]:
        """Open the reply composer for a generated comment."""
        comment = self.comments[index]
        return self.composer_service.open_reply(comment.tweet_url, comment.comment)

    def open_original(self, index: int) -> str:
        """Open the tweet a generated comment answers."""
        return self.composer_service.open_original(self.comments[index].tweet_url)

    def export_session(self, directory: Optional[str] = None) -> str:
        """Write tweets, comments and settings to a dated JSON file."""
        with self._lock:
            tweets, comments = list(self.tweets), list(self.comments)
        path = export_session(directory or settings.EXPORT_DIR, tweets, comments, self.extraction_settings)
        self.activity_log.info("Data exported", {"filename": path})
        return path

    def import_session(self, path: str) -> None:
        """Replace the working set with a previously exported session file."""
        self._ensure_idle("import")
        snapshot = load_session(path)
        with self._lock:
            self.extraction_settings = snapshot.extraction_settings
            self.tweets = snapshot.extracted_tweets
            self.comments = snapshot.generated_comments
            self.state = self._resting_state()
        self._persist_session()
        self.activity_log.info("Data imported", {
            "filename": path,
            "tweets": len(self.tweets),
            "comments": len(self.comments),
            "exportDate": snapshot.export_date,
        })

    # =========================================================================
    # Session persistence
    # =========================================================================

    def _resting_state(self) -> SessionState:
        if self.comments:
            return SessionState.GENERATED
        if self.tweets:
            return SessionState.EXTRACTED
        return SessionState.IDLE

    def _session_snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "extractionSettings": self.extraction_settings.to_dict(),
                "extractedTweets": [tweet.to_dict() for tweet in self.tweets],
                "generatedComments": [comment.to_dict() for comment in self.comments],
            }

    def _persist_session(self) -> None:
        self.settings_store.save_session(self._session_snapshot())

    def _restore_session(self) -> None:
        data = self.settings_store.load_session()
        if not data:
            return
        try:
            self.extraction_settings = ExtractionSettings.from_dict(data.get("extractionSettings") or {})
            self.tweets = [Tweet.from_dict(item) for item in data.get("extractedTweets") or []]
            self.comments = [GeneratedComment.from_dict(item) for item in data.get("generatedComments") or []]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable saved session: {e}")
            self.tweets, self.comments = [], []
        self.state = self._resting_state()
        logger.info(f"Restored session with {len(self.tweets)} tweets and {len(self.comments)} comments")


def create_comment_automator(**kwargs) -> CommentAutomator:
    """Build a CommentAutomator wired to the configured services."""
    return CommentAutomator(**kwargs)


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Tweet Comment Automator')
    parser.add_argument('urls', nargs='*', help='Tweet or profile URLs to extract')
    parser.add_argument('--urls-file', type=str, default=None, help='File with one URL per line')
    parser.add_argument('--mode', choices=list(settings.EXTRACTION_TYPES), default=None,
                        help='Extract individual tweets or recent tweets of accounts')
    parser.add_argument('--tweets-per-account', type=int, default=None,
                        help=f'Tweets per account ({settings.MIN_TWEETS_PER_ACCOUNT}-{settings.MAX_TWEETS_PER_ACCOUNT})')
    parser.add_argument('--comments-per-tweet', type=int, default=None,
                        help=f'Comments per tweet ({settings.MIN_COMMENTS_PER_TWEET}-{settings.MAX_COMMENTS_PER_TWEET})')
    parser.add_argument('--prompt', type=str, default=None, help='Instruction prompt for comment generation')
    parser.add_argument('--prompt-name', type=str, default=None, help='Use a saved prompt by name')
    parser.add_argument('--save-prompt', type=str, default=None, metavar='NAME',
                        help='Save the current prompt under this name')
    parser.add_argument('--apify-key', type=str, default=None, help='Save a new Apify API key')
    parser.add_argument('--openai-key', type=str, default=None, help='Save a new OpenAI API key')
    parser.add_argument('--generate', action='store_true', help='Generate comments after extraction')
    parser.add_argument('--import-file', type=str, default=None, help='Load a previously exported session')
    parser.add_argument('--export-dir', type=str, default=None, help='Export the session to this directory')
    parser.add_argument('--export-logs', type=str, default=None, help='Export the activity log to this directory')
    parser.add_argument('--open-replies', action='store_true', help='Open a reply composer for every comment')
    parser.add_argument('--reset', action='store_true', help='Clear saved tweets and comments first')
    parser.add_argument('--log-file', type=str, default='tweet_commenter.log', help='Log file path')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default='INFO', help='Logging level')
    return parser.parse_args(argv)


def run_session(automator: CommentAutomator, args) -> bool:
    """Run the steps requested on the command line. Returns True if all of them succeeded."""
    if args.reset:
        automator.reset()

    if args.apify_key is not None or args.openai_key is not None:
        keys = ApiKeys(
            apify=automator.api_keys.apify if args.apify_key is None else args.apify_key,
            openai=automator.api_keys.openai if args.openai_key is None else args.openai_key,
        )
        if not automator.save_api_keys(keys):
            return False

    if args.import_file:
        automator.import_session(args.import_file)

    urls = list(args.urls)
    if args.urls_file:
        with open(args.urls_file, 'r', encoding='utf-8') as f:
            urls.extend(parse_url_list(f.read()))

    changes: Dict[str, Any] = {}
    if urls:
        changes['urls'] = urls
    if args.mode:
        changes['extraction_type'] = args.mode
    if args.tweets_per_account is not None:
        changes['tweets_per_account'] = args.tweets_per_account
    if args.comments_per_tweet is not None:
        changes['comments_per_tweet'] = args.comments_per_tweet
    if args.prompt:
        changes['prompt'] = args.prompt
    if changes:
        automator.update_settings(**changes)
    if args.prompt_name:
        automator.use_saved_prompt(args.prompt_name)
    if args.save_prompt and not automator.save_current_prompt(args.save_prompt):
        return False

    if urls:
        automator.auto_generate = automator.auto_generate or args.generate
        tweets = automator.run_extraction()
        for tweet in tweets:
            logger.info(f"@{tweet.author}: {truncate_text(tweet.text, 80)} ({tweet.url})")
        if not tweets:
            return False
        if args.generate and automator.state != SessionState.GENERATED:
            return False
    elif args.generate:
        automator.run_generation()

    for index, comment in enumerate(automator.comments):
        logger.info(f"[{index}] {comment.tweet_url}\n    {comment.comment}")
        if args.open_replies:
            automator.open_reply(index)

    if args.export_dir:
        automator.export_session(args.export_dir)
    if args.export_logs:
        automator.activity_log.export(args.export_logs)

    return True


def main(argv: Optional[List[str]] = None):
    """Main entry point for the application."""
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    log_level = getattr(logging, args.log_level)
    setup_file_logging(args.log_file, log_level)

    logger.info("Starting Tweet Comment Automator")
    logger.debug(f"Configuration: {get_config_summary()}")

    try:
        automator = create_comment_automator()
        success = run_session(automator, args)

        # Report status
        if success:
            logger.info("Tweet Comment Automator completed successfully")
            exit_code = 0
        else:
            logger.warning("Tweet Comment Automator completed with warnings")
            exit_code = 1

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        exit_code = 1
    except ValidationError as e:
        logger.error(f"Invalid input: {e}")
        exit_code = 1
    except ServiceError as e:
        logger.error(f"External service error: {e}", exc_info=True)
        exit_code = 1
    except OperationTimeoutError as e:
        logger.error(f"Operation abandoned: {e}")
        exit_code = 1
    except DatabaseError as e:
        logger.error(f"Database error: {e}", exc_info=True)
        exit_code = 1
    except Exception as e:
        logger.error(f"Unhandled exception in Tweet Comment Automator: {e}", exc_info=True)
        exit_code = 2

    logger.info(f"Tweet Comment Automator finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
