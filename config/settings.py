"""
Configuration Settings for Tweet Comment Automator

This module centralizes all configuration settings for the application,
including environment variables, API keys, and application constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# API Keys (optional here; usually stored through the settings store)
APIFY_API_KEY = os.getenv("APIFY_API_KEY", "")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

# Key format prefixes, checked only when keys are saved
APIFY_KEY_PREFIX = "apify_api_"
OPENAI_KEY_PREFIX = "sk-"

# =============================================================================
# Platform Settings
# =============================================================================

SUPPORTED_DOMAINS = ("twitter.com", "x.com")
PREFERRED_DOMAIN = "x.com"
REPLY_INTENT_URL = "https://twitter.com/intent/tweet"
TWEET_URL_TEMPLATE = "https://x.com/user/status/{tweet_id}"

# =============================================================================
# Scraping Service (Apify) Settings
# =============================================================================

APIFY_API_BASE = "https://api.apify.com/v2"
APIFY_ACTOR_ID = os.getenv("APIFY_ACTOR_ID", "web.harvester~twitter-scraper")
APIFY_RUN_TIMEOUT = 600              # Seconds the actor itself may run (timeout query param)
APIFY_REQUEST_TIMEOUT = 660          # Seconds before the HTTP transport gives up
APIFY_PROXY_GROUPS = ["RESIDENTIAL"]
LOG_SAMPLE_SIZE = 2                  # Raw items copied into the success log event

# =============================================================================
# Generation Service (OpenAI) Settings
# =============================================================================

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
GENERATION_MAX_TOKENS = 280          # Matches the platform's post-length limit
GENERATION_TEMPERATURE = 0.7
GENERATION_REQUEST_TIMEOUT = 120     # Seconds per chat-completion call

# =============================================================================
# Extraction Defaults and Bounds
# =============================================================================

DEFAULT_EXTRACTION_TYPE = "tweets"
EXTRACTION_TYPES = ("tweets", "accounts")

DEFAULT_TWEETS_PER_ACCOUNT = 5
MIN_TWEETS_PER_ACCOUNT = 1
MAX_TWEETS_PER_ACCOUNT = 100

DEFAULT_COMMENTS_PER_TWEET = 3
MIN_COMMENTS_PER_TWEET = 1
MAX_COMMENTS_PER_TWEET = 20

DEFAULT_PROMPT = (
    "Write a smart and engaging comment for this tweet. Use a conversational tone. "
    "The comment must be in English and no longer than 280 characters."
)

# Chain generation straight after a successful extraction
AUTO_GENERATE_AFTER_EXTRACT = _env_flag("AUTO_GENERATE_AFTER_EXTRACT")

# Watchdog ceiling for a single extraction or generation run
OPERATION_WATCHDOG_TIMEOUT = 600     # Seconds (10 minutes)

# =============================================================================
# Local Persistence
# =============================================================================

DATA_DIR = os.getenv("DATA_DIR", os.path.join(APP_ROOT, ".tweet_commenter"))
SETTINGS_FILE = os.path.join(DATA_DIR, "user_settings.json")
SESSION_FILE = os.path.join(DATA_DIR, "session.json")
ACTIVITY_LOG_FILE = os.path.join(DATA_DIR, "app_logs.json")
EXPORT_DIR = os.getenv("EXPORT_DIR", os.path.join(APP_ROOT, "exports"))

MAX_LOG_ENTRIES = 1000

# "local" stores keys and prompts in SETTINGS_FILE, "database" in the user_settings table
SETTINGS_BACKEND = os.getenv("SETTINGS_BACKEND", "local").strip().lower()
USER_ID = os.getenv("USER_ID", "")

# =============================================================================
# Database Settings (only used with SETTINGS_BACKEND=database)
# =============================================================================

DB_SERVER = os.getenv("server", "")
DB_NAME = os.getenv("db", "")
DB_USER = os.getenv("user", "")
DB_PASSWORD = os.getenv("pwd", "")

# Build connection string safely (validation happens in validate_settings())
DB_CONNECTION_STRING = (
    f"DRIVER={{ODBC Driver 18 for SQL Server}}; "
    f"SERVER={DB_SERVER}; "
    f"DATABASE={DB_NAME}; "
    f"UID={DB_USER}; "
    f"PWD={DB_PASSWORD}; "
    f"TrustServerCertificate=yes; MARS_Connection=yes;"
) if all([DB_SERVER, DB_NAME, DB_USER, DB_PASSWORD]) else ""
