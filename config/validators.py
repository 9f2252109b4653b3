"""
Configuration Validation for Tweet Comment Automator

This module contains configuration validation logic and the API key
format checks applied when keys are saved.
"""

import logging
from typing import List

from utils.exceptions import ConfigurationError


def validate_settings():
    """
    Validate that all required settings are properly configured.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []
    logger = logging.getLogger(__name__)

    if settings.SETTINGS_BACKEND not in ("local", "database"):
        errors.append(f"SETTINGS_BACKEND must be 'local' or 'database', got '{settings.SETTINGS_BACKEND}'")

    if settings.SETTINGS_BACKEND == "database":
        required_vars = [
            ("DB_SERVER", settings.DB_SERVER),
            ("DB_NAME", settings.DB_NAME),
            ("DB_USER", settings.DB_USER),
            ("DB_PASSWORD", settings.DB_PASSWORD),
            ("USER_ID", settings.USER_ID),
        ]
        for var_name, var_value in required_vars:
            if not var_value:
                errors.append(f"Missing required environment variable: {var_name}")

        if not settings.DB_CONNECTION_STRING:
            errors.append("Database connection string could not be built. Check DB_SERVER, DB_NAME, DB_USER, DB_PASSWORD.")

    if settings.DEFAULT_EXTRACTION_TYPE not in settings.EXTRACTION_TYPES:
        errors.append(f"DEFAULT_EXTRACTION_TYPE must be one of {settings.EXTRACTION_TYPES}")

    # Validate numeric settings are within reasonable bounds
    numeric_validations = [
        ("DEFAULT_TWEETS_PER_ACCOUNT", settings.DEFAULT_TWEETS_PER_ACCOUNT,
         settings.MIN_TWEETS_PER_ACCOUNT, settings.MAX_TWEETS_PER_ACCOUNT),
        ("DEFAULT_COMMENTS_PER_TWEET", settings.DEFAULT_COMMENTS_PER_TWEET,
         settings.MIN_COMMENTS_PER_TWEET, settings.MAX_COMMENTS_PER_TWEET),
        ("GENERATION_MAX_TOKENS", settings.GENERATION_MAX_TOKENS, 1, 4096),
        ("GENERATION_TEMPERATURE", settings.GENERATION_TEMPERATURE, 0.0, 2.0),
        ("MAX_LOG_ENTRIES", settings.MAX_LOG_ENTRIES, 1, 100000),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    # Validate timeout values are positive
    timeout_settings = [
        ("APIFY_RUN_TIMEOUT", settings.APIFY_RUN_TIMEOUT),
        ("APIFY_REQUEST_TIMEOUT", settings.APIFY_REQUEST_TIMEOUT),
        ("GENERATION_REQUEST_TIMEOUT", settings.GENERATION_REQUEST_TIMEOUT),
        ("OPERATION_WATCHDOG_TIMEOUT", settings.OPERATION_WATCHDOG_TIMEOUT),
    ]

    for name, value in timeout_settings:
        if value <= 0:
            errors.append(f"{name} must be positive, got {value}")

    if settings.APIFY_REQUEST_TIMEOUT < settings.APIFY_RUN_TIMEOUT:
        logger.warning("APIFY_REQUEST_TIMEOUT is shorter than APIFY_RUN_TIMEOUT; "
                       "long actor runs will be cut off by the transport.")

    # Raise all errors at once
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    return True


def check_api_keys(apify_key: str, openai_key: str) -> List[str]:
    """
    Check API key formats without raising.

    Empty keys are valid and mean "not configured".

    Returns:
        List[str]: Human-readable problems, empty when both keys are acceptable.
    """
    from config import settings

    problems = []
    if apify_key and not apify_key.startswith(settings.APIFY_KEY_PREFIX):
        problems.append(f"Apify API key must start with '{settings.APIFY_KEY_PREFIX}'")
    if openai_key and not openai_key.startswith(settings.OPENAI_KEY_PREFIX):
        problems.append(f"OpenAI API key must start with '{settings.OPENAI_KEY_PREFIX}'")
    return problems


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    from config import settings

    return {
        "keys": {
            "apify": bool(settings.APIFY_API_KEY),
            "openai": bool(settings.OPENAI_API_KEY),
        },
        "scraper": {
            "actor": settings.APIFY_ACTOR_ID,
            "run_timeout": settings.APIFY_RUN_TIMEOUT,
        },
        "generation": {
            "model": settings.OPENAI_MODEL,
            "max_tokens": settings.GENERATION_MAX_TOKENS,
            "temperature": settings.GENERATION_TEMPERATURE,
        },
        "storage": {
            "backend": settings.SETTINGS_BACKEND,
            "data_dir": str(settings.DATA_DIR),
            "database": settings.DB_NAME if settings.SETTINGS_BACKEND == "database" else None,
        },
        "auto_generate": settings.AUTO_GENERATE_AFTER_EXTRACT,
    }
