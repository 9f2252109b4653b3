"""
Custom Exception Classes for Tweet Comment Automator

This module defines custom exceptions for better error handling and
categorization of failures across the application.
"""

from typing import Any, Dict, List, Optional


class TweetCommenterError(Exception):
    """Base exception for all Tweet Comment Automator errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(TweetCommenterError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Validation Errors (detected before any network call)
# =============================================================================

class ValidationError(TweetCommenterError):
    """Raised when user input or settings fail validation."""
    pass


class MissingCredentialError(ValidationError):
    """Raised when a required API key is not configured."""

    def __init__(self, service: str, message: Optional[str] = None):
        self.service = service
        super().__init__(message or f"{service} API key is not configured")


class EmptyInputError(ValidationError):
    """Raised when there is nothing to process (no URLs, no tweets)."""
    pass


class InvalidUrlError(ValidationError):
    """Raised when one or more input URLs are not supported."""

    def __init__(self, invalid_urls: List[str]):
        self.invalid_urls = list(invalid_urls)
        super().__init__(f"Invalid URLs found: {', '.join(self.invalid_urls)}")


class OperationInProgressError(ValidationError):
    """Raised when an operation is started while another one is still running."""
    pass


# =============================================================================
# External Service Errors
# =============================================================================

class ServiceError(TweetCommenterError):
    """Base exception for failures talking to an external service."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 tweet_id: Optional[str] = None):
        super().__init__(message)
        self.details = details or {}
        self.tweet_id = tweet_id


class NetworkError(ServiceError):
    """Raised when a request never completed (DNS, connection reset, CORS, timeout)."""
    pass


class UpstreamError(ServiceError):
    """Raised when an external service answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None, tweet_id: Optional[str] = None):
        super().__init__(message, details=details, tweet_id=tweet_id)
        self.status_code = status_code


class OperationTimeoutError(TweetCommenterError):
    """Raised when the watchdog abandons an operation that never completed."""
    pass


# =============================================================================
# Database Errors
# =============================================================================

class DatabaseError(TweetCommenterError):
    """Base exception for database-related errors."""
    pass


class ConnectionError(DatabaseError):
    """Raised when database connection fails."""
    pass
