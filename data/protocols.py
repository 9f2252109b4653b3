"""
Data Layer Protocol Definitions

This module defines typing.Protocol interfaces for data layer operations.
These protocols let the orchestration code work against any compatible
storage backend (local JSON file, database row, in-memory fake).

Protocols defined:
- SettingsStore: Interface for API keys, personal prompts and session state
- PublicPromptStore: Interface for prompts shared between users
"""

from typing import Protocol, Optional, List, Tuple, Dict, Any

from data.models import ApiKeys, PublicPrompt, SavedPrompt, UserSettings


class SettingsStore(Protocol):
    """Protocol defining the interface for settings and personal prompt storage.

    Implementations should provide methods for:
    - Loading and patching the persisted settings record
    - Listing, creating and deleting personal prompts
    - Saving and restoring the in-flight session working set
    """

    def load(self) -> UserSettings:
        """Load the settings record, returning defaults when none exists."""
        ...

    def save(self, patch: Dict[str, Any]) -> Tuple[bool, str]:
        """Merge a partial update into the settings record and persist it.

        Args:
            patch: Any subset of 'apify_api_key', 'openai_api_key', 'saved_prompts'.

        Returns:
            Tuple of (success, user-facing message).
        """
        ...

    def save_api_keys(self, keys: ApiKeys) -> Tuple[bool, str]:
        """Validate key formats and persist both keys."""
        ...

    def list_prompts(self) -> List[SavedPrompt]:
        """Return the user's personal prompts in creation order."""
        ...

    def upsert_prompt(self, name: str, text: str) -> Tuple[bool, str]:
        """Save a new personal prompt.

        Empty names or texts and duplicate names are rejected with a message
        rather than an exception. Text that is already saved is a no-op that
        reports success with PROMPT_ALREADY_SAVED.
        """
        ...

    def delete_prompt(self, prompt_id: str) -> Tuple[bool, str]:
        """Delete a personal prompt by id."""
        ...

    def load_session(self) -> Optional[Dict[str, Any]]:
        """Return the saved session working set, or None."""
        ...

    def save_session(self, session: Dict[str, Any]) -> None:
        """Persist the session working set (extraction settings, tweets, comments)."""
        ...


class PublicPromptStore(Protocol):
    """Protocol defining the interface for shared prompt storage."""

    def list_public_prompts(self) -> List[PublicPrompt]:
        """Return active public prompts, newest first."""
        ...

    def create_public_prompt(self, name: str, text: str) -> Tuple[bool, str]:
        ...

    def update_public_prompt(self, prompt_id: str, name: str, text: str) -> Tuple[bool, str]:
        ...

    def delete_public_prompt(self, prompt_id: str) -> Tuple[bool, str]:
        ...
