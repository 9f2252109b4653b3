"""
Settings Store Module

Implementations of the SettingsStore and PublicPromptStore protocols:
a local JSON file store and a database-backed per-user store. Both keep the
session working set in a local JSON file so a restart restores it.
"""

import json
import os
import uuid
from typing import Any, Dict, List, Optional, Tuple

from config import settings
from config.validators import check_api_keys
from data.database import DatabaseConnection
from data.models import ApiKeys, PublicPrompt, SavedPrompt, UserSettings
from utils.exceptions import DatabaseError
from utils.helpers import ensure_dir_exists, iso_timestamp
from utils.logger import get_logger

logger = get_logger(__name__)

_SETTINGS_FIELDS = ("apify_api_key", "openai_api_key", "saved_prompts")

PROMPT_ALREADY_SAVED = "This prompt is already saved"


def _read_json(path: str) -> Optional[Any]:
    if not path or not os.path.exists(path):
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read {path}: {e}")
        return None


def _write_json(path: str, data: Any) -> None:
    ensure_dir_exists(os.path.dirname(path) or ".")
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


class BaseSettingsStore:
    """Prompt and session handling shared by the concrete stores.

    Subclasses implement load() and _write(user_settings).
    """

    def __init__(self, session_path: Optional[str] = None):
        self.session_path = session_path or settings.SESSION_FILE

    def load(self) -> UserSettings:
        raise NotImplementedError

    def _write(self, user_settings: UserSettings) -> bool:
        raise NotImplementedError

    def save(self, patch: Dict[str, Any]) -> Tuple[bool, str]:
        unknown = set(patch) - set(_SETTINGS_FIELDS)
        if unknown:
            return False, f"Unknown settings fields: {', '.join(sorted(unknown))}"

        current = self.load()
        merged = current.to_dict()
        for key, value in patch.items():
            if key == "saved_prompts":
                value = [p.to_dict() if isinstance(p, SavedPrompt) else p for p in value]
            merged[key] = value

        if not self._write(UserSettings.from_dict(merged)):
            return False, "Failed to save settings"
        return True, "Settings saved"

    def save_api_keys(self, keys: ApiKeys) -> Tuple[bool, str]:
        problems = check_api_keys(keys.apify, keys.openai)
        if problems:
            return False, "; ".join(problems)
        return self.save({"apify_api_key": keys.apify, "openai_api_key": keys.openai})

    def list_prompts(self) -> List[SavedPrompt]:
        return list(self.load().saved_prompts)

    def upsert_prompt(self, name: str, text: str) -> Tuple[bool, str]:
        name = (name or "").strip()
        text = (text or "").strip()
        if not text:
            return False, "Prompt text cannot be empty"
        if not name:
            return False, "Prompt name cannot be empty"

        prompts = self.list_prompts()
        if any(prompt.name == name for prompt in prompts):
            return False, "A prompt with this name already exists"
        if any(prompt.text == text for prompt in prompts):
            # Nothing to write; the caller treats this as a no-op
            logger.info(f"Prompt text for '{name}' is already saved")
            return True, PROMPT_ALREADY_SAVED

        prompts.append(SavedPrompt(id=str(uuid.uuid4()), name=name, text=text, created_at=iso_timestamp()))
        success, message = self.save({"saved_prompts": prompts})
        if success:
            logger.info(f"Saved prompt '{name}'")
            return True, "Prompt saved"
        return success, message

    def delete_prompt(self, prompt_id: str) -> Tuple[bool, str]:
        prompts = self.list_prompts()
        remaining = [prompt for prompt in prompts if prompt.id != prompt_id]
        if len(remaining) == len(prompts):
            return False, "Prompt not found"

        success, message = self.save({"saved_prompts": remaining})
        if success:
            return True, "Prompt deleted"
        return success, message

    def load_session(self) -> Optional[Dict[str, Any]]:
        data = _read_json(self.session_path)
        return data if isinstance(data, dict) else None

    def save_session(self, session: Dict[str, Any]) -> None:
        try:
            _write_json(self.session_path, session)
        except OSError as e:
            # Session persistence is opportunistic
            logger.warning(f"Failed to persist session state: {e}")


class LocalSettingsStore(BaseSettingsStore):
    """Settings kept in a JSON file on this machine."""

    def __init__(self, settings_path: Optional[str] = None, session_path: Optional[str] = None):
        super().__init__(session_path)
        self.settings_path = settings_path or settings.SETTINGS_FILE

    def load(self) -> UserSettings:
        data = _read_json(self.settings_path)
        if not isinstance(data, dict):
            return UserSettings()
        return UserSettings.from_dict(data)

    def _write(self, user_settings: UserSettings) -> bool:
        try:
            _write_json(self.settings_path, user_settings.to_dict())
            return True
        except OSError as e:
            logger.error(f"Error saving settings to {self.settings_path}: {e}")
            return False


class DatabaseSettingsStore(BaseSettingsStore):
    """Settings kept in the user's row of the user_settings table."""

    def __init__(self, db: DatabaseConnection, user_id: str, session_path: Optional[str] = None):
        super().__init__(session_path)
        self.db = db
        self.user_id = user_id

    def load(self) -> UserSettings:
        row = self.db.get_user_settings(self.user_id)
        if row is None:
            raise DatabaseError(f"Could not load settings for user {self.user_id}")
        return UserSettings.from_dict(row)

    def _write(self, user_settings: UserSettings) -> bool:
        data = user_settings.to_dict()
        return self.db.upsert_user_settings(
            self.user_id,
            data["apify_api_key"],
            data["openai_api_key"],
            data["saved_prompts"],
        )


class DatabasePublicPromptStore:
    """Shared prompts kept in the public_prompts table."""

    def __init__(self, db: DatabaseConnection, user_id: str):
        self.db = db
        self.user_id = user_id

    def list_public_prompts(self) -> List[PublicPrompt]:
        rows = self.db.get_public_prompts()
        if rows is None:
            logger.error("Failed to load public prompts")
            return []
        return [
            PublicPrompt(
                id=str(row["id"]),
                name=row["name"],
                text=row["text"],
                created_at=str(row["created_at"]),
                created_by=row.get("created_by"),
            )
            for row in rows
        ]

    def create_public_prompt(self, name: str, text: str) -> Tuple[bool, str]:
        name, text = (name or "").strip(), (text or "").strip()
        if not name or not text:
            return False, "Prompt name and text cannot be empty"
        if not self.db.insert_public_prompt(name, text, self.user_id):
            return False, "Failed to create prompt"
        return True, "Public prompt created"

    def update_public_prompt(self, prompt_id: str, name: str, text: str) -> Tuple[bool, str]:
        name, text = (name or "").strip(), (text or "").strip()
        if not name or not text:
            return False, "Prompt name and text cannot be empty"
        if not self.db.update_public_prompt(prompt_id, name, text):
            return False, "Failed to update prompt"
        return True, "Prompt updated"

    def delete_public_prompt(self, prompt_id: str) -> Tuple[bool, str]:
        if not self.db.delete_public_prompt(prompt_id):
            return False, "Failed to delete prompt"
        return True, "Prompt deleted"
