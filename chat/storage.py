"""Best-effort persistence of the message log and preferences.

The adapter sits on top of any key-value string store. Storage problems are
logged and reported as "absent"; the in-memory session stays authoritative.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional

from django.conf import settings
from django.db import DatabaseError

from .models import ClientStore, StoredValue
from .records import DEFAULT_MODEL, Message, Preferences, Theme

logger = logging.getLogger(__name__)

HISTORY_KEY = "chatHistory"
MODEL_KEY = "selectedModel"
THEME_KEY = "theme"

STORE_ERRORS = (OSError, ValueError, TypeError, DatabaseError)


class KeyValueStore:
    """String-to-string storage, the contract of the browser's local storage."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial=None):
        self.data = dict(initial or {})

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


class DatabaseKeyValueStore(KeyValueStore):
    """Values kept as StoredValue rows belonging to one ClientStore."""

    def __init__(self, client: ClientStore):
        self.client = client

    def get(self, key):
        entry = StoredValue.objects.filter(store=self.client, key=key).first()
        return entry.value if entry else None

    def set(self, key, value):
        StoredValue.objects.update_or_create(store=self.client, key=key, defaults={"value": value})

    def delete(self, key):
        StoredValue.objects.filter(store=self.client, key=key).delete()


class FileKeyValueStore(KeyValueStore):
    """All keys in one JSON object on disk; used by the terminal client."""

    def __init__(self, path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def get(self, key):
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key, value):
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key):
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class PersistenceAdapter:
    """Serializes session state into a KeyValueStore without ever failing the caller.

    With ``store=None`` every save is a no-op and every load is absent, which
    leaves the session running purely in memory.
    """

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store

    def save(self, key: str, value: str) -> bool:
        if self.store is None:
            return False
        try:
            self.store.set(key, value)
        except STORE_ERRORS:
            logger.warning("Failed to save %s", key, exc_info=True)
            return False
        return True

    def load(self, key: str) -> Optional[str]:
        if self.store is None:
            return None
        try:
            return self.store.get(key)
        except STORE_ERRORS:
            logger.warning("Failed to load %s", key, exc_info=True)
            return None

    def remove(self, key: str) -> bool:
        if self.store is None:
            return False
        try:
            self.store.delete(key)
        except STORE_ERRORS:
            logger.warning("Failed to remove %s", key, exc_info=True)
            return False
        return True

    def save_log(self, messages: Iterable[Message]) -> bool:
        try:
            payload = json.dumps([message.to_record() for message in messages])
        except (TypeError, ValueError):
            logger.warning("Failed to serialize chat history", exc_info=True)
            return False
        return self.save(HISTORY_KEY, payload)

    def load_log(self) -> List[Message]:
        """Return the stored history, or an empty list if it is missing or unreadable."""
        raw = self.load(HISTORY_KEY)
        if not raw:
            return []
        try:
            records = json.loads(raw)
            if not isinstance(records, list):
                raise ValueError("chat history is not a list")
            return [Message.from_record(record) for record in records]
        except (TypeError, ValueError):
            logger.warning("Failed to load chat history", exc_info=True)
            return []

    def clear_log(self) -> bool:
        return self.remove(HISTORY_KEY)

    def save_preferences(self, preferences: Preferences) -> bool:
        saved = self.save(MODEL_KEY, preferences.model)
        # dark is the default and is stored as an absent key
        if preferences.theme == Theme.LIGHT:
            return self.save(THEME_KEY, Theme.LIGHT.value) and saved
        return self.remove(THEME_KEY) and saved

    def load_preferences(self) -> Preferences:
        default_model = getattr(settings, "CHAT_DEFAULT_MODEL", DEFAULT_MODEL)
        model = self.load(MODEL_KEY) or default_model
        theme = Theme.LIGHT if self.load(THEME_KEY) == Theme.LIGHT else Theme.DARK
        return Preferences(model=model, theme=theme)
