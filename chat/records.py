from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone

from django.db import models
from django.utils import timezone
from django.utils.dateparse import parse_datetime

DEFAULT_MODEL = "mixtral-8x7b-32768"
LEGACY_ASSISTANT_ROLES = ("bot",)


class Role(models.TextChoices):
    USER = "user", "User"
    ASSISTANT = "assistant", "Assistant"


class Theme(models.TextChoices):
    LIGHT = "light", "Light"
    DARK = "dark", "Dark"


def normalize_role(value) -> Role:
    """Map a stored or transport role tag onto a Role, folding the legacy "bot" tag into assistant."""
    if value == Role.USER:
        return Role.USER
    if value == Role.ASSISTANT or value in LEGACY_ASSISTANT_ROLES:
        return Role.ASSISTANT
    raise ValueError(f"Unknown message role: {value!r}")


@dataclass(frozen=True)
class Message:
    role: Role
    content: str
    timestamp: datetime

    def to_transport(self) -> dict:
        return {"role": str(normalize_role(self.role)), "content": self.content}

    def to_record(self) -> dict:
        return {
            "role": str(self.role),
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_record(cls, record: dict) -> "Message":
        """Rebuild a message from its stored form, raising ValueError on malformed input."""
        if not isinstance(record, dict):
            raise ValueError(f"Message record must be an object, got {type(record).__name__}")
        content = record.get("content")
        if not isinstance(content, str):
            raise ValueError("Message record has no text content")
        raw_timestamp = record.get("timestamp")
        timestamp = parse_datetime(raw_timestamp) if isinstance(raw_timestamp, str) else None
        if timestamp is None:
            raise ValueError(f"Invalid message timestamp: {raw_timestamp!r}")
        if timezone.is_naive(timestamp):
            timestamp = timezone.make_aware(timestamp, dt_timezone.utc)
        return cls(role=normalize_role(record.get("role")), content=content, timestamp=timestamp)


@dataclass(frozen=True)
class Preferences:
    model: str = DEFAULT_MODEL
    theme: Theme = Theme.DARK
