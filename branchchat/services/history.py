"""Version history view: message rows and prompt audit records in one timeline."""

from dataclasses import dataclass
from datetime import datetime, timezone

from branchchat.models.conversation import Message, Prompt


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class MessageVersion:
    message: Message
    kind: str = "message"

    @property
    def timestamp(self) -> datetime:
        return _as_utc(self.message.created_at)

    @property
    def version(self) -> int:
        return self.message.version

    @property
    def content(self) -> str:
        return self.message.content

    def to_dict(self) -> dict:
        return {"kind": self.kind, **self.message.to_dict()}


@dataclass
class PromptRecord:
    prompt: Prompt
    kind: str = "prompt"

    @property
    def timestamp(self) -> datetime:
        return _as_utc(self.prompt.created_at)

    @property
    def version(self) -> int:
        return self.prompt.version

    @property
    def content(self) -> str:
        return self.prompt.content

    def to_dict(self) -> dict:
        return {"kind": self.kind, **self.prompt.to_dict()}


VersionHistoryEntry = MessageVersion | PromptRecord


def build_version_history(
    messages: list[Message], prompts: list[Prompt]
) -> list[VersionHistoryEntry]:
    """Merge both sequences into one list sorted by timestamp.

    The sort is stable, so on equal timestamps messages come before prompts.
    """
    entries: list[VersionHistoryEntry] = [MessageVersion(m) for m in messages]
    entries.extend(PromptRecord(p) for p in prompts)
    return sorted(entries, key=lambda e: e.timestamp)
