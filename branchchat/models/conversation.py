"""Message and prompt models for branching conversation history.

Messages form a tree through `parent_id`: assistant replies point at the user
message that produced them, and any message may have several follow-ups.
User messages are edited in place; every submission of their text is kept in
the append-only `prompts` table.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLES = (ROLE_USER, ROLE_ASSISTANT)


class Message(SQLModel, table=True):
    __tablename__ = "messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    content: str
    parent_id: Optional[int] = Field(default=None, foreign_key="messages.id", index=True)
    role: str  # "user" | "assistant", fixed at creation
    version: int = Field(default=1, ge=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def revise_content(self, new_content: str) -> None:
        """Overwrite the content of a user message and bump its version.

        This is the only place `content` and `version` change after creation.
        """
        if self.role != ROLE_USER:
            raise ValueError(f"Only user messages can be edited (message {self.id} is {self.role})")
        if not new_content.strip():
            raise ValueError("Message content cannot be empty")
        self.content = new_content
        self.version += 1

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "parent_id": self.parent_id,
            "role": self.role,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
        }


class Prompt(SQLModel, table=True):
    __tablename__ = "prompts"

    id: Optional[int] = Field(default=None, primary_key=True)
    message_id: int = Field(foreign_key="messages.id", index=True)
    content: str
    version: int = Field(default=1)  # message version this text was submitted as
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "message_id": self.message_id,
            "content": self.content,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
        }
