"""Conversation store adapter - the only code that talks to the messages/prompts tables."""

import logging
import time
from typing import Callable

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from branchchat.core.errors import AuditWriteError, MessageNotFoundError, StoreError
from branchchat.models.conversation import ROLE_USER, ROLES, Message, Prompt

logger = logging.getLogger(__name__)


class ConversationStore:
    """Reads and writes conversation rows.

    Each call uses its own session; nothing here is transactional across
    calls, so a message insert followed by a prompt insert can half-succeed.
    """

    def __init__(
        self,
        engine: Engine,
        write_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.engine = engine
        self.write_timeout = write_timeout
        self._clock = clock

    def _commit(self, session: Session, started: float, error_cls: type[StoreError] = StoreError) -> None:
        """Commit, or roll back if the write has run past `write_timeout`."""
        session.flush()
        if self.write_timeout is not None and self._clock() - started > self.write_timeout:
            session.rollback()
            raise error_cls(f"Write exceeded {self.write_timeout}s and was rolled back")
        session.commit()

    def list_all_messages(self) -> list[Message]:
        try:
            with Session(self.engine) as session:
                return list(session.exec(
                    select(Message).order_by(Message.created_at, Message.id)  # type: ignore
                ).all())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list messages: {e}") from e

    def get_message(self, message_id: int) -> Message:
        try:
            with Session(self.engine) as session:
                message = session.get(Message, message_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load message {message_id}: {e}") from e
        if message is None:
            logger.debug(f"Message {message_id} not found")
            raise MessageNotFoundError(f"Message {message_id} not found")
        return message

    def create_message(
        self, content: str, parent_id: int | None, role: str, version: int = 1
    ) -> Message:
        if role not in ROLES:
            raise StoreError(f"Unknown role: {role}")
        started = self._clock()
        message = Message(content=content, parent_id=parent_id, role=role, version=version)
        try:
            with Session(self.engine) as session:
                session.add(message)
                self._commit(session, started)
                session.refresh(message)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to insert {role} message: {e}") from e
        logger.debug(f"Created {role} message {message.id} (parent={parent_id})")
        return message

    def update_message_version(self, message_id: int, content: str) -> Message:
        """Overwrite a user message's content and increment its version."""
        started = self._clock()
        try:
            with Session(self.engine) as session:
                message = session.get(Message, message_id)
                if message is None:
                    raise MessageNotFoundError(f"Message {message_id} not found")
                try:
                    message.revise_content(content)
                except ValueError as e:
                    raise StoreError(str(e)) from e
                session.add(message)
                self._commit(session, started)
                session.refresh(message)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to update message {message_id}: {e}") from e
        logger.debug(f"Message {message_id} now at version {message.version}")
        return message

    def create_prompt(self, message_id: int, content: str, version: int = 1) -> Prompt:
        started = self._clock()
        prompt = Prompt(message_id=message_id, content=content, version=version)
        try:
            with Session(self.engine) as session:
                session.add(prompt)
                self._commit(session, started, AuditWriteError)
                session.refresh(prompt)
        except SQLAlchemyError as e:
            raise AuditWriteError(f"Failed to record prompt for message {message_id}: {e}") from e
        return prompt

    def list_versions_of(self, parent_id: int) -> list[Message]:
        """Messages whose parent is `parent_id`, ordered by version."""
        try:
            with Session(self.engine) as session:
                return list(session.exec(
                    select(Message)
                    .where(Message.parent_id == parent_id)
                    .order_by(Message.version, Message.id)  # type: ignore
                ).all())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list versions of {parent_id}: {e}") from e

    def list_prompts_for(self, message_id: int) -> list[Prompt]:
        try:
            with Session(self.engine) as session:
                return list(session.exec(
                    select(Prompt)
                    .where(Prompt.message_id == message_id)
                    .order_by(Prompt.created_at, Prompt.id)  # type: ignore
                ).all())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list prompts for {message_id}: {e}") from e

    def list_children_of(self, message_id: int) -> list[Message]:
        try:
            with Session(self.engine) as session:
                return list(session.exec(
                    select(Message).where(Message.parent_id == message_id)
                ).all())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list follow-ups of {message_id}: {e}") from e


def is_editable(message: Message) -> bool:
    return message.role == ROLE_USER

