"""Conversation orchestration - drives one user action from input to refreshed transcript.

A submission runs as a fixed sequence of steps:

    persist_message -> record_prompt -> complete -> persist_reply -> refresh

Nothing is rolled back. A failed step is logged by name and leaves whatever
earlier steps wrote in place; `retry_reply()` resumes a submission whose
reply was never stored.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from branchchat.core.config import settings
from branchchat.core.errors import ChatError, ProviderError, StoreError, ValidationError
from branchchat.models.conversation import ROLE_ASSISTANT, ROLE_USER, Message
from branchchat.services.completion import BaseCompletionClient
from branchchat.services.history import VersionHistoryEntry, build_version_history
from branchchat.services.store import ConversationStore, is_editable

logger = logging.getLogger(__name__)

STEP_PERSIST_MESSAGE = "persist_message"
STEP_RECORD_PROMPT = "record_prompt"
STEP_COMPLETE = "complete"
STEP_PERSIST_REPLY = "persist_reply"
STEP_REFRESH = "refresh"


class SessionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_COMPLETION = "awaiting_completion"
    PERSISTING_REPLY = "persisting_reply"


@dataclass
class SubmitOutcome:
    message: Message | None = None
    reply: Message | None = None
    failed_step: str | None = None
    error: ChatError | None = None

    @property
    def ok(self) -> bool:
        return self.failed_step is None


class ConversationSession:
    """State for one conversation session: transcript, panels, edit target and busy flag."""

    def __init__(
        self,
        store: ConversationStore,
        completion: BaseCompletionClient,
        store_timeout: float | None = None,
        completion_timeout: float | None = None,
    ):
        self.store = store
        self.completion = completion
        self.store_timeout = store_timeout if store_timeout is not None else settings.store_timeout
        self.completion_timeout = (
            completion_timeout if completion_timeout is not None else settings.completion_timeout
        )
        self.reset()

    def reset(self) -> None:
        self.transcript: list[Message] = []
        self.follow_ups: list[Message] = []
        self.previous_versions: list[VersionHistoryEntry] = []
        self.draft = ""
        self.editing_target: Message | None = None
        self.busy = False
        self.state = SessionState.IDLE
        self.last_error: str | None = None

    async def start(self) -> None:
        """Reset the session and load the transcript."""
        self.reset()
        await self.refresh_transcript()

    # --- External calls ---

    async def _store_call(self, step: str, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a store read; on timeout the read is abandoned."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self.store_timeout)
        except asyncio.TimeoutError as e:
            raise StoreError(f"Store call timed out after {self.store_timeout}s", step=step) from e
        except StoreError as e:
            if e.step is None:
                e.step = step
            raise

    async def _store_write(self, step: str, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a store write and report what actually reached the store.

        A worker thread cannot be cancelled, so after `store_timeout` the write
        is awaited until it commits or rolls back. The store's own write
        deadline bounds that wait.
        """
        task = asyncio.ensure_future(asyncio.to_thread(fn, *args))
        try:
            try:
                return await asyncio.wait_for(asyncio.shield(task), timeout=self.store_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Store write '{step}' exceeded {self.store_timeout}s, waiting for it to settle")
                return await task
        except StoreError as e:
            if e.step is None:
                e.step = step
            raise

    async def _complete(self, text: str) -> str:
        try:
            return await asyncio.wait_for(
                self.completion.complete(text), timeout=self.completion_timeout
            )
        except asyncio.TimeoutError as e:
            raise ProviderError(
                f"Completion timed out after {self.completion_timeout}s", step=STEP_COMPLETE
            ) from e
        except ProviderError as e:
            if e.step is None:
                e.step = STEP_COMPLETE
            raise
        except Exception as e:
            raise ProviderError(f"Completion failed: {e}", step=STEP_COMPLETE) from e

    def _fail(self, outcome: SubmitOutcome, error: ChatError) -> SubmitOutcome:
        outcome.failed_step = error.step
        outcome.error = error
        self.last_error = str(error)
        logger.error(f"Submission failed at step '{error.step}': {error}")
        return outcome

    # --- Editing ---

    def begin_edit(self, message: Message) -> None:
        """Load a user message into the input and mark it as the edit target."""
        if not is_editable(message):
            raise ValidationError(f"Message {message.id} is not a user message and cannot be edited")
        self.editing_target = message
        self.draft = message.content

    def cancel_edit(self) -> None:
        self.editing_target = None
        self.draft = ""

    # --- Submission ---

    async def submit(self, text: str, editing_target: Message | None = None) -> SubmitOutcome | None:
        """Send new text, or a new version of `editing_target`, and store the reply.

        Returns None when the submission is rejected (blank text or busy).
        """
        if not text or not text.strip():
            logger.debug("Ignoring empty submission")
            return None
        if self.busy:
            logger.debug("Ignoring submission while another is in flight")
            return None

        target = editing_target if editing_target is not None else self.editing_target
        if target is not None and not is_editable(target):
            logger.debug(f"Ignoring edit of non-user message {target.id}")
            return None

        self.busy = True
        self.state = SessionState.SUBMITTING
        self.last_error = None
        outcome = SubmitOutcome()
        try:
            try:
                if target is not None:
                    message = await self._store_write(
                        STEP_PERSIST_MESSAGE, self.store.update_message_version, target.id, text
                    )
                else:
                    message = await self._store_write(
                        STEP_PERSIST_MESSAGE, self.store.create_message, text, None, ROLE_USER, 1
                    )
            except StoreError as e:
                return self._fail(outcome, e)
            outcome.message = message

            try:
                await self._store_write(
                    STEP_RECORD_PROMPT, self.store.create_prompt, message.id, text, message.version
                )
            except StoreError as e:
                logger.error(f"Error inserting prompt for message {message.id}: {e}")

            self.draft = ""
            self.editing_target = None

            await self._reply_and_refresh(message, text, outcome)
            return outcome
        finally:
            self.busy = False
            self.state = SessionState.IDLE

    async def retry_reply(self, message_id: int) -> SubmitOutcome | None:
        """Generate the missing reply for an already stored user message.

        Skips the message and prompt writes. If a reply already exists the
        transcript is just refreshed.
        """
        if self.busy:
            logger.debug("Ignoring retry while another submission is in flight")
            return None

        self.busy = True
        self.state = SessionState.SUBMITTING
        self.last_error = None
        outcome = SubmitOutcome()
        try:
            try:
                message = await self._store_call(STEP_PERSIST_MESSAGE, self.store.get_message, message_id)
                if not is_editable(message):
                    raise ValidationError(f"Message {message_id} is not a user message", step=STEP_PERSIST_MESSAGE)
                children = await self._store_call(STEP_PERSIST_REPLY, self.store.list_children_of, message_id)
            except (StoreError, ValidationError) as e:
                return self._fail(outcome, e)
            outcome.message = message

            existing = [c for c in children if c.role == ROLE_ASSISTANT]
            if existing:
                logger.info(f"Message {message_id} already has a reply, refreshing only")
                outcome.reply = existing[-1]
                await self._refresh_into(outcome)
                return outcome

            logger.info(f"Resuming submission for message {message_id} at step '{STEP_COMPLETE}'")
            await self._reply_and_refresh(message, message.content, outcome)
            return outcome
        finally:
            self.busy = False
            self.state = SessionState.IDLE

    async def _reply_and_refresh(self, message: Message, text: str, outcome: SubmitOutcome) -> None:
        self.state = SessionState.AWAITING_COMPLETION
        try:
            reply_text = await self._complete(text)
        except ProviderError as e:
            self._fail(outcome, e)
        else:
            self.state = SessionState.PERSISTING_REPLY
            try:
                outcome.reply = await self._store_write(
                    STEP_PERSIST_REPLY, self.store.create_message, reply_text, message.id, ROLE_ASSISTANT, 1
                )
            except StoreError as e:
                self._fail(outcome, e)

        await self._refresh_into(outcome)

    async def _refresh_into(self, outcome: SubmitOutcome) -> None:
        refreshed = await self.refresh_transcript()
        if not refreshed and outcome.ok:
            outcome.failed_step = STEP_REFRESH
            outcome.error = StoreError("Transcript refresh failed", step=STEP_REFRESH)

    # --- Read-only views ---

    async def refresh_transcript(self) -> bool:
        """Reload the transcript. On failure the previous transcript stays visible."""
        try:
            self.transcript = await self._store_call(STEP_REFRESH, self.store.list_all_messages)
        except StoreError as e:
            logger.error(f"Error fetching messages: {e}")
            self.last_error = str(e)
            return False
        return True

    async def view_follow_ups(self, message_id: int) -> list[Message]:
        try:
            self.follow_ups = await self._store_call(
                "follow_ups", self.store.list_children_of, message_id
            )
        except StoreError as e:
            logger.error(f"Error fetching follow-up messages: {e}")
            self.last_error = str(e)
        return self.follow_ups

    async def view_previous_versions(self, message_id: int) -> list[VersionHistoryEntry]:
        """Show child versions and the prompt audit trail of a message, oldest first."""
        try:
            messages = await self._store_call("versions", self.store.list_versions_of, message_id)
            prompts = await self._store_call("versions", self.store.list_prompts_for, message_id)
        except StoreError as e:
            logger.error(f"Error loading previous versions and prompts: {e}")
            self.last_error = str(e)
            return self.previous_versions
        self.previous_versions = build_version_history(messages, prompts)
        return self.previous_versions

    def find_message(self, message_id: int) -> Message | None:
        for message in self.transcript:
            if message.id == message_id:
                return message
        return None

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "busy": self.busy,
            "draft": self.draft,
            "editing_id": self.editing_target.id if self.editing_target else None,
            "messages": [m.to_dict() for m in self.transcript],
            "follow_ups": [m.to_dict() for m in self.follow_ups],
            "previous_versions": [e.to_dict() for e in self.previous_versions],
            "last_error": self.last_error,
        }
