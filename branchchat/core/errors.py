"""Error taxonomy shared by the store adapter, completion clients and orchestrator."""


class ChatError(Exception):
    """Base error. `step` names the submission step that failed, when known."""

    def __init__(self, message: str, step: str | None = None):
        super().__init__(message)
        self.step = step


class ValidationError(ChatError):
    """Submission rejected before any network call (blank text, bad edit target)."""


class StoreError(ChatError):
    """Row-store read or write failed."""


class AuditWriteError(StoreError):
    """Prompt audit insert failed. Never aborts a submission."""


class ProviderError(ChatError):
    """Completion call failed or returned an empty/malformed response."""


class MessageNotFoundError(StoreError):
    """Referenced message id does not exist."""
