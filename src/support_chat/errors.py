from __future__ import annotations


class SupportChatError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(SupportChatError):
    status_code = 400


class NotFound(SupportChatError):
    status_code = 404


class PersistenceFailure(SupportChatError):
    """Datastore error. The driver message is passed through to callers unchanged."""

    status_code = 500
