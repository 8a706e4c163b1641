class ChatError(Exception):
    """Base class for every error the chat core raises."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(ChatError):
    pass


class ConflictError(ChatError):
    pass


class NotFoundError(ChatError):
    pass


class UnauthorizedError(ChatError):
    pass


class BackingStoreError(ChatError):
    pass
