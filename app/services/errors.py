"""
Domain errors for the chat pipeline and billing glue.
Routers translate these into HTTP responses; services never raise HTTPException.
"""


class ChatError(Exception):
    """Base class for chat pipeline failures."""


class UnknownModelError(ChatError):
    def __init__(self, model_id: str):
        super().__init__(f"Unknown model: {model_id}")
        self.model_id = model_id


class ProviderUnconfiguredError(ChatError):
    def __init__(self, provider: str, model_id: str):
        super().__init__(f"Provider '{provider}' is not configured for model '{model_id}'")
        self.provider = provider
        self.model_id = model_id


class ProviderError(ChatError):
    """Opaque upstream failure. The message carries vendor detail and must only be logged."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider} provider error: {message}")
        self.provider = provider


class ProviderTimeoutError(ProviderError):
    def __init__(self, provider: str, timeout: float):
        super().__init__(provider, f"no response within {timeout:g}s")
        self.timeout = timeout


class ConversationNotFoundError(ChatError):
    """Conversation absent or owned by another user; both look the same to the caller."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation not found: {conversation_id}")
        self.conversation_id = conversation_id


class UserNotFoundError(ChatError):
    def __init__(self, user_id: str):
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class BillingError(Exception):
    """Stripe call failed or request cannot be billed."""


class BillingNotConfiguredError(BillingError):
    pass
