from app.models.user import User, PlanTier
from app.models.conversation import Conversation
from app.models.message import Message, MessageRole
from app.models.subscription import Subscription

__all__ = [
    "User", "PlanTier", "Conversation", "Message", "MessageRole", "Subscription",
]
