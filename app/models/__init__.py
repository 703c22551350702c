from app.models.channel import Channel
from app.models.conversation import Conversation
from app.models.message import Message
from app.models.user import User
from app.models.webhook import Webhook

__all__ = [
    "Channel",
    "Conversation",
    "Message",
    "User",
    "Webhook",
]
