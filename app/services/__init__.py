from app.services.channel_service import ChannelService
from app.services.conversation_service import ConversationService
from app.services.message_service import MessageService
from app.services.user_service import UserService
from app.services.webhook_service import WebhookService

__all__ = [
    "ChannelService",
    "ConversationService",
    "MessageService",
    "UserService",
    "WebhookService",
]
