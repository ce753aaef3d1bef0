from .memory import ConversationContext, ConversationMemory
from .resolver import CustomerResolver

__all__ = ["ConversationContext", "ConversationMemory", "CustomerResolver"]
