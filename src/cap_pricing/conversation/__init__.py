"""Conversation subpackage - quote state carried across conversational turns."""
from .models import (
    REMOVE, Removal, LogoPlacementDelta, PartialSpecification,
    ClarificationNeeded, ConversationQuoteState,
)
from .merge import merge_delta
from .state_manager import QuoteStateManager
from .store import ConversationStore, InMemoryConversationStore

__all__ = [
    'REMOVE', 'Removal', 'LogoPlacementDelta', 'PartialSpecification',
    'ClarificationNeeded', 'ConversationQuoteState', 'merge_delta',
    'QuoteStateManager', 'ConversationStore', 'InMemoryConversationStore',
]
