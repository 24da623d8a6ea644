"""
Conversation stores - where ConversationQuoteState lives between turns.
"""
import threading
from typing import Optional

from .models import ConversationQuoteState


class ConversationStore:
    """Keyed store of quote states. States are replaced whole, never edited."""

    def get(self, conversation_id: str) -> Optional[ConversationQuoteState]:
        raise NotImplementedError

    def put(self, state: ConversationQuoteState) -> None:
        raise NotImplementedError

    def delete(self, conversation_id: str) -> bool:
        raise NotImplementedError


class InMemoryConversationStore(ConversationStore):

    def __init__(self):
        self._states: dict[str, ConversationQuoteState] = {}
        self._lock = threading.Lock()

    def get(self, conversation_id):
        with self._lock:
            return self._states.get(conversation_id)

    def put(self, state):
        with self._lock:
            self._states[state.conversation_id] = state

    def delete(self, conversation_id):
        with self._lock:
            return self._states.pop(conversation_id, None) is not None

    def __len__(self):
        with self._lock:
            return len(self._states)
