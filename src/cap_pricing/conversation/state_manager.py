"""
Quote State Manager - keeps one conversation's quote consistent across turns.

Every change is a full recompute: the delta is merged into the stored
specification, the merged specification is priced from scratch, and only
then is the new state persisted. A turn that fails leaves the previous
state exactly as it was.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Optional, Union

from ..engine.models import QuoteSpecification
from ..engine.pricing_engine import PricingEngine
from ..errors import ConversationStateError, IncompleteSpecificationError
from .merge import merge_delta
from .models import ClarificationNeeded, ConversationQuoteState, PartialSpecification
from .store import ConversationStore, InMemoryConversationStore

logger = logging.getLogger(__name__)

DeltaResult = Union[ConversationQuoteState, ClarificationNeeded]

LOCK_STRIPES = 64


class QuoteStateManager:
    """
    Applies conversational deltas to stored quotes.

    Calls for the same conversation id are serialized; different ids usually
    proceed in parallel. Ids share a fixed pool of lock stripes, so the lock
    for an id never changes and the pool does not grow with conversations.
    """

    def __init__(self, engine: PricingEngine, store: Optional[ConversationStore] = None,
                 lock_stripes: int = LOCK_STRIPES):
        self.engine = engine
        self.store = store if store is not None else InMemoryConversationStore()
        self._locks = tuple(threading.Lock() for _ in range(max(1, lock_stripes)))

    def _lock_for(self, conversation_id: str) -> threading.Lock:
        return self._locks[hash(conversation_id) % len(self._locks)]

    def start_quote(self, conversation_id: str, spec: QuoteSpecification) -> ConversationQuoteState:
        """
        Price ``spec`` and store it as version 1.

        Raises:
            ConversationStateError: the conversation already has a quote
        """
        with self._lock_for(conversation_id):
            if self.store.get(conversation_id) is not None:
                raise ConversationStateError(
                    f"Conversation {conversation_id!r} already has a quote",
                    key=conversation_id,
                )
            return self._commit(conversation_id, spec, version=1)

    def apply_delta(self, conversation_id: str, delta: PartialSpecification) -> DeltaResult:
        """
        Merge ``delta`` into the conversation's quote and reprice.

        Returns the new state, or a ClarificationNeeded (state unchanged).

        Raises:
            IncompleteSpecificationError: no quote yet and the delta cannot start one
            PricingError: the merged specification cannot be priced
        """
        with self._lock_for(conversation_id):
            current = self.store.get(conversation_id)

            if current is None:
                if not delta.is_complete:
                    raise IncompleteSpecificationError(
                        "A new quote needs a quantity and a product or price tier",
                        key=conversation_id,
                    )
                return self._commit(conversation_id, delta.to_specification(), version=1)

            merged = merge_delta(current.specification, delta)
            if isinstance(merged, ClarificationNeeded):
                return merged

            return self._commit(conversation_id, merged, version=current.version + 1)

    def _commit(self, conversation_id: str, spec: QuoteSpecification, version: int) -> ConversationQuoteState:
        breakdown = self.engine.calculate_quote(spec)
        state = ConversationQuoteState(
            conversation_id=conversation_id,
            specification=spec,
            breakdown=breakdown,
            version=version,
            timestamp=datetime.now(timezone.utc),
        )
        self.store.put(state)
        logger.info(
            "Conversation %s quote v%d: %d pcs, total %.2f",
            conversation_id, version, spec.quantity, breakdown.total_cost,
        )
        return state

    def get_state(self, conversation_id: str) -> Optional[ConversationQuoteState]:
        return self.store.get(conversation_id)

    def discard(self, conversation_id: str) -> bool:
        """Forget a conversation's quote. Returns False if there was none."""
        with self._lock_for(conversation_id):
            return self.store.delete(conversation_id)
