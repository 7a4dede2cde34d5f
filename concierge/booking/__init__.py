from concierge.booking.engine import NOT_HANDLED, BookingFlowEngine, BookingResponse, FlowResult, Handled
from concierge.booking.intent import IntentSignal, RuleBasedClassifier
from concierge.booking.state import BookingSlots, BookingStep, DialogueState
from concierge.booking.store import ConversationStateStore

__all__ = [
    "NOT_HANDLED",
    "BookingFlowEngine",
    "BookingResponse",
    "BookingSlots",
    "BookingStep",
    "ConversationStateStore",
    "DialogueState",
    "FlowResult",
    "Handled",
    "IntentSignal",
    "RuleBasedClassifier",
]
