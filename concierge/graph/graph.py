import logging

from langgraph.graph import END, StateGraph
from sqlalchemy.exc import SQLAlchemyError

from concierge.booking.engine import NOT_HANDLED, BookingFlowEngine
from concierge.graph.state import ChatState
from concierge.llm.responder import ContextHints, LLMResponder
from concierge.memory.window import ContextWindowManager
from concierge.scope import Grouped

logger = logging.getLogger(__name__)


# ---------------------------
# Utilities
# ---------------------------
def add_trace(state: ChatState, node: str, detail: dict):
    state.setdefault("trace", [])
    state["trace"].append({"node": node, "detail": detail})


# ---------------------------
# Build graph
# ---------------------------
def build_graph(engine: BookingFlowEngine, memory: ContextWindowManager, responder: LLMResponder):
    """
    One inbound message:

        booking --handled--> record --> END
        booking --fallthrough--> load_window --> llm --> record --> END
    """

    def node_booking(state: ChatState) -> ChatState:
        scope = state["scope"]
        try:
            result = engine.handle(scope, state["user_input"], state.get("display_name"))
        except Exception:
            # never let a broken flow take the whole message down
            logger.exception("Booking flow crashed for %s, clearing state", scope.key)
            engine.store.clear(scope)
            result = NOT_HANDLED

        if result is NOT_HANDLED:
            state["handled_by_booking"] = False
            add_trace(state, "booking", {"handled": False})
            return state

        state["handled_by_booking"] = True
        state["reply"] = result.response.text
        state["structured_result"] = result.response.structured_result
        add_trace(state, "booking", {"handled": True, "has_result": result.response.structured_result is not None})
        return state

    def node_route(state: ChatState) -> str:
        return "handled" if state.get("handled_by_booking") else "fallthrough"

    def node_load_window(state: ChatState) -> ChatState:
        scope = state["scope"]
        try:
            window = memory.get_window(scope)
        except SQLAlchemyError:
            logger.exception("Could not load chat history for %s", scope.key)
            window = []
        state["window"] = window
        add_trace(state, "load_window", {"turns": len(window)})
        return state

    def node_llm(state: ChatState) -> ChatState:
        scope = state["scope"]
        hints = ContextHints(
            display_name=state.get("display_name"),
            is_group=isinstance(scope, Grouped),
            group_name=state.get("group_name"),
        )
        state["reply"] = responder.reply(state.get("window") or [], state["user_input"], hints)
        state["structured_result"] = None
        add_trace(state, "llm", {"is_group": hints.is_group})
        return state

    def node_record(state: ChatState) -> ChatState:
        scope = state["scope"]
        meta = {"booking_flow": bool(state.get("handled_by_booking"))}
        if state.get("structured_result") is not None:
            meta["api_response"] = state["structured_result"]
        try:
            memory.append_turn(scope, "user", state["user_input"])
            memory.append_turn(scope, "assistant", state.get("reply") or "", meta)
            add_trace(state, "record", {"saved": True})
        except SQLAlchemyError:
            logger.exception("Could not save chat turns for %s", scope.key)
            add_trace(state, "record", {"saved": False})
        return state

    g = StateGraph(ChatState)

    g.add_node("booking", node_booking)
    g.add_node("load_window", node_load_window)
    g.add_node("llm", node_llm)
    g.add_node("record", node_record)

    g.set_entry_point("booking")

    g.add_conditional_edges("booking", node_route, {
        "handled": "record",
        "fallthrough": "load_window",
    })

    g.add_edge("load_window", "llm")
    g.add_edge("llm", "record")
    g.add_edge("record", END)

    return g.compile()
