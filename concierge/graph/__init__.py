from concierge.graph.graph import build_graph
from concierge.graph.state import ChatState

__all__ = ["ChatState", "build_graph"]
