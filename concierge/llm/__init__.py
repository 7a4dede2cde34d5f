from concierge.llm.responder import LLM_FALLBACK_REPLY, ContextHints, LLMResponder

__all__ = ["LLM_FALLBACK_REPLY", "ContextHints", "LLMResponder"]
