import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from concierge.config import Settings
from concierge.memory.repository import ConversationTurn

logger = logging.getLogger(__name__)

LLM_FALLBACK_REPLY = "Sorry, I'm having some trouble right now. Please try again later."


@dataclass(frozen=True)
class ContextHints:
    display_name: Optional[str] = None
    is_group: bool = False
    group_name: Optional[str] = None


def build_system_prompt(hints: ContextHints) -> str:
    prompt = "You are a friendly, helpful travel assistant."
    if hints.display_name:
        prompt += f" You are talking with {hints.display_name}."
    if hints.is_group:
        prompt += f' This conversation takes place in the group chat "{hints.group_name or "group"}".'
    else:
        prompt += " This is a private chat."
    prompt += (
        " You can also search hotels: the user only needs to say something like"
        " 'I want to stay in Bali'."
        " Answer briefly and clearly, in the language the user writes in."
    )
    return prompt


def build_messages(window: Sequence[ConversationTurn], user_text: str, hints: ContextHints) -> list[BaseMessage]:
    messages: list[BaseMessage] = [SystemMessage(content=build_system_prompt(hints))]
    for turn in window:
        if turn.role == "user":
            messages.append(HumanMessage(content=turn.text))
        else:
            messages.append(AIMessage(content=turn.text))
    messages.append(HumanMessage(content=user_text))
    return messages


class LLMResponder:
    """
    General-purpose answers for messages the booking flow did not take.

    Without an API key (and no injected model) it replies with a fixed offline
    echo so the bot still works in development.
    """

    def __init__(self, settings: Settings, chat_model=None):
        self.settings = settings
        self._model = chat_model
        if self._model is None and settings.openai_api_key:
            self._model = ChatOpenAI(
                model=settings.openai_model,
                temperature=settings.llm_temperature,
                max_tokens=settings.llm_max_tokens,
                api_key=settings.openai_api_key,
            )

    def reply(self, window: Sequence[ConversationTurn], user_text: str, hints: ContextHints) -> str:
        logger.info("Calling LLM with %d history turns", len(window))
        if self._model is None:
            logger.warning("No LLM configured, using offline reply")
            return f'Hi! I\'m running in offline mode. You said: "{user_text}". I have {len(window)} earlier messages as context.'

        try:
            resp = self._model.invoke(build_messages(window, user_text, hints))
        except Exception:
            logger.exception("LLM call failed")
            return LLM_FALLBACK_REPLY

        content = getattr(resp, "content", resp)
        if not isinstance(content, str) or not content.strip():
            logger.warning("LLM returned an empty reply")
            return LLM_FALLBACK_REPLY
        return content.strip()
