from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from prison_common.errors import CapabilityError

from .generator_base import TextGenerator

LOGGER = logging.getLogger(__name__)

GREETING = "Hello! How can I help you with the prisoner data today?"
EMPTY_QUESTION_REPLY = "Please ask a question."
ERROR_REPLY = "Sorry, I ran into a problem processing your request."


@dataclass
class ChatMessage:
    role: str  # "user", "model" or "error"
    text: str
    original_user_message: Optional[str] = None


def build_chat_prompt(question: str, facility: str) -> str:
    return (
        f"You are an AI assistant for the {facility} Management System.\n"
        "Answer the user's question concisely.\n"
        f'The user\'s question is: "{question}"\n'
    )


@dataclass
class ChatSession:
    facility: str = "District Prison Malir"
    messages: List[ChatMessage] = field(default_factory=lambda: [ChatMessage(role="model", text=GREETING)])

    def submit(self, text: str, generator: TextGenerator) -> ChatMessage:
        """Record the user's question and append the reply (or an error message carrying it for retry)."""

        self.messages.append(ChatMessage(role="user", text=text))
        return self._answer(text, generator)

    def retry(self, error_message: ChatMessage, generator: TextGenerator) -> ChatMessage:
        if error_message.role != "error" or error_message.original_user_message is None:
            raise ValueError("Only error messages carrying the original question can be retried.")
        # The failed turn is replaced by the new answer.
        self.messages = [m for m in self.messages if m.role != "error"]
        return self._answer(error_message.original_user_message, generator)

    def _answer(self, question: str, generator: TextGenerator) -> ChatMessage:
        if not question.strip():
            reply = ChatMessage(role="model", text=EMPTY_QUESTION_REPLY)
        else:
            try:
                reply = ChatMessage(role="model", text=generator.generate_text(build_chat_prompt(question, self.facility)))
            except CapabilityError as exc:
                LOGGER.error("Chat request failed: %s", exc)
                reply = ChatMessage(role="error", text=ERROR_REPLY, original_user_message=question)
        self.messages.append(reply)
        return reply
