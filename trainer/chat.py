"""Free-form conversation with the completion endpoint."""

from typing import List, Optional

from .api import CompletionFn
from .errors import error_message
from .logger import logger
from .models import ChatMessage
from .prompts import CHAT_SYSTEM_PROMPT


class ChatSession:
    """
    Accumulates a conversation and sends all of it with every message.

    The learner's message is kept even when the request fails so it can be
    read back (and resent) from the transcript.
    """

    def __init__(
        self,
        settings,
        complete: CompletionFn,
        system_prompt: Optional[str] = CHAT_SYSTEM_PROMPT,
        temperature: Optional[float] = None,
    ) -> None:
        self.settings = settings
        self.complete = complete
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.messages: List[ChatMessage] = []
        self.error: Optional[str] = None
        self.loading = False

    def _request_messages(self) -> List[ChatMessage]:
        if self.system_prompt:
            return [ChatMessage("system", self.system_prompt), *self.messages]
        return list(self.messages)

    def add_user_message(self, text: str) -> Optional[List[ChatMessage]]:
        """Append the learner's message; returns the request payload or None for blank text."""
        if not text.strip() or self.loading:
            return None
        self.messages.append(ChatMessage("user", text))
        self.error = None
        self.loading = True
        return self._request_messages()

    def request(self, messages: List[ChatMessage]) -> str:
        settings = self.settings.get()
        return self.complete(settings.api_key, settings.model, messages, self.temperature)

    def finish(self, reply: Optional[str] = None, error: Optional[BaseException] = None) -> None:
        self.loading = False
        if error is not None:
            self.error = error_message(error)
            logger.error(f"Chat request failed: {self.error}")
            return
        self.messages.append(ChatMessage("assistant", reply or ""))
        logger.success(f"Chat reply received ({len(self.messages)} messages)")

    def send(self, text: str) -> Optional[str]:
        """Send ``text`` and return the reply, or None if blank or failed."""
        payload = self.add_user_message(text)
        if payload is None:
            return None
        try:
            reply = self.request(payload)
        except Exception as e:
            self.finish(error=e)
            return None
        self.finish(reply=reply)
        return reply

    def clear(self) -> None:
        self.messages = []
        self.error = None
        logger.ui("Chat cleared")
