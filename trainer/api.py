"""
Chat-completion client for the locally hosted endpoint.

LM Studio (and most local servers) speak the OpenAI wire format, so requests
go through the official ``openai`` SDK pointed at the configured endpoint:

    POST http://localhost:1234/v1/chat/completions
    Authorization: Bearer <api key>
    {"model": ..., "messages": [{"role": ..., "content": ...}], "temperature": ...}

Only ``choices[0].message.content`` of the reply is used. SDK retries are
switched off: a failed attempt surfaces immediately as one of the errors in
``trainer.errors``.
"""

from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

import httpx
import openai
from openai import OpenAI

from .errors import HttpError, ProtocolError, TransportError
from .logger import logger, Timer
from .models import DEFAULT_ENDPOINT, ChatMessage

CHAT_COMPLETIONS_PATH = "/chat/completions"
DEFAULT_TIMEOUT = 60.0
# The SDK insists on a key at construction; the real one is sent per request
PLACEHOLDER_API_KEY = "unused"

MessageLike = Union[ChatMessage, Mapping[str, str]]

# complete(api_key, model, messages, temperature) -> assistant text
CompletionFn = Callable[[str, str, Sequence[MessageLike], Optional[float]], str]


def base_url_for(endpoint: str) -> str:
    """Turn a full chat-completions URL into the SDK's base URL."""
    url = endpoint.strip().rstrip("/")
    if url.endswith(CHAT_COMPLETIONS_PATH):
        url = url[: -len(CHAT_COMPLETIONS_PATH)]
    return url


def _message_dict(message: MessageLike) -> Dict[str, str]:
    if isinstance(message, ChatMessage):
        return message.to_dict()
    return {"role": message["role"], "content": message["content"]}


class CompletionClient:
    """
    Sends one chat-completion request per call.

    One ``OpenAI`` instance (and its connection pool) is reused for every
    call; it is rebuilt only when the endpoint changes. The SDK is given a
    placeholder key and the learner's key travels as an explicit
    ``Authorization`` header, so an empty key is still sent as ``Bearer ``.
    ``http_client`` lets callers (tests, proxies) supply their own
    ``httpx.Client``.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.timeout = timeout
        self.http_client = http_client
        self._openai: Optional[OpenAI] = None
        self.endpoint = endpoint

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @endpoint.setter
    def endpoint(self, value: str) -> None:
        self._endpoint = value
        if self._openai is not None and self.http_client is None:
            self._openai.close()
        self._openai = None

    def _client(self) -> OpenAI:
        if self._openai is None:
            self._openai = OpenAI(
                api_key=PLACEHOLDER_API_KEY,
                base_url=base_url_for(self._endpoint),
                timeout=self.timeout,
                max_retries=0,
                http_client=self.http_client,
            )
        return self._openai

    def complete(
        self,
        api_key: str,
        model: str,
        messages: Sequence[MessageLike],
        temperature: Optional[float] = None,
    ) -> str:
        """Return the assistant text of the first choice."""
        if not model or not model.strip():
            raise ValueError("model must be a non-empty string")
        if temperature is not None and not 0 <= temperature <= 2:
            raise ValueError(f"temperature must be within [0, 2], got {temperature}")

        request: Dict[str, Any] = {
            "model": model,
            "messages": [_message_dict(m) for m in messages],
        }
        if temperature is not None:
            request["temperature"] = temperature

        logger.api_call(self.endpoint, model=model)
        logger.debug(f"  {len(request['messages'])} message(s), temperature={temperature}")
        try:
            with Timer() as timer:
                completion = self._client().chat.completions.create(
                    **request, extra_headers={"Authorization": f"Bearer {api_key}"}
                )
        except openai.APIStatusError as e:
            body = e.response.text if e.response is not None else ""
            logger.api_error(f"HTTP {e.status_code} from {self.endpoint}: {body[:200]}")
            raise HttpError(e.status_code, body) from e
        except openai.APIConnectionError as e:
            # APITimeoutError is a subclass
            logger.api_error(f"Could not reach {self.endpoint}: {e}")
            raise TransportError(f"Could not reach {self.endpoint}: {e}") from e
        except (openai.APIResponseValidationError, ValueError) as e:
            logger.api_error(f"Unreadable response from {self.endpoint}: {e}")
            raise ProtocolError(f"Unreadable response from {self.endpoint}") from e
        logger.api_response(self.endpoint, duration_ms=timer.duration_ms)

        return _first_choice_content(completion)


def _first_choice_content(completion: Any) -> str:
    choices = getattr(completion, "choices", None)
    if not choices:
        logger.api_error("Response contained no choices")
        raise ProtocolError("Response contained no choices")
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str):
        logger.api_error(f"First choice has no text content (got {type(content).__name__})")
        raise ProtocolError("First choice has no text content")
    return content
