"""Conversation state for one chat client.

A SessionController owns the message log, the request latch and the user's
preferences. The completion gateway, persistence adapter and render sink are
injected so that each client surface (web API, terminal) wires its own.
"""
import json
import logging
import threading
from typing import Callable, Iterator, List, Optional

from django.utils import timezone

from .gateway import GatewayError
from .records import Message, Preferences, Role, Theme
from .storage import PersistenceAdapter

logger = logging.getLogger(__name__)

ERROR_REPLY_TEMPLATE = "Sorry, I encountered an error: {detail}"


class SessionError(Exception):
    pass


class InvalidInput(SessionError):
    pass


class SessionBusy(SessionError):
    pass


class RequestState:
    IDLE = "idle"
    AWAITING_REPLY = "awaiting-reply"


class MessageLog:
    """Append-only, chronologically ordered list of messages."""

    def __init__(self, clock: Callable = timezone.now):
        self._messages: List[Message] = []
        self._clock = clock

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __getitem__(self, index):
        return self._messages[index]

    def append(self, role, content: str) -> Message:
        timestamp = self._clock()
        if self._messages and timestamp < self._messages[-1].timestamp:
            timestamp = self._messages[-1].timestamp
        message = Message(role=Role(role), content=content, timestamp=timestamp)
        self._messages.append(message)
        return message

    def extend_from_storage(self, messages) -> None:
        self._messages.extend(messages)

    def clear(self) -> None:
        self._messages.clear()

    def to_transport_form(self) -> Iterator[dict]:
        return (message.to_transport() for message in self._messages)


class RenderSink:
    def on_append(self, message: Message) -> None:
        raise NotImplementedError


class NullRenderSink(RenderSink):
    def on_append(self, message):
        pass


class TranscriptSink(RenderSink):
    """Collects appended messages so a request handler can return them."""

    def __init__(self):
        self.messages: List[Message] = []

    def on_append(self, message):
        self.messages.append(message)

    def drain(self) -> List[Message]:
        drained, self.messages = self.messages, []
        return drained


class SessionController:
    """Turn-taking over a message log with at most one completion in flight."""

    def __init__(
        self,
        gateway,
        persistence: Optional[PersistenceAdapter] = None,
        sink: Optional[RenderSink] = None,
        clock: Callable = timezone.now,
    ):
        self.gateway = gateway
        self.persistence = persistence or PersistenceAdapter()
        self.sink = sink or NullRenderSink()
        self.log = MessageLog(clock=clock)
        self._state = RequestState.IDLE
        self._latch = threading.Lock()

        self.log.extend_from_storage(self.persistence.load_log())
        self._preferences = self.persistence.load_preferences()
        for message in self.log:
            self.sink.on_append(message)

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_idle(self) -> bool:
        return self._state == RequestState.IDLE

    @property
    def messages(self) -> List[Message]:
        return list(self.log)

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    def submit(self, text: str) -> Message:
        """Send one user turn and return the assistant message it produced.

        Raises InvalidInput for blank text and SessionBusy while a previous
        turn is still waiting for its reply; neither touches the log.
        """
        content = (text or "").strip()
        if not content:
            raise InvalidInput("Message is empty")
        self._enter_awaiting_reply()
        try:
            self._append(Role.USER, content)
            try:
                reply = self.gateway.complete(self.log.to_transport_form(), self._preferences.model)
            except GatewayError as exc:
                logger.error("Completion failed (%s): %s", exc.kind, exc.detail)
                reply = ERROR_REPLY_TEMPLATE.format(detail=exc.detail)
            return self._append(Role.ASSISTANT, reply)
        finally:
            self._state = RequestState.IDLE

    def reset(self) -> None:
        with self._latch:
            if self._state != RequestState.IDLE:
                raise SessionBusy("Cannot clear the chat while a reply is pending")
            self.log.clear()
            self.persistence.clear_log()

    def select_model(self, model: str) -> Preferences:
        self._preferences = Preferences(model=model, theme=self._preferences.theme)
        self.persistence.save_preferences(self._preferences)
        return self._preferences

    def set_theme(self, theme) -> Preferences:
        self._preferences = Preferences(model=self._preferences.model, theme=Theme(theme))
        self.persistence.save_preferences(self._preferences)
        return self._preferences

    def export(self) -> str:
        return json.dumps([message.to_record() for message in self.log], indent=2, ensure_ascii=False)

    def export_filename(self) -> str:
        return f"chat-export-{int(timezone.now().timestamp() * 1000)}.json"

    def _enter_awaiting_reply(self) -> None:
        with self._latch:
            if self._state != RequestState.IDLE:
                raise SessionBusy("A reply is already pending")
            self._state = RequestState.AWAITING_REPLY

    def _append(self, role, content: str) -> Message:
        message = self.log.append(role, content)
        self.persistence.save_log(self.log)
        self.sink.on_append(message)
        return message
