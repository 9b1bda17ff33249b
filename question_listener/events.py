"""Observer registry for pipeline notifications."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional


class EventType(str, enum.Enum):
    STATE_CHANGED = "state-changed"
    CHUNK_RECORDED = "chunk-recorded"
    TRANSCRIPTION_COMPLETED = "transcription-completed"
    QUESTION_DETECTED = "question-detected"
    ERROR = "error"


class ErrorKind(str, enum.Enum):
    GATEWAY = "gateway"
    INTERNAL = "internal"


@dataclass(frozen=True)
class PipelineError:
    """Non-fatal failure notice delivered with :attr:`EventType.ERROR`."""

    kind: ErrorKind
    message: str
    chunk_id: Optional[str] = None


@dataclass(frozen=True)
class PipelineEvent:
    type: EventType
    payload: Any


Observer = Callable[[PipelineEvent], None]


class EventBus:
    """Deliver each event once to every subscriber, in emission order."""

    def __init__(self) -> None:
        self._observers: List[Observer] = []

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def clear(self) -> None:
        self._observers.clear()

    def emit(self, event_type: EventType, payload: Any) -> None:
        event = PipelineEvent(type=event_type, payload=payload)
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as exc:  # noqa: BLE001
                logging.exception("Observer failed while handling %s: %s", event_type.value, exc)
