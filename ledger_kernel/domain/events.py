"""
Ledger events and the event sink interface.

Responsibility:
    Defines the user-visible notifications emitted after a successful
    mutation and the injectable sink they are delivered to.

Architecture position:
    Kernel > Domain. The sink is an external collaborator; the kernel
    ships an in-memory sink (tests, CLI) and a structured-log sink.

Failure modes:
    Events are fire-and-forget: they are emitted once, after the store
    writes of the operation succeeded, and never retried.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass

from ledger_kernel.logging_config import get_logger

logger = get_logger("events")


@dataclass(frozen=True, slots=True)
class LedgerEvent:
    """Base class for ledger notifications."""

    asset_id: str

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"event": self.name, **asdict(self)}


@dataclass(frozen=True, slots=True)
class AssetCreated(LedgerEvent):
    """An asset record was created with zero issuance."""


@dataclass(frozen=True, slots=True)
class Issued(LedgerEvent):
    """Value was minted into an account."""

    account_id: str
    amount: int


@dataclass(frozen=True, slots=True)
class Burned(LedgerEvent):
    """Value was burned from an account."""

    account_id: str
    amount: int


@dataclass(frozen=True, slots=True)
class Transferred(LedgerEvent):
    """Value moved between two accounts of the same asset."""

    source: str
    dest: str
    amount: int


class EventSink(ABC):
    """Receives ledger notifications."""

    @abstractmethod
    def emit(self, event: LedgerEvent) -> None:
        ...


class RecordingEventSink(EventSink):
    """Keeps every emitted event in memory, in order."""

    def __init__(self) -> None:
        self.events: list[LedgerEvent] = []

    def emit(self, event: LedgerEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type[LedgerEvent]) -> list[LedgerEvent]:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self) -> None:
        self.events.clear()


class LoggingEventSink(EventSink):
    """Writes one structured log line per event."""

    def emit(self, event: LedgerEvent) -> None:
        # amounts may exceed 64 bits; keep them exact in the JSON line
        fields = {
            k: str(v) if isinstance(v, int) else v
            for k, v in event.to_dict().items()
        }
        logger.info("ledger_event", extra=fields)
