from typing import Protocol

from src.sb_notify.domain.events import SessionEvent


class EventPublisherProtocol(Protocol):
    async def publish(self, event: SessionEvent) -> None: ...
