"""
Reporting Engine - Event Bus

Explicit publish/subscribe channel used for cross-view refresh signals
(e.g. an import history log refreshing after an import completes). Pass one
instance by reference to every participant instead of relying on a global.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Union

logger = logging.getLogger(__name__)


class EventChannel(str, Enum):
    """Event channels."""
    IMPORTS_COMPLETED = "imports.completed"
    REPORT_UPDATED = "report.updated"
    REPORT_REGENERATE = "report.regenerate"


@dataclass
class Event:
    channel: EventChannel
    data: Dict[str, Any] = field(default_factory=dict)
    published_at: datetime = field(default_factory=datetime.utcnow)


Handler = Callable[[Event], Union[None, Awaitable[None]]]


class EventBus:
    """In-process publish/subscribe."""
    
    def __init__(self):
        self._handlers: Dict[EventChannel, List[Handler]] = defaultdict(list)
        self.history: List[Event] = []
    
    def subscribe(self, channel: EventChannel, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a callable that removes it."""
        self._handlers[channel].append(handler)
        
        def unsubscribe() -> None:
            if handler in self._handlers[channel]:
                self._handlers[channel].remove(handler)
        
        return unsubscribe
    
    async def publish(self, channel: EventChannel, data: Dict[str, Any] = None) -> Event:
        event = Event(channel=channel, data=data or {})
        self.history.append(event)
        
        for handler in list(self._handlers[channel]):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Event handler failed on {channel.value}: {e}")
        return event
    
    def published(self, channel: EventChannel) -> List[Event]:
        return [e for e in self.history if e.channel == channel]
