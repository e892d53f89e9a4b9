from abc import ABC, abstractmethod
from typing import Callable


class EventBus(ABC):
    """Publish/subscribe contract for domain events."""

    @abstractmethod
    def publish(self, event_type: str, payload: dict):
        """Publish an event. Implementations log failures instead of raising."""
        pass

    @abstractmethod
    def subscribe(self, event_type: str, handler: Callable):
        """Register a handler receiving the event envelope dict."""
        pass

    def start_listening(self):
        """Start delivering events from other processes; in-process buses need nothing."""
        pass
