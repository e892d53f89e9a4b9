from .event_bus_interface import EventBus
from .memory_event_bus import InMemoryEventBus
from .redis_event_bus import RedisEventBus, get_event_bus, reset_event_bus


__all__ = ["EventBus", "InMemoryEventBus", "RedisEventBus", "get_event_bus", "reset_event_bus"]
