# Core modules

from .config import settings, get_settings, Settings
from .events import EventBus
from .timers import TimerEngine, TimerGroup

__all__ = ["settings", "get_settings", "Settings", "EventBus", "TimerEngine", "TimerGroup"]
