"""
Downloads Janitor
=================

Watches a folder and moves every file dropped into it to a destination
folder chosen by its extension.
"""

__version__ = "1.0.0"

from .config import Rule, JanitorConfig, ConfigError, load_config, validate_watch_folder
from .index import ExtensionIndex, normalize_extension
from .executor import move_file, MoveOutcome, MoveStatus, MAX_COLLISION_ATTEMPTS
from .organizer import Organizer, PassReport
from .watcher import ChangeSignal, WatchdogChangeSignal, WatchError, watch_loop

__all__ = [
    "Rule",
    "JanitorConfig",
    "ConfigError",
    "load_config",
    "validate_watch_folder",
    "ExtensionIndex",
    "normalize_extension",
    "move_file",
    "MoveOutcome",
    "MoveStatus",
    "MAX_COLLISION_ATTEMPTS",
    "Organizer",
    "PassReport",
    "ChangeSignal",
    "WatchdogChangeSignal",
    "WatchError",
    "watch_loop",
]
