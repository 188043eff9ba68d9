"""
Blocking watchers that resolve a submitted resource to a single outcome.
"""

from jobwatch.execution.watchers.base import ResourceWatcher
from jobwatch.execution.watchers.channel import ChannelClosed, WatchChannel, WatchEvent
from jobwatch.execution.watchers.completion import CompletionWatcher
from jobwatch.execution.watchers.readiness import ReadinessWatcher

__all__ = [
    "ResourceWatcher",
    "WatchChannel",
    "WatchEvent",
    "ChannelClosed",
    "CompletionWatcher",
    "ReadinessWatcher",
]
