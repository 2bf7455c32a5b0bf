from oae.runtime.emitter import Emitter
from oae.runtime.events import DispatchMode, EventKey
from oae.config import EmitterConfig

__all__ = [
    "Emitter",
    "EventKey",
    "DispatchMode",
    "EmitterConfig",
]

__version__ = "1.0.0"
