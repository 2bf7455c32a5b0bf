from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class DispatchMode(str, Enum):
    # Listeners issued together, awaited as a group
    CONCURRENT = "CONCURRENT"

    # Listeners awaited one at a time, stopping on first failure
    SERIAL = "SERIAL"


class EventKey(str, Generic[T]):
    """
    Event name carrying its payload type for static checkers.

    At runtime an EventKey is just a string, so it compares and hashes
    equal to the plain name:

        VALUE: EventKey[Record] = EventKey("value")

        emitter.on(VALUE, handle_record)   # handle_record(record: Record)
        record = await emitter.once(VALUE) # Record
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"EventKey({str.__repr__(self)})"
