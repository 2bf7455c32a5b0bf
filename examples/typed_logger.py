import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, List

from dotenv import load_dotenv

from oae import Emitter, EmitterConfig, EventKey
from oae.telemetry import init_telemetry

load_dotenv()
init_telemetry("typed-logger")


@dataclass
class Record:
    msg: str
    data: List[Any] = field(default_factory=list)
    ts: float = field(default_factory=time.time)


VALUE: EventKey[Record] = EventKey("value")
END: EventKey[None] = EventKey("end")


class Logger(Emitter):

    def log(self, msg: str, *data: Any):
        self.emit(VALUE, Record(msg=msg, data=list(data)))
        print(msg, *data)


async def main():
    logger = Logger(EmitterConfig.from_env(name="logger"))

    # Register our listeners first: listeners are snapshotted when emit() is called.
    logger.on(VALUE, lambda rec: print(f"data: {rec.data}, ts: {rec.ts}"))
    bye = logger.once(END)

    # n.b.: listeners will be called on the next loop turn.
    logger.log("Logging", "foo")
    logger.log("some more", "bar", "baz")
    logger.log("finally", "fooz")
    logger.emit(END)

    await bye
    print("bye!")


asyncio.run(main())
