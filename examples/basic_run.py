import asyncio

from oae import Emitter


async def slow(n):
    print(f"slow start {n}")
    await asyncio.sleep(0.1)
    print(f"slow end {n}")


async def fast(n):
    print(f"fast {n}")


def audit(event_name, n):
    print(f"[any] {event_name} -> {n}")


async def main():
    emitter = Emitter()
    emitter.on("job", slow)
    emitter.on("job", fast)
    emitter.on_any(audit)

    print("emit: listeners run concurrently")
    await emitter.emit("job", 1)

    print("emit_serial: each listener awaited in turn")
    await emitter.emit_serial("job", 2)

    print(f"listeners: {emitter.listener_count()}")


asyncio.run(main())
