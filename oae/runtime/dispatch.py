import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Hashable, List, Optional, Set, Tuple

import oae.metrics as metrics
from oae.config import EmitterConfig
from oae.runtime.events import DispatchMode
from oae.runtime.registry import ListenerRegistry, Registration, MISSING
from oae.telemetry import get_tracer

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Invokes a snapshot of registrations for one emission.

    CONCURRENT issues every listener in the same loop turn and settles
    once all of them settled, failing with the first failure to settle.
    SERIAL awaits each listener before starting the next and stops at
    the first failure.
    """

    def __init__(self, registry: ListenerRegistry, config: Optional[EmitterConfig] = None):
        self.registry = registry
        self.config = config or EmitterConfig()
        self._running: Set[asyncio.Future] = set()

    async def dispatch(
        self,
        mode: DispatchMode,
        event_name: Hashable,
        snapshot: Tuple[Registration, ...],
        payload: Any = MISSING,
    ) -> None:
        self._log_emission(mode, event_name, snapshot)
        if self.config.metrics:
            metrics.emissions_counter.labels(mode=mode.value).inc()

        if not snapshot:
            return

        started = time.perf_counter()
        try:
            if self.config.tracing:
                await self._run_traced(mode, event_name, snapshot, payload)
            else:
                await self._run(mode, event_name, snapshot, payload)
        finally:
            if self.config.metrics:
                metrics.dispatch_duration.labels(mode=mode.value).observe(
                    time.perf_counter() - started
                )

    # =====================================================
    # POLICIES
    # =====================================================
    async def _run(self, mode, event_name, snapshot, payload):
        if mode == DispatchMode.SERIAL:
            await self._run_serial(mode, event_name, snapshot, payload)
        else:
            await self._run_concurrent(mode, event_name, snapshot, payload)

    async def _run_traced(self, mode, event_name, snapshot, payload):
        tracer = get_tracer(__name__)
        span_name = "emitter.emit_serial" if mode == DispatchMode.SERIAL else "emitter.emit"

        with tracer.start_as_current_span(span_name) as span:
            span.set_attribute("event.name", str(event_name))
            span.set_attribute("listener.count", len(snapshot))
            span.set_attribute("dispatch.mode", mode.value)
            if self.config.name:
                span.set_attribute("emitter.name", self.config.name)
            await self._run(mode, event_name, snapshot, payload)

    async def _run_concurrent(self, mode, event_name, snapshot, payload):
        loop = asyncio.get_running_loop()
        pending: List[Awaitable] = []

        # No await inside this loop: every listener is issued in one turn.
        for registration in snapshot:
            try:
                result = self._issue(mode, event_name, registration, payload)
            except Exception as e:
                self._record_failure(mode, event_name, registration, e)
                failed = loop.create_future()
                failed.set_exception(e)
                pending.append(failed)
                continue

            if inspect.isawaitable(result):
                pending.append(self._start(mode, event_name, registration, result))

        if pending:
            # gather() raises the first exception to settle and leaves the
            # other listeners running. shield() keeps a cancelled dispatch
            # from cancelling listeners already issued.
            await asyncio.shield(self._track(asyncio.gather(*pending)))

    async def _run_serial(self, mode, event_name, snapshot, payload):
        for registration in snapshot:
            try:
                result = self._issue(mode, event_name, registration, payload)
            except Exception as e:
                self._record_failure(mode, event_name, registration, e)
                raise

            if inspect.isawaitable(result):
                # Cancelling the dispatch stops the loop here; the running
                # listener still completes.
                await asyncio.shield(self._start(mode, event_name, registration, result))

    # =====================================================
    # HELPERS
    # =====================================================
    def _issue(self, mode, event_name, registration: Registration, payload):
        # One-shot registrations are claimed before the call, so a
        # recursive emission or a second in-flight snapshot cannot fire
        # them again.
        if registration.once and not self.registry.discard(registration):
            return None

        if self.config.metrics:
            metrics.listener_calls_counter.labels(mode=mode.value).inc()
        return registration.invoke(event_name, payload)

    def _start(self, mode, event_name, registration, awaitable) -> asyncio.Future:
        return self._track(
            asyncio.ensure_future(self._settle(mode, event_name, registration, awaitable))
        )

    def _track(self, future: asyncio.Future) -> asyncio.Future:
        self._running.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: asyncio.Future):
        self._running.discard(future)
        # Failures were logged by _settle; nobody may be awaiting any more.
        if not future.cancelled():
            future.exception()

    async def _settle(self, mode, event_name, registration, awaitable):
        try:
            return await awaitable
        except Exception as e:
            self._record_failure(mode, event_name, registration, e)
            raise

    def _record_failure(self, mode, event_name, registration, error):
        logger.warning(
            f"{self._label()}listener {registration.callback!r} for '{event_name}' "
            f"failed during {mode.value.lower()} dispatch: {error!r}"
        )
        if self.config.metrics:
            metrics.listener_failures_counter.labels(mode=mode.value).inc()

    def _log_emission(self, mode, event_name, snapshot):
        level = logging.INFO if self.config.debug else logging.DEBUG
        if not logger.isEnabledFor(level):
            return
        logger.log(
            level,
            f"{self._label()}emitting '{event_name}' to {len(snapshot)} listener(s) "
            f"({mode.value.lower()})",
        )

    def _label(self) -> str:
        return f"[{self.config.name}] " if self.config.name else ""
