import asyncio
import unittest
from unittest.mock import patch

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

import oae.telemetry
from oae import Emitter, EmitterConfig
from oae.telemetry import init_telemetry


class TestTelemetry(unittest.TestCase):
    def setUp(self):
        self.exporter = InMemorySpanExporter()
        self.provider = TracerProvider()
        processor = SimpleSpanProcessor(self.exporter)
        self.provider.add_span_processor(processor)
        self.tracer = self.provider.get_tracer("test_tracer")

    def test_emit_span(self):
        emitter = Emitter(EmitterConfig(name="bus", metrics=False))
        emitter.on("value", lambda data: None)
        emitter.on_any(lambda name, data: None)

        async def run():
            await emitter.emit("value", 1)

        with patch('oae.runtime.dispatch.get_tracer') as mock_get_tracer:
            mock_get_tracer.return_value = self.tracer
            asyncio.run(run())

        spans = self.exporter.get_finished_spans()
        self.assertEqual(len(spans), 1)
        self.assertEqual(spans[0].name, "emitter.emit")
        self.assertEqual(spans[0].attributes["event.name"], "value")
        self.assertEqual(spans[0].attributes["listener.count"], 2)
        self.assertEqual(spans[0].attributes["dispatch.mode"], "CONCURRENT")
        self.assertEqual(spans[0].attributes["emitter.name"], "bus")

    def test_failed_serial_span_records_error(self):
        emitter = Emitter(EmitterConfig(metrics=False))

        def boom():
            raise ValueError("boom")

        emitter.on("a", boom)

        async def run():
            with self.assertRaises(ValueError):
                await emitter.emit_serial("a")

        with patch('oae.runtime.dispatch.get_tracer') as mock_get_tracer:
            mock_get_tracer.return_value = self.tracer
            asyncio.run(run())

        spans = self.exporter.get_finished_spans()
        self.assertEqual(len(spans), 1)
        self.assertEqual(spans[0].name, "emitter.emit_serial")
        self.assertEqual(spans[0].status.status_code, StatusCode.ERROR)
        self.assertEqual(spans[0].events[0].name, "exception")

    def test_no_span_without_listeners_or_when_disabled(self):
        quiet = Emitter(EmitterConfig(tracing=False, metrics=False))
        quiet.on("value", lambda data: None)
        empty = Emitter(EmitterConfig(metrics=False))

        async def run():
            await quiet.emit("value", 1)
            await empty.emit("value", 1)

        with patch('oae.runtime.dispatch.get_tracer') as mock_get_tracer:
            mock_get_tracer.return_value = self.tracer
            asyncio.run(run())

        self.assertEqual(self.exporter.get_finished_spans(), ())


class TestInitTelemetry(unittest.TestCase):
    def tearDown(self):
        oae.telemetry._TRACER_INITIALIZED = False

    def test_console_exporter_installed_once(self):
        with patch.dict("os.environ", {}, clear=True), \
             patch("oae.telemetry.trace.set_tracer_provider") as mock_set_provider:
            init_telemetry("test-service")
            init_telemetry("test-service")

        mock_set_provider.assert_called_once()
        provider = mock_set_provider.call_args[0][0]
        self.assertIsInstance(provider, TracerProvider)

    def test_given_exporter_receives_dispatch_spans(self):
        exporter = InMemorySpanExporter()
        emitter = Emitter(EmitterConfig(metrics=False))
        emitter.on("value", lambda data: None)

        with patch("oae.telemetry.trace.set_tracer_provider") as mock_set_provider:
            init_telemetry("test-service", exporter=exporter)

        provider = mock_set_provider.call_args[0][0]
        with patch("oae.runtime.dispatch.get_tracer") as mock_get_tracer:
            mock_get_tracer.return_value = provider.get_tracer("test_tracer")
            asyncio.run(self._emit(emitter))

        spans = exporter.get_finished_spans()
        self.assertEqual([s.name for s in spans], ["emitter.emit"])

    async def _emit(self, emitter):
        await emitter.emit("value", 1)


if __name__ == '__main__':
    unittest.main()
