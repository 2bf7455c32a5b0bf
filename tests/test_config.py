import logging
import unittest
import asyncio
from unittest.mock import patch

from oae import Emitter, EmitterConfig


class TestEmitterConfig(unittest.TestCase):

    def test_defaults(self):
        config = EmitterConfig()
        self.assertIsNone(config.name)
        self.assertFalse(config.debug)
        self.assertTrue(config.tracing)
        self.assertTrue(config.metrics)

    def test_from_env(self):
        env = {
            "OAE_EMITTER_NAME": "orders",
            "OAE_DEBUG": "yes",
            "OAE_TRACING": "0",
            "OAE_METRICS": "False",
        }
        with patch.dict("os.environ", env, clear=True):
            config = EmitterConfig.from_env()

        self.assertEqual(config.name, "orders")
        self.assertTrue(config.debug)
        self.assertFalse(config.tracing)
        self.assertFalse(config.metrics)

    def test_from_env_explicit_name_and_defaults(self):
        with patch.dict("os.environ", {"OAE_EMITTER_NAME": "ignored"}, clear=True):
            config = EmitterConfig.from_env(name="explicit")

        self.assertEqual(config.name, "explicit")
        self.assertFalse(config.debug)
        self.assertTrue(config.tracing)
        self.assertTrue(config.metrics)

    def test_default_emitter_config(self):
        emitter = Emitter()
        self.assertEqual(emitter.config, EmitterConfig())
        self.assertEqual(repr(emitter), "<Emitter listeners=0>")


class TestDispatchLogging(unittest.TestCase):

    def test_debug_config_logs_emissions_at_info(self):
        emitter = Emitter(EmitterConfig(name="bus", debug=True, tracing=False, metrics=False))
        emitter.on("value", lambda data: None)

        with self.assertLogs("oae.runtime.dispatch", level=logging.INFO) as logs:
            asyncio.run(self._emit(emitter))

        self.assertIn("[bus] emitting 'value' to 1 listener(s) (concurrent)", logs.output[0])

    def test_listener_failure_logged_as_warning(self):
        emitter = Emitter(EmitterConfig(tracing=False, metrics=False))

        def boom(data):
            raise ValueError("boom")

        emitter.on("value", boom)

        async def run():
            with self.assertRaises(ValueError):
                await emitter.emit("value", 1)

        with self.assertLogs("oae.runtime.dispatch", level=logging.WARNING) as logs:
            asyncio.run(run())

        self.assertEqual(len(logs.records), 1)
        self.assertIn("failed during concurrent dispatch", logs.output[0])
        self.assertIn("ValueError('boom')", logs.output[0])

    async def _emit(self, emitter):
        await emitter.emit("value", 1)


if __name__ == '__main__':
    unittest.main()
