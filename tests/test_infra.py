import asyncio
import io
import json
import logging
import tempfile
import time
import unittest
from pathlib import Path

from condarb.infra.aio import call_blocking
from condarb.infra.journal import LegJournal
from condarb.infra.locks import SignerLockRegistry
from condarb.infra.logging import JsonFormatter
from condarb.infra.metrics import RunMetrics


class JournalTest(unittest.TestCase):
    def test_in_memory_filter_by_run(self) -> None:
        journal = LegJournal()
        journal.record("run-a", "leg_completed", step=1)
        journal.record("run-b", "leg_failed", step=2, error="boom")

        self.assertEqual(2, len(journal.read()))
        entries = journal.read("run-b")
        self.assertEqual(1, len(entries))
        self.assertEqual("boom", entries[0]["error"])

    def test_lines_survive_reopen(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "legs.jsonl"
            LegJournal(path).record("run-a", "run_started", amount=10)
            entries = LegJournal(path).read("run-a")
        self.assertEqual("run_started", entries[0]["event"])
        self.assertEqual(10, entries[0]["amount"])


class MetricsTest(unittest.TestCase):
    def test_counters_and_textfile(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "condarb.prom"
            metrics = RunMetrics(textfile=path)
            metrics.record_leg("merge", ok=True)
            metrics.record_leg("merge", ok=True)
            metrics.record_sizing(optimal_amount=5, expected_profit=2, failed_candidates=1)
            text = path.read_text()

        exported = metrics.export()
        self.assertEqual(2, exported["condarb_leg_merge_ok"])
        self.assertEqual(1, exported["condarb_sizing_total"])
        self.assertEqual(5.0, exported["condarb_sizing_optimal_amount"])
        self.assertIn("condarb_leg_merge_ok 2", text)


class LockTest(unittest.IsolatedAsyncioTestCase):
    async def test_runs_for_one_signer_are_serialized(self) -> None:
        registry = SignerLockRegistry()
        order = []

        async def run(name: str) -> None:
            async with registry.hold("wallet"):
                order.append(f"{name}-start")
                await asyncio.sleep(0)
                order.append(f"{name}-end")

        await asyncio.gather(run("a"), run("b"))
        self.assertEqual(["a-start", "a-end", "b-start", "b-end"], order)
        self.assertFalse(registry.is_locked("wallet"))


class CallBlockingTest(unittest.IsolatedAsyncioTestCase):
    async def test_runs_sync_and_async_callables(self) -> None:
        async def doubled(value: int) -> int:
            return value * 2

        self.assertEqual(4, await call_blocking(doubled, 2, timeout=1.0))
        self.assertEqual(3, await call_blocking(len, "abc"))

    async def test_timeout_only_when_given(self) -> None:
        with self.assertRaises(asyncio.TimeoutError):
            await call_blocking(time.sleep, 0.2, timeout=0.01)
        self.assertIsNone(await call_blocking(time.sleep, 0.05))


class JsonFormatterTest(unittest.TestCase):
    def test_extra_fields_are_top_level(self) -> None:
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(JsonFormatter())
        logger = logging.getLogger("condarb.test.json")
        logger.addHandler(handler)
        logger.propagate = False
        try:
            logger.warning("leg failed", extra={"event": "leg_failed", "step": 3})
        finally:
            logger.removeHandler(handler)

        payload = json.loads(stream.getvalue())
        self.assertEqual("leg failed", payload["message"])
        self.assertEqual("leg_failed", payload["event"])
        self.assertEqual(3, payload["step"])
        self.assertEqual("WARNING", payload["level"])


if __name__ == "__main__":
    unittest.main()
