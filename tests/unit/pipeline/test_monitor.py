"""Tests for QueueMonitor."""

import threading
from unittest.mock import Mock

import pytest

from kbforge.config import PipelineConfig
from kbforge.entities import JobState, QueueName
from kbforge.jobs import InMemoryJobQueue, JobEvent
from kbforge.pipeline import QueueMonitor
from tests.utils.builders import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def queue(clock):
    return InMemoryJobQueue(PipelineConfig(), clock=clock)


class TestQueueMonitor:
    """Tests for sweeps and listeners."""

    def test_attach_is_idempotent(self):
        queue = Mock()
        monitor = QueueMonitor(queue)

        monitor.attach()
        monitor.attach()

        assert {call.args[0] for call in queue.on.call_args_list} == set(JobEvent)
        assert queue.on.call_count == 3

    def test_sweep_removes_expired_jobs(self, queue, clock):
        queue.process("document", "process-document", lambda job: None)

        def fail(job):
            raise RuntimeError("boom")

        queue.process("embedding", "generate-embeddings", fail)
        done = queue.enqueue("document", "process-document", {})
        failed = queue.enqueue("embedding", "generate-embeddings", {})
        queue.run_until_idle()

        clock.advance(hours=25)
        result = QueueMonitor(queue).sweep()

        assert result == {"completed_removed": 1, "failed_removed": 0, "stalled": 0}
        assert queue.get_job(QueueName.DOCUMENT, done.job_id) is None
        assert queue.get_job(QueueName.EMBEDDING, failed.job_id).state == JobState.FAILED

        clock.advance(days=7)
        assert QueueMonitor(queue).clean() == (0, 1)

    def test_check_stalled_uses_stall_interval(self, queue, clock):
        monitor = QueueMonitor(queue, PipelineConfig(stall_interval_seconds=10))
        counts = []

        def handler(job):
            clock.advance(seconds=11)
            counts.append(monitor.check_stalled())

        queue.process("document", "process-document", handler)
        queue.enqueue("document", "process-document", {})
        queue.run_until_idle()

        assert counts == [1]

    def test_stalled_jobs_use_failed_retention(self, queue, clock):
        def handler(job):
            clock.advance(seconds=31)
            queue.check_stalled(PipelineConfig().stall_interval)

        queue.process("document", "process-document", handler)
        job = queue.enqueue("document", "process-document", {})
        queue.run_until_idle()
        monitor = QueueMonitor(queue)

        clock.advance(days=6)
        assert monitor.clean() == (0, 0)
        assert queue.get_job(QueueName.DOCUMENT, job.job_id).state == JobState.STALLED

        clock.advance(days=2)
        assert monitor.clean() == (0, 1)
        assert queue.get_job(QueueName.DOCUMENT, job.job_id) is None

    def test_listeners_log_failures(self, queue, caplog):
        QueueMonitor(queue).attach()

        def fail(job):
            raise RuntimeError("boom")

        queue.process("document", "process-document", fail)
        job = queue.enqueue("document", "process-document", {})

        with caplog.at_level("ERROR", logger="kbforge.pipeline.monitor"):
            queue.run_until_idle()

        assert f"Document job {job.job_id} failed: boom" in caplog.text

    def test_background_sweep(self):
        queue = Mock()
        swept = threading.Event()
        queue.check_stalled.side_effect = lambda stall_after: swept.set() or []
        monitor = QueueMonitor(queue, PipelineConfig(stall_interval_seconds=0.01))

        monitor.start()
        try:
            assert swept.wait(timeout=5)
        finally:
            monitor.stop()

        assert monitor._thread is None
