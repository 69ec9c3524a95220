import shutil
import tempfile
import threading
import unittest
from pathlib import Path

from udp_probe.events import Observation, LossEvent, ResetEvent
from udp_probe.pipeline import ObservationPipeline, PipelineClosed
from udp_probe.recorder import Recorder
from udp_probe.stats import DEFAULT_WINDOW

SENDER = ('192.168.1.10', 40000)


def observation(seq, expected=None, number=1, sent=1_700_000_000_000_000_000, latency=2_500_000):
    return Observation(
        sequence_sender=seq,
        sequence_receiver=seq if expected is None else expected,
        packet_number=number,
        sent_at_ns=sent,
        received_at_ns=sent + latency,
        remote=SENDER,
        recv_size=100,
    )


class TestObservationPipeline(unittest.TestCase):

    def test_fifo_across_event_kinds(self):
        pipeline = ObservationPipeline()
        events = [LossEvent(3), observation(4), ResetEvent(SENDER), observation(0)]
        for e in events:
            pipeline.put(e)
        self.assertEqual([pipeline.get() for _ in events], events)

    def test_close_drains_then_raises(self):
        pipeline = ObservationPipeline()
        pipeline.put(LossEvent(1))
        pipeline.close()
        self.assertEqual(pipeline.get(), LossEvent(1))
        with self.assertRaises(PipelineClosed):
            pipeline.get()
        with self.assertRaises(PipelineClosed):
            pipeline.get()

    def test_put_after_close_fails(self):
        pipeline = ObservationPipeline()
        pipeline.close()
        with self.assertRaises(PipelineClosed):
            pipeline.put(LossEvent(1))

    def test_multiple_producers(self):
        pipeline = ObservationPipeline()

        def produce(base):
            for i in range(100):
                pipeline.put(LossEvent(base + i))

        threads = [threading.Thread(target=produce, args=(n * 1000,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        pipeline.close()

        received = []
        with self.assertRaises(PipelineClosed):
            while True:
                received.append(pipeline.get(timeout=1).sequence)
        self.assertEqual(len(received), 400)
        for n in range(4):
            own = [s for s in received if n * 1000 <= s < (n + 1) * 1000]
            self.assertEqual(own, sorted(own))


class TestRecorder(unittest.TestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())
        self.output = self.tmpdir / 'probe.log'
        self.pipeline = ObservationPipeline()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def run_recorder(self, events, **kwargs):
        for e in events:
            self.pipeline.put(e)
        self.pipeline.close()
        recorder = Recorder(self.pipeline, self.output, **kwargs)
        with self.assertRaises(PipelineClosed):
            recorder.run()
        return recorder

    def lines(self):
        return self.output.read_text().splitlines()

    def test_truncates_existing_file_on_start(self):
        self.output.write_text("stale line\n")
        self.run_recorder([])
        self.assertEqual(self.output.read_text(), "")

    def test_observation_line_format(self):
        self.run_recorder([observation(7, expected=5, number=3)])
        self.assertEqual(self.lines(), [
            "ooo=y, pck_nbr=3, seq_sent=7, seq_recv=5, "
            "sent_at=22:13:20.000000000, recv_at=22:13:20.002500000, size=100, "
            "time_ms=2.5ms, time_ns=2500000ns, remote=192.168.1.10:40000"
        ])

    def test_loss_line_format(self):
        self.run_recorder([observation(0), LossEvent(1)])
        self.assertEqual(self.lines()[1], "lost=yes, seq_recv=1")
        self.assertTrue(self.lines()[0].startswith("ooo=n, "))

    def test_reset_truncates_log(self):
        recorder = self.run_recorder([
            observation(0), observation(1), LossEvent(2),
            ResetEvent(('192.168.1.10', 40001)),
            observation(0, number=1),
        ])
        lines = self.lines()
        self.assertEqual(len(lines), 1)
        self.assertIn("seq_sent=0", lines[0])
        # No hole of NUL bytes left before the new content
        self.assertFalse(self.output.read_bytes().startswith(b'\x00'))
        self.assertEqual(recorder.resets, 1)
        self.assertEqual(recorder.stats.received, 1)

    def test_reset_as_last_event_leaves_empty_file(self):
        self.run_recorder([observation(0), ResetEvent(SENDER)])
        self.assertEqual(self.output.read_text(), "")

    def test_lines_are_flushed_as_written(self):
        recorder = Recorder(self.pipeline, self.output)
        recorder.open()
        try:
            recorder.handle(observation(0))
            self.assertEqual(len(self.lines()), 1)
            recorder.handle(LossEvent(9))
            self.assertEqual(len(self.lines()), 2)
        finally:
            recorder.close()

    def test_session_statistics(self):
        recorder = self.run_recorder([
            observation(0), observation(2, expected=1), LossEvent(1),
        ], summary_interval=1)
        summary = recorder.stats.summary()
        self.assertEqual(summary['received'], 2)
        self.assertEqual(summary['lost'], 1)
        self.assertEqual(summary['out_of_order'], 1)
        self.assertAlmostEqual(summary['latency_mean_ms'], 2.5)

    def test_latency_window_follows_summary_interval(self):
        recorder = Recorder(self.pipeline, self.output, summary_interval=50_000)
        self.assertEqual(recorder.stats.latencies_ns.maxlen, 50_000)
        recorder.open()
        try:
            recorder.handle(ResetEvent(('10.0.0.1', 40001)))
        finally:
            recorder.close()
        self.assertEqual(recorder.stats.latencies_ns.maxlen, 50_000)

        recorder = Recorder(self.pipeline, self.output, summary_interval=0)
        self.assertEqual(recorder.stats.latencies_ns.maxlen, DEFAULT_WINDOW)

    def test_unknown_event_rejected(self):
        recorder = Recorder(self.pipeline, self.output)
        recorder.open()
        try:
            with self.assertRaises(TypeError):
                recorder.handle("not an event")
        finally:
            recorder.close()


if __name__ == '__main__':
    unittest.main()
