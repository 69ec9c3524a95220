import unittest

from udp_probe.events import Observation, LossEvent, format_observation, format_loss
from udp_probe.report import summarize_lines, format_summary
from udp_probe.stats import SessionStats


def line(seq, expected, latency_ns):
    return format_observation(Observation(
        sequence_sender=seq, sequence_receiver=expected, packet_number=seq + 1,
        sent_at_ns=1_700_000_000_000_000_000,
        received_at_ns=1_700_000_000_000_000_000 + latency_ns,
        remote=('10.0.0.1', 40000), recv_size=100,
    ))


class TestSessionStats(unittest.TestCase):

    def test_empty(self):
        summary = SessionStats().summary()
        self.assertEqual(summary['received'], 0)
        self.assertEqual(summary['loss_percent'], 0.0)
        self.assertIsNone(summary['latency_mean_ms'])

    def test_latency_distribution(self):
        stats = SessionStats()
        for ms in [1, 2, 3, 4]:
            stats.add_observation(ms * 1_000_000, out_of_order=False)
        stats.add_loss()
        summary = stats.summary()
        self.assertEqual(summary['latency_min_ms'], 1.0)
        self.assertEqual(summary['latency_max_ms'], 4.0)
        self.assertAlmostEqual(summary['latency_mean_ms'], 2.5)
        self.assertAlmostEqual(summary['latency_p50_ms'], 2.5)
        self.assertAlmostEqual(summary['loss_percent'], 20.0)

    def test_latency_window_is_bounded(self):
        stats = SessionStats(window=100)
        for ms in range(1, 1001):
            stats.add_observation(ms * 1_000_000, out_of_order=False)
        self.assertEqual(len(stats.latencies_ns), 100)
        summary = stats.summary()
        self.assertEqual(summary['received'], 1000)
        # Running values cover every sample, percentiles only the window
        self.assertEqual(summary['latency_min_ms'], 1.0)
        self.assertEqual(summary['latency_max_ms'], 1000.0)
        self.assertAlmostEqual(summary['latency_mean_ms'], 500.5)
        self.assertAlmostEqual(summary['latency_p50_ms'], 950.5)

    def test_unbounded_window(self):
        stats = SessionStats(window=None)
        for ms in range(1, 201):
            stats.add_observation(ms * 1_000_000, out_of_order=False)
        self.assertEqual(len(stats.latencies_ns), 200)


class TestReport(unittest.TestCase):

    def test_summarize_recorder_output(self):
        lines = [
            line(0, 0, 1_000_000),
            line(1, 1, 2_000_000),
            line(3, 2, 3_000_000),
            format_loss(LossEvent(2)),
            "garbage",
            "",
        ]
        summary = summarize_lines(lines)
        self.assertEqual(summary['received'], 3)
        self.assertEqual(summary['lost'], 1)
        self.assertEqual(summary['out_of_order'], 1)
        self.assertEqual(summary['unparsed'], 1)
        self.assertAlmostEqual(summary['latency_mean_ms'], 2.0)

    def test_negative_latency_parsed(self):
        summary = summarize_lines([line(0, 0, -500_000)])
        self.assertAlmostEqual(summary['latency_min_ms'], -0.5)

    def test_format_summary(self):
        text = format_summary(summarize_lines([line(0, 0, 1_000_000)]))
        self.assertIn("Received:      1", text)
        self.assertIn("Latency mean:  1.000 ms", text)


if __name__ == '__main__':
    unittest.main()
