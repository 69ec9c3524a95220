#!/usr/bin/env python3
"""
Session Statistics

Running counts and one-way latency distribution for the current session.
Min/mean/max cover every sample; percentiles cover the most recent window.
"""

import logging
from collections import deque
from typing import Deque, Dict, Any, Optional

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 10_000  # latency samples kept for percentiles


class SessionStats:
    """Accumulates per-session received/lost/out-of-order counts and latencies"""

    def __init__(self, window: Optional[int] = DEFAULT_WINDOW):
        """
        Args:
            window: Latency samples kept for percentiles (None = unbounded)
        """
        self.received = 0
        self.out_of_order = 0
        self.lost = 0
        self.latencies_ns: Deque[int] = deque(maxlen=window)

        self.latency_min_ns: Optional[int] = None
        self.latency_max_ns: Optional[int] = None
        self.latency_sum_ns = 0

    def add_observation(self, latency_ns: int, out_of_order: bool):
        self.received += 1
        if out_of_order:
            self.out_of_order += 1
        self.latencies_ns.append(latency_ns)

        self.latency_sum_ns += latency_ns
        if self.latency_min_ns is None or latency_ns < self.latency_min_ns:
            self.latency_min_ns = latency_ns
        if self.latency_max_ns is None or latency_ns > self.latency_max_ns:
            self.latency_max_ns = latency_ns

    def add_loss(self):
        self.lost += 1

    @property
    def loss_percent(self) -> float:
        total = self.received + self.lost
        return 100.0 * self.lost / total if total else 0.0

    def summary(self) -> Dict[str, Any]:
        """
        Summarize the session.

        Latency fields are in milliseconds and None when nothing was received.
        """
        result: Dict[str, Any] = {
            'received': self.received,
            'lost': self.lost,
            'out_of_order': self.out_of_order,
            'loss_percent': self.loss_percent,
            'latency_min_ms': None,
            'latency_mean_ms': None,
            'latency_p50_ms': None,
            'latency_p99_ms': None,
            'latency_max_ms': None,
        }
        if not self.received:
            return result

        window_ms = np.fromiter(self.latencies_ns, dtype=np.float64,
                                count=len(self.latencies_ns)) / 1e6
        result.update({
            'latency_min_ms': self.latency_min_ns / 1e6,
            'latency_mean_ms': self.latency_sum_ns / self.received / 1e6,
            'latency_p50_ms': float(np.percentile(window_ms, 50)),
            'latency_p99_ms': float(np.percentile(window_ms, 99)),
            'latency_max_ms': self.latency_max_ns / 1e6,
        })
        return result

    def log_summary(self, label: str = "Session"):
        s = self.summary()
        if s['latency_mean_ms'] is None:
            logger.info(f"{label}: received=0, lost={s['lost']}")
            return
        logger.info(
            f"{label}: received={s['received']}, lost={s['lost']} "
            f"({s['loss_percent']:.2f}%), out_of_order={s['out_of_order']}, "
            f"latency ms min/mean/p50/p99/max="
            f"{s['latency_min_ms']:.3f}/{s['latency_mean_ms']:.3f}/"
            f"{s['latency_p50_ms']:.3f}/{s['latency_p99_ms']:.3f}/"
            f"{s['latency_max_ms']:.3f}"
        )
