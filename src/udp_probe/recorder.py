#!/usr/bin/env python3
"""
Recorder - Output log writer

Drains the observation pipeline on its own thread and appends one line per
event to the output file. Every line is flushed immediately; a session reset
truncates the file so each sender session starts a fresh log.
"""

import logging
from pathlib import Path
from typing import Optional, TextIO

from .events import (
    Observation, LossEvent, ResetEvent, ProbeEvent,
    format_observation, format_loss,
)
from .pipeline import ObservationPipeline, PipelineClosed
from .stats import SessionStats, DEFAULT_WINDOW

logger = logging.getLogger(__name__)


class Recorder:
    """
    Single consumer of the observation pipeline.

    Example:
        recorder = Recorder(pipeline, Path('/root/network-test.log'))
        recorder.run()   # returns only by raising
    """

    def __init__(self, pipeline: ObservationPipeline, output_path: Path,
                 summary_interval: int = 1000):
        """
        Initialize recorder

        Args:
            pipeline: Event source
            output_path: Log file, truncated when opened
            summary_interval: Observations between statistics log lines (0 = off)
        """
        self.pipeline = pipeline
        self.output_path = Path(output_path)
        self.summary_interval = summary_interval
        self.file: Optional[TextIO] = None

        # Percentile window spans at least one summary interval
        self.stats_window = max(summary_interval, DEFAULT_WINDOW)
        self.stats = SessionStats(self.stats_window)
        self.lines_written = 0
        self.resets = 0

    def open(self):
        self.file = open(self.output_path, 'w')
        logger.info(f"Recording to {self.output_path}")

    def close(self):
        if self.file is not None:
            self.file.close()
            self.file = None

    def run(self):
        """
        Drain the pipeline until the producer disconnects.

        Raises:
            PipelineClosed: when the listener side is gone
            OSError: on any write failure
        """
        self.open()
        try:
            while True:
                try:
                    event = self.pipeline.get()
                except PipelineClosed as e:
                    logger.error(f"Got error while reading from pipeline: {e}")
                    raise
                self.handle(event)
        finally:
            self.stats.log_summary("Final session")
            self.close()

    def handle(self, event: ProbeEvent):
        if isinstance(event, Observation):
            self._write_line(format_observation(event))
            self.stats.add_observation(event.latency_ns, event.out_of_order)
            if self.summary_interval and self.stats.received % self.summary_interval == 0:
                self.stats.log_summary()
        elif isinstance(event, LossEvent):
            self._write_line(format_loss(event))
            self.stats.add_loss()
        elif isinstance(event, ResetEvent):
            self._truncate()
            self.resets += 1
            self.stats.log_summary("Previous session")
            self.stats = SessionStats(self.stats_window)
        else:
            raise TypeError(f"Unknown pipeline event: {event!r}")

    def _write_line(self, line: str):
        logger.debug(f"Writing to file {self.output_path}: {line}")
        self.file.write(line + "\n")
        self.file.flush()
        self.lines_written += 1

    def _truncate(self):
        # truncate() alone keeps the write offset past EOF
        self.file.seek(0)
        self.file.truncate(0)
        self.file.flush()
        logger.info(f"Session reset, truncated {self.output_path}")
