#!/usr/bin/env python3
"""
Observation Pipeline

Unbounded FIFO carrying tracker events to the recorder thread. Any number of
threads may put; one thread gets. Closing the pipeline is how the consumer
learns that its producer is gone.
"""

import queue
import logging

from .events import ProbeEvent

logger = logging.getLogger(__name__)

_CLOSED = object()  # Sentinel


class PipelineClosed(Exception):
    """The producing side of the pipeline went away"""


class ObservationPipeline:
    """
    Multi-producer / single-consumer event channel.

    Usage:
        pipeline = ObservationPipeline()
        pipeline.put(event)          # listener thread
        event = pipeline.get()       # recorder thread, blocks
        pipeline.close()             # listener exiting
    """

    def __init__(self):
        self._queue: queue.SimpleQueue = queue.SimpleQueue()
        self.closed = False
        self.events_put = 0

    def put(self, event: ProbeEvent):
        if self.closed:
            raise PipelineClosed("Pipeline is closed")
        self._queue.put(event)
        self.events_put += 1

    def get(self, timeout=None) -> ProbeEvent:
        """
        Block until the next event.

        Raises:
            PipelineClosed: once every event put before close() was consumed
            queue.Empty: if timeout is given and nothing arrived
        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # Leave the sentinel for any later get()
            self._queue.put(_CLOSED)
            raise PipelineClosed("Producer disconnected from pipeline")
        return item

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._queue.put(_CLOSED)
        logger.debug(f"Pipeline closed after {self.events_put} events")

    def qsize(self) -> int:
        return self._queue.qsize()
