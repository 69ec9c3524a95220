#!/usr/bin/env python3
"""
Probe runner

Starts the probe's units as threads and waits for the first one to exit:

    generator   PacketGenerator.run()
    listener    ReceiverListener.run() (tracker runs inside it)
    recorder    Recorder.run()

Units only ever exit by failing, so the first exit ends the run.
"""

import queue
import logging
import threading
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .config import Config
from .generator import PacketGenerator
from .listener import ReceiverListener
from .pipeline import ObservationPipeline
from .recorder import Recorder
from .tracker import SequenceTracker

logger = logging.getLogger(__name__)


class RunMode(Enum):
    """Which side(s) of the probe to run"""
    CLIENT = "client"      # Generator only
    SERVER = "server"      # Listener + recorder
    BOTH = "both"

    @classmethod
    def from_flags(cls, client: bool, server: bool) -> 'RunMode':
        if client and not server:
            return cls.CLIENT
        if server and not client:
            return cls.SERVER
        return cls.BOTH


class Unit:
    """A named thread whose exit (and exception, if any) is reported to the runner"""

    def __init__(self, name: str, target: Callable[[], None],
                 exits: 'queue.SimpleQueue[Unit]',
                 on_exit: Optional[Callable[[], None]] = None):
        self.name = name
        self.target = target
        self.exits = exits
        self.on_exit = on_exit
        self.error: Optional[Exception] = None
        self.thread = threading.Thread(target=self._main, name=name, daemon=True)

    def start(self):
        self.thread.start()

    def _main(self):
        try:
            self.target()
        except Exception as e:
            self.error = e
            logger.error(f"{self.name} failed: {type(e).__name__}: {e}")
        finally:
            self.exits.put(self)
            if self.on_exit is not None:
                self.on_exit()


def build_units(config: Config, mode: RunMode,
                exits: 'queue.SimpleQueue[Unit]') -> List[Unit]:
    units = []

    if mode in (RunMode.SERVER, RunMode.BOTH):
        pipeline = ObservationPipeline()
        tracker = SequenceTracker(
            emit=pipeline.put,
            loss_timeout=config.loss_timeout,
            max_loss_span=config.max_loss_span,
        )
        listener = ReceiverListener(
            config.remote, config.packet_size, tracker,
            namespace=config.network_namespace,
        )
        recorder = Recorder(pipeline, config.output_path,
                            summary_interval=config.summary_interval)

        units.append(Unit('recorder', recorder.run, exits))
        # Pipeline closes only after the listener's exit is queued
        units.append(Unit('listener', listener.run, exits, on_exit=pipeline.close))

    if mode in (RunMode.CLIENT, RunMode.BOTH):
        generator = PacketGenerator(config.remote, config.packet_rate, config.packet_size)
        units.append(Unit('generator', generator.run, exits))

    return units


def run(config: Config, mode: RunMode) -> Tuple[int, Optional[Unit]]:
    """
    Run the probe until one unit exits.

    Returns:
        (exit_code, unit) where unit is the first one to exit
    """
    logger.info(f"Running with config: {config}")
    logger.info(f"Mode: {mode.value}")

    exits: 'queue.SimpleQueue[Unit]' = queue.SimpleQueue()
    units = build_units(config, mode, exits)
    for unit in units:
        unit.start()

    first = exits.get()
    if first.error is None:
        logger.error(f"{first.name} stopped unexpectedly")
    else:
        logger.error(f"Stopping probe: {first.name} exited with {type(first.error).__name__}")
    return 1, first
