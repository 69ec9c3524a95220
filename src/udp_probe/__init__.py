"""
UDP Probe - Packet loss, reordering and one-way latency measurement

A rate-controlled sender stamps each datagram with a sequence number and a
send time; the receiver reconstructs ordering and loss from what arrives and
writes one line per event to an output log.

Quick Start:
    udp-probe run --remote 10.0.0.2:9000 --rate 100 --size 512 \\
        --network-namespace probe --output /tmp/probe.log
    udp-probe summary /tmp/probe.log

Threads:
    generator -> network -> listener (+ tracker) -> pipeline -> recorder
"""

__version__ = "0.1.0"
__author__ = "UDP Probe Project"

from .wire import encode, decode, MalformedPacket, HEADER_SIZE
from .events import Observation, LossEvent, ResetEvent
from .tracker import SequenceTracker, LossSpanExceeded
from .pipeline import ObservationPipeline, PipelineClosed
from .recorder import Recorder
from .generator import PacketGenerator
from .listener import ReceiverListener
from .namespace import enter_namespace, NamespaceError
from .config import Config, ConfigError, load_config
from .stats import SessionStats
from .runner import RunMode, run

__all__ = [
    # Wire format
    "encode",
    "decode",
    "MalformedPacket",
    "HEADER_SIZE",
    # Events
    "Observation",
    "LossEvent",
    "ResetEvent",
    # Receiver side
    "SequenceTracker",
    "LossSpanExceeded",
    "ObservationPipeline",
    "PipelineClosed",
    "Recorder",
    "ReceiverListener",
    "enter_namespace",
    "NamespaceError",
    # Sender side
    "PacketGenerator",
    # Configuration / orchestration
    "Config",
    "ConfigError",
    "load_config",
    "SessionStats",
    "RunMode",
    "run",
]
