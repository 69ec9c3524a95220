#!/usr/bin/env python3
"""
Probe Events

Records carried from the sequence tracker to the recorder. The three kinds
travel over a single pipeline so their relative order is preserved.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Tuple, Union


@dataclass(frozen=True)
class Observation:
    """One received, decoded datagram"""
    sequence_sender: int        # Sequence stamped by the generator
    sequence_receiver: int      # Sequence the tracker expected on arrival
    packet_number: int          # 1-based count of datagrams in this session
    sent_at_ns: int             # Sender clock, ns since epoch
    received_at_ns: int         # Receiver clock, ns since epoch
    remote: Tuple[str, int]     # Sender (ip, port)
    recv_size: int              # Bytes received

    @property
    def out_of_order(self) -> bool:
        return self.sequence_sender != self.sequence_receiver

    @property
    def latency_ns(self) -> int:
        return self.received_at_ns - self.sent_at_ns

    @property
    def latency_ms(self) -> float:
        return self.latency_ns / 1_000_000


@dataclass(frozen=True)
class LossEvent:
    """A pending sequence number whose loss timeout expired"""
    sequence: int


@dataclass(frozen=True)
class ResetEvent:
    """The sender restarted (sequence 0 from a new source port)"""
    remote: Tuple[str, int]


ProbeEvent = Union[Observation, LossEvent, ResetEvent]


def format_clock(timestamp_ns: int) -> str:
    """Render ns-since-epoch as HH:MM:SS.nnnnnnnnn (UTC)"""
    secs, nanos = divmod(timestamp_ns, 1_000_000_000)
    wall = datetime.fromtimestamp(secs, tz=timezone.utc)
    return f"{wall:%H:%M:%S}.{nanos:09d}"


def format_observation(obs: Observation) -> str:
    return (
        f"ooo={'y' if obs.out_of_order else 'n'}, "
        f"pck_nbr={obs.packet_number}, "
        f"seq_sent={obs.sequence_sender}, "
        f"seq_recv={obs.sequence_receiver}, "
        f"sent_at={format_clock(obs.sent_at_ns)}, "
        f"recv_at={format_clock(obs.received_at_ns)}, "
        f"size={obs.recv_size}, "
        f"time_ms={obs.latency_ms}ms, "
        f"time_ns={obs.latency_ns}ns, "
        f"remote={obs.remote[0]}:{obs.remote[1]}"
    )


def format_loss(event: LossEvent) -> str:
    return f"lost=yes, seq_recv={event.sequence}"
