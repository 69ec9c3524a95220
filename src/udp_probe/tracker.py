#!/usr/bin/env python3
"""
Sequence Tracker / Loss Detector

Reconstructs ordering and loss from the unordered datagram stream seen by
the listener. Runs synchronously inside the listener's receive loop.

Per datagram, in order:
    1. Sweep: pending sequences older than the loss timeout are reported lost
    2. Session boundary: sequence 0, or a backwards sequence after an idle
       gap longer than the loss timeout, restarts the expected counter;
       sequence 0 from a different source port is a sender restart
       (ResetEvent, pending entries dropped)
    3. Reconcile against the expected sequence:
       - match: advance by one
       - pending hit: late arrival, resolve silently
       - behind: already resolved (arrived or timed out), no-op
       - jump ahead: mark every skipped sequence pending, advance past it
    4. Emit an Observation carrying the expected value sampled before step 3

Loss is never declared at gap time. A skipped sequence only becomes a
LossEvent if it is still pending when the timeout expires, so reordering
within the timeout is reported as out-of-order instead of lost.
"""

import time
import logging
from typing import Callable, Dict, Optional, Tuple

from .events import Observation, LossEvent, ResetEvent, ProbeEvent

logger = logging.getLogger(__name__)

DEFAULT_LOSS_TIMEOUT = 0.5          # seconds
DEFAULT_MAX_LOSS_SPAN = 1_000_000   # sequences


class LossSpanExceeded(RuntimeError):
    """Gap between expected and received sequence is implausibly large"""

    def __init__(self, sequence: int, expected: int, span: int, ceiling: int):
        self.sequence = sequence
        self.expected = expected
        self.span = span
        self.ceiling = ceiling
        super().__init__(
            f"Loss span {span} exceeds ceiling {ceiling} "
            f"(received sequence={sequence}, expected={expected}): "
            f"sender is not monotonic or the datagram is corrupt"
        )


class SequenceTracker:
    """
    Per-session expected-sequence state and pending-loss table.

    State is owned by the listener thread; nothing here is locked.

    Example:
        tracker = SequenceTracker(emit=pipeline.put)
        tracker.process(seq, sent_ns, ('10.0.0.1', 40000), 100, recv_ns)
    """

    def __init__(self, emit: Callable[[ProbeEvent], None],
                 loss_timeout: float = DEFAULT_LOSS_TIMEOUT,
                 max_loss_span: int = DEFAULT_MAX_LOSS_SPAN,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize tracker

        Args:
            emit: Called with each event, in production order
            loss_timeout: Seconds a sequence may stay pending before it is lost
            max_loss_span: Largest gap accepted before treating state as corrupt
            clock: Monotonic clock used to age pending entries
        """
        self.emit = emit
        self.loss_timeout = loss_timeout
        self.max_loss_span = max_loss_span
        self.clock = clock

        self.expected_sequence = 0
        self.last_remote: Optional[Tuple[str, int]] = None
        self.pending: Dict[int, float] = {}  # sequence -> first-missed instant
        self.last_arrival: Optional[float] = None

        # Datagrams seen in the current session
        self.packet_number = 0

    def process(self, sequence: int, sent_at_ns: int, remote: Tuple[str, int],
                recv_size: int, received_at_ns: int) -> Observation:
        """
        Account for one decoded datagram and emit the resulting events.

        Returns:
            The Observation that was emitted

        Raises:
            LossSpanExceeded: if the datagram implies an implausible gap
        """
        arrived_at = self.clock()
        idle = (self.last_arrival is not None
                and arrived_at - self.last_arrival > self.loss_timeout)
        self.last_arrival = arrived_at

        self.sweep()
        self._check_session(sequence, remote, idle)

        expected_at_arrival = self.expected_sequence
        self._reconcile(sequence)

        self.packet_number += 1
        observation = Observation(
            sequence_sender=sequence,
            sequence_receiver=expected_at_arrival,
            packet_number=self.packet_number,
            sent_at_ns=sent_at_ns,
            received_at_ns=received_at_ns,
            remote=remote,
            recv_size=recv_size,
        )
        self.emit(observation)
        return observation

    def sweep(self) -> int:
        """
        Report pending sequences whose loss timeout expired.

        Returns:
            Number of LossEvents emitted
        """
        if not self.pending:
            return 0

        now = self.clock()
        expired = sorted(
            seq for seq, missed_at in self.pending.items()
            if now - missed_at > self.loss_timeout
        )
        for seq in expired:
            del self.pending[seq]
            logger.warning(f"Packet with sequence {seq} has been lost")
            self.emit(LossEvent(seq))
        return len(expired)

    def _check_session(self, sequence: int, remote: Tuple[str, int], idle: bool):
        if sequence != 0:
            # Batch whose sequence 0 was dropped: the sequence went backwards
            # after the inter-batch pause
            if (idle and sequence < self.expected_sequence
                    and sequence not in self.pending):
                logger.info(f"New batch starting at sequence={sequence}")
                self.expected_sequence = 0
            return

        if self.last_remote is None:
            self.last_remote = remote
            logger.info(f"First session from {remote[0]}:{remote[1]}")
        elif self.last_remote[1] != remote[1]:
            logger.warning(
                f"Sender restarted: {self.last_remote[0]}:{self.last_remote[1]} "
                f"-> {remote[0]}:{remote[1]}, resetting session"
            )
            # Sequence numbers belong to the old session
            self.pending.clear()
            self.last_remote = remote
            self.expected_sequence = 0
            self.packet_number = 0
            self.emit(ResetEvent(remote))
            return

        # Same sender starting a new batch. A pending 0 is a late arrival
        # from the current batch, not a boundary.
        if 0 not in self.pending:
            self.expected_sequence = 0

    def _reconcile(self, sequence: int):
        expected = self.expected_sequence

        if sequence == expected:
            self.expected_sequence = expected + 1
            return

        if sequence in self.pending:
            del self.pending[sequence]
            logger.warning(f"Packet with sequence={sequence} is out of order")
            return

        if sequence < expected:
            # Already resolved, by an earlier arrival or by timeout
            logger.warning(
                f"Packet with sequence={sequence} arrived after it was resolved "
                f"(expected={expected})"
            )
            return

        total_losses = sequence - expected
        logger.debug(f"Total losses={total_losses}, sequence={sequence}, expected={expected}")
        if total_losses > self.max_loss_span:
            raise LossSpanExceeded(sequence, expected, total_losses, self.max_loss_span)

        missed_at = self.clock()
        for seq in range(expected, sequence):
            self.pending[seq] = missed_at
        self.expected_sequence = sequence + 1

    def get_stats(self) -> dict:
        return {
            'expected_sequence': self.expected_sequence,
            'pending': len(self.pending),
            'packet_number': self.packet_number,
            'last_remote': self.last_remote,
        }
