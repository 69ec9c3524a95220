#!/usr/bin/env python3
"""
Packet Generator

Sends sequence-stamped probe datagrams in batches. A batch is `rate`
datagrams sent back to back with sequences 0..rate-1; after each batch the
generator sleeps one second and starts again from sequence 0. The receiver
uses the return to 0 as a batch boundary, and a 0 from a new source port as
a sender restart.
"""

import socket
import time
import logging
from typing import Callable, Optional, Tuple

from .config import address_family
from .wire import encode

logger = logging.getLogger(__name__)

BATCH_PAUSE = 1.0  # seconds between batches


class PacketGenerator:
    """
    Rate-controlled probe sender.

    Example:
        generator = PacketGenerator(('10.0.0.2', 9000), rate=10, packet_size=100)
        generator.run()   # never returns normally
    """

    def __init__(self, remote: Tuple[str, int], rate: int, packet_size: int,
                 sleep: Callable[[float], None] = time.sleep,
                 clock_ns: Callable[[], int] = time.time_ns):
        """
        Initialize generator

        Args:
            remote: Destination (host, port)
            rate: Datagrams per batch, one batch per second
            packet_size: Bytes per datagram (>= 16)
            sleep: Pause function (injectable for tests)
            clock_ns: Wall clock used for send timestamps
        """
        self.remote = remote
        self.rate = rate
        self.packet_size = packet_size
        self.sleep = sleep
        self.clock_ns = clock_ns

        self.socket: Optional[socket.socket] = None
        self.sequence = 0
        self.packets_sent = 0
        self.batches_sent = 0

    def open(self):
        """Bind an ephemeral local endpoint"""
        family = address_family(self.remote[0])
        any_address = '::' if family == socket.AF_INET6 else '0.0.0.0'
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.bind((any_address, 0))
        except OSError:
            sock.close()
            raise
        self.socket = sock
        local = sock.getsockname()
        logger.info(
            f"Sending {self.rate} packets/s of {self.packet_size} bytes "
            f"from port {local[1]} to {self.remote[0]}:{self.remote[1]}"
        )

    def close(self):
        if self.socket is not None:
            self.socket.close()
            self.socket = None

    def run(self):
        """Send batches until the process is terminated"""
        if self.socket is None:
            self.open()
        try:
            while True:
                self.send_batch()
                self.pause()
        finally:
            self.close()

    def run_batches(self, count: int):
        """Send `count` batches, each followed by the inter-batch pause"""
        if self.socket is None:
            self.open()
        for _ in range(count):
            self.send_batch()
            self.pause()

    def send_batch(self) -> int:
        """
        Send one batch of `rate` datagrams, sequences 0..rate-1.

        Returns:
            Number of datagrams sent
        """
        for _ in range(self.rate):
            self.send_one()
        self.batches_sent += 1
        logger.debug(f"Batch {self.batches_sent} sent ({self.rate} packets)")
        self.sequence = 0
        return self.rate

    def send_one(self):
        packet = encode(self.sequence, self.clock_ns(), self.packet_size)
        # No retry: a failed send propagates and ends the generator
        self.socket.sendto(packet, self.remote)
        logger.debug(f"Sent packet seq={self.sequence} size={len(packet)} to {self.remote}")
        self.sequence += 1
        self.packets_sent += 1

    def pause(self):
        self.sleep(BATCH_PAUSE)
