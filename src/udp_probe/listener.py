#!/usr/bin/env python3
"""
Receiver Listener

Blocking receive loop on the probe's bound UDP socket. Each datagram is
timestamped on return from recvfrom(), decoded and handed to the sequence
tracker before the next read.
"""

import socket
import time
import logging
from typing import Callable, Optional, Tuple

from .config import address_family
from .events import Observation
from .namespace import enter_namespace
from .tracker import SequenceTracker
from .wire import decode

logger = logging.getLogger(__name__)


class ReceiverListener:
    """
    Receives probe datagrams and feeds the tracker.

    Example:
        listener = ReceiverListener(('0.0.0.0', 9000), 100, tracker,
                                    namespace='probe')
        listener.run()   # never returns normally
    """

    def __init__(self, bind_address: Tuple[str, int], packet_size: int,
                 tracker: SequenceTracker, namespace: Optional[str] = None,
                 clock_ns: Callable[[], int] = time.time_ns):
        """
        Initialize listener

        Args:
            bind_address: Local (host, port) to bind
            packet_size: Maximum bytes read per datagram
            tracker: Sequence tracker run for every datagram
            namespace: Network namespace entered before binding, if any
            clock_ns: Wall clock for receive timestamps (ns since epoch)
        """
        self.bind_address = bind_address
        self.packet_size = packet_size
        self.tracker = tracker
        self.namespace = namespace
        self.clock_ns = clock_ns

        self.socket: Optional[socket.socket] = None
        self.address: Optional[Tuple[str, int]] = None
        self.packets_received = 0

    def open(self):
        """Enter the namespace (if configured) and bind the socket"""
        if self.namespace:
            enter_namespace(self.namespace)

        sock = socket.socket(address_family(self.bind_address[0]), socket.SOCK_DGRAM)
        try:
            sock.bind(self.bind_address)
        except OSError:
            sock.close()
            raise
        self.socket = sock
        self.address = sock.getsockname()[:2]
        logger.info(f"Listening on {self.address[0]}:{self.address[1]}")

    def close(self):
        if self.socket is not None:
            self.socket.close()
            self.socket = None

    def run(self):
        """
        Receive forever.

        Raises:
            MalformedPacket: on a datagram shorter than the header
            LossSpanExceeded: on an implausible sequence gap
            OSError: on socket failure
        """
        if self.socket is None:
            self.open()
        try:
            while True:
                self.receive_one()
        finally:
            self.close()

    def receive_one(self) -> Observation:
        data, remote = self.socket.recvfrom(self.packet_size)
        received_at = self.clock_ns()
        remote = remote[:2]  # drop IPv6 flowinfo/scope
        self.packets_received += 1

        logger.debug(f"Received packet: size={len(data)}, remote={remote}")
        sequence, sent_at = decode(data)
        return self.tracker.process(sequence, sent_at, remote, len(data), received_at)
