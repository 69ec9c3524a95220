#!/usr/bin/env python3
"""
Wire Codec - Probe packet header

Fixed big-endian layout shared by the generator and the listener:

    offset 0   u64  sequence number
    offset 8   u64  send timestamp (ns since Unix epoch)
    offset 16  ...  zero padding up to the configured packet size

Decoders only look at the first 16 bytes.
"""

import struct
from typing import Tuple

HEADER = struct.Struct('>QQ')
HEADER_SIZE = HEADER.size  # 16 bytes


class MalformedPacket(ValueError):
    """Datagram too short to carry a probe header"""


def encode(sequence: int, send_time_ns: int, size: int) -> bytes:
    """
    Build a probe datagram.
    
    Args:
        sequence: Sender sequence number (u64)
        send_time_ns: Send timestamp in nanoseconds since epoch (u64)
        size: Total datagram size in bytes (>= 16)
        
    Returns:
        Exactly `size` bytes, header followed by zero padding
    """
    if size < HEADER_SIZE:
        raise ValueError(f"Packet size {size} is below the {HEADER_SIZE}-byte header")
    
    buf = bytearray(size)
    HEADER.pack_into(buf, 0, sequence, send_time_ns)
    return bytes(buf)


def decode(buf: bytes) -> Tuple[int, int]:
    """
    Parse a probe datagram.
    
    Returns:
        (sequence, send_time_ns)
        
    Raises:
        MalformedPacket: if fewer than 16 bytes were received
    """
    if len(buf) < HEADER_SIZE:
        raise MalformedPacket(
            f"Received {len(buf)} bytes, expected at least {HEADER_SIZE}"
        )
    return HEADER.unpack_from(buf, 0)
