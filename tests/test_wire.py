import unittest

from udp_probe.wire import encode, decode, MalformedPacket, HEADER_SIZE


class TestWireCodec(unittest.TestCase):

    def test_layout_is_big_endian(self):
        packet = encode(1, 2, 16)
        self.assertEqual(packet, b'\x00' * 7 + b'\x01' + b'\x00' * 7 + b'\x02')

    def test_padding_is_zero_filled_to_size(self):
        packet = encode(7, 123456789, 100)
        self.assertEqual(len(packet), 100)
        self.assertEqual(packet[HEADER_SIZE:], b'\x00' * 84)

    def test_round_trip_extremes(self):
        for seq, ts, size in [(0, 0, 16), (2**64 - 1, 2**64 - 1, 16),
                              (42, 1_700_000_000_123_456_789, 1500)]:
            self.assertEqual(decode(encode(seq, ts, size)), (seq, ts))

    def test_decode_ignores_trailing_bytes(self):
        packet = encode(5, 10, 16) + b'\xff' * 40
        self.assertEqual(decode(packet), (5, 10))

    def test_decode_short_buffer_is_malformed(self):
        with self.assertRaises(MalformedPacket):
            decode(b'\x00' * 15)
        with self.assertRaises(MalformedPacket):
            decode(b'')

    def test_encode_rejects_small_size(self):
        with self.assertRaises(ValueError):
            encode(0, 0, 15)


if __name__ == '__main__':
    unittest.main()
