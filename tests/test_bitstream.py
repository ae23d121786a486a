import numpy as np
import pytest

from sogdecoder.errors import TruncatedError
from sogdecoder.processing.bitstream import BitReader, BitWriter


def test_reads_lsb_first_across_byte_boundary():
    reader = BitReader(bytes([0b10110101, 0b00000011]))

    assert reader.read(3) == 0b101
    assert reader.read(4) == 0b0110
    # bit 7 of byte 0, then bits 0..3 of byte 1
    assert reader.read(5) == 0b00111
    assert reader.position == 12
    assert reader.bits_remaining == 4


def test_read_full_width_values():
    data = bytes([0x78, 0x56, 0x34, 0x12, 0xFF])
    reader = BitReader(data)
    assert reader.read(32) == 0x12345678
    assert reader.read(8) == 0xFF


def test_read_past_end_raises_and_keeps_cursor():
    reader = BitReader(bytes([0xFF]))
    reader.read(5)
    with pytest.raises(TruncatedError):
        reader.read(4)
    assert reader.position == 5
    assert reader.read(3) == 0b111


def test_invalid_width():
    reader = BitReader(bytes(8))
    with pytest.raises(ValueError):
        reader.read(0)
    with pytest.raises(ValueError):
        reader.read(33)


def test_read_records_matches_sequential_reads(rng):
    widths = [7, 13, 1, 32, 5]
    count = 50
    data = rng.integers(0, 256, size=(sum(widths) * count + 7) // 8 + 3, dtype=np.uint8).tobytes()

    sequential = BitReader(data)
    sequential.read(3)
    expected = [[sequential.read(w) for w in widths] for _ in range(count)]

    block = BitReader(data)
    block.read(3)
    values = block.read_records(widths, count)

    assert values.shape == (count, len(widths))
    assert values.tolist() == expected
    assert block.position == sequential.position


def test_read_records_truncated():
    reader = BitReader(bytes(3))
    with pytest.raises(TruncatedError):
        reader.read_records([8, 9], 2)
    assert reader.position == 0


def test_read_records_empty():
    values = BitReader(b'').read_records([4, 4], 0)
    assert values.shape == (0, 2)


def test_writer_roundtrip_mixed_calls():
    writer = BitWriter()
    writer.write(5, 3)
    writer.write_records(np.array([[1, 1000], [0, 4095]]), [1, 12])
    writer.write(0xDEADBEEF, 32)
    data = writer.getvalue()

    assert len(data) == (3 + 2 * 13 + 32 + 7) // 8
    reader = BitReader(data)
    assert reader.read(3) == 5
    assert [reader.read(1), reader.read(12), reader.read(1), reader.read(12)] == [1, 1000, 0, 4095]
    assert reader.read(32) == 0xDEADBEEF


def test_writer_rejects_values_that_do_not_fit():
    writer = BitWriter()
    with pytest.raises(ValueError):
        writer.write(8, 3)
    with pytest.raises(ValueError):
        writer.write_records(np.array([[16]]), [4])


def test_empty_writer():
    assert BitWriter().getvalue() == b''
