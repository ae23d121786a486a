import math
import numpy as np
import pytest

from sogdecoder.errors import (
    BadMagicError, TruncatedError, InvalidBoundsError, InvalidBitDepthError,
    InvalidHeaderSizeError, FormatError,
)
from sogdecoder.formats.sog import parse_header, pack_header
from sogdecoder.structures import FLAG_COV_RANGE, DEFAULT_COV_RANGE


def test_literal_header_fields(header_bytes):
    header = parse_header(header_bytes(version=1, header_size=64, gaussian_count=123456, chunk_count=12))

    assert header.magic == 'SOG0'
    assert header.version == 1
    assert header.header_size == 64
    assert header.gaussian_count == 123456
    assert header.chunk_count == 12


def test_quantization_bounds_and_flags(header_bytes):
    header = parse_header(header_bytes(
        bits=(11, 5, 9, 3),
        bounds_min=(-1.5, -2.0, 0.25),
        bounds_max=(1.5, 4.0, 0.25),
        flags=0xABCD0000,
    ))

    q = header.quantization
    assert (q.pos_bits, q.color_bits, q.cov_bits, q.weight_bits) == (11, 5, 9, 3)
    assert header.bounds_min == (-1.5, -2.0, 0.25)
    assert header.bounds_max == (1.5, 4.0, 0.25)
    # Unknown flag bits are surfaced untouched
    assert header.flags == 0xABCD0000
    assert header.cov_range == DEFAULT_COV_RANGE


def test_unknown_version_is_accepted(header_bytes):
    assert parse_header(header_bytes(version=0xFFFF)).version == 0xFFFF


def test_bad_magic_regardless_of_remaining_bytes(rng, header_bytes):
    for magic in (b'sog0', b'SOG1', b'\x00\x00\x00\x00', b' SOG'):
        with pytest.raises(BadMagicError):
            parse_header(header_bytes(magic=magic))

    for size in (4, 10, 64, 200):
        tail = rng.integers(0, 256, size=size - 4, dtype=np.uint8).tobytes()
        with pytest.raises(BadMagicError):
            parse_header(b'SOGX' + tail)


def test_bad_magic_is_a_format_error():
    with pytest.raises(FormatError):
        parse_header(b'NOPE' + bytes(60))


def test_short_buffer_is_truncated(header_bytes):
    with pytest.raises(TruncatedError):
        parse_header(b'SO')
    with pytest.raises(TruncatedError):
        parse_header(header_bytes()[:48])


def test_header_size_below_prologue(header_bytes):
    with pytest.raises(InvalidHeaderSizeError):
        parse_header(header_bytes(header_size=63))


def test_padded_header_size_is_accepted(header_bytes):
    assert parse_header(header_bytes(header_size=256)).header_size == 256


@pytest.mark.parametrize('bits', [(0, 8, 12, 8), (16, 33, 12, 8), (16, 8, 0, 8), (16, 8, 12, 255)])
def test_bit_depth_out_of_range(header_bytes, bits):
    with pytest.raises(InvalidBitDepthError):
        parse_header(header_bytes(bits=bits))


def test_bit_depth_limits_accepted(header_bytes):
    q = parse_header(header_bytes(bits=(1, 32, 1, 32))).quantization
    assert (q.pos_bits, q.color_bits) == (1, 32)


def test_inverted_bounds(header_bytes):
    with pytest.raises(InvalidBoundsError):
        parse_header(header_bytes(bounds_min=(0.0, 2.0, 0.0), bounds_max=(1.0, 1.0, 1.0)))


def test_nan_bounds(header_bytes):
    with pytest.raises(InvalidBoundsError):
        parse_header(header_bytes(bounds_min=(math.nan, 0.0, 0.0)))


def test_covariance_range_flag(header_bytes):
    header = parse_header(header_bytes(flags=FLAG_COV_RANGE, cov_range=(-0.5, 2.0)))
    assert header.has_cov_range
    assert header.cov_range == (-0.5, 2.0)


def test_inverted_covariance_range(header_bytes):
    with pytest.raises(InvalidBoundsError):
        parse_header(header_bytes(flags=FLAG_COV_RANGE, cov_range=(1.0, -1.0)))


def test_pack_header_matches_parser(header_bytes):
    raw = header_bytes(version=3, gaussian_count=10, chunk_count=2, bits=(12, 6, 10, 4),
                       bounds_min=(-1.0, -2.0, -3.0), bounds_max=(1.0, 2.0, 3.0),
                       flags=FLAG_COV_RANGE | 0x100, cov_range=(-0.25, 0.75))
    header = parse_header(raw)

    assert pack_header(header) == raw
    assert parse_header(pack_header(header)) == header
