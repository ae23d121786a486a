import struct
import numpy as np
import pytest

from sogdecoder.structures import GaussianChunk, Quantization
from sogdecoder.utils import config


@pytest.fixture(autouse=True)
def quiet_debug():
    config.DEBUG = False
    yield
    config.DEBUG = False


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def header_bytes():
    """Builds a raw 64-byte prologue field by field, independent of pack_header."""
    def build(magic=b'SOG0', version=1, header_size=64, gaussian_count=0, chunk_count=0,
              bits=(16, 8, 12, 8), bounds_min=(0.0, 0.0, 0.0), bounds_max=(1.0, 1.0, 1.0),
              flags=0, cov_range=None, size=64):
        buf = bytearray(size)
        buf[0:4] = magic
        struct.pack_into('<HHII', buf, 4, version, header_size, gaussian_count, chunk_count)
        struct.pack_into('<BBBB', buf, 16, *bits)
        struct.pack_into('<3f', buf, 20, *bounds_min)
        struct.pack_into('<3f', buf, 32, *bounds_max)
        struct.pack_into('<I', buf, 44, flags)
        if cov_range is not None:
            struct.pack_into('<2f', buf, 48, *cov_range)
        return bytes(buf)
    return build


@pytest.fixture
def make_chunk(rng):
    """Random but well-formed splats: positions in [-5, 5], SPD covariances, RGBA bytes, weights in [0, 1]."""
    def build(count, chunk_id=0, index_offset=0):
        positions = rng.uniform(-5.0, 5.0, size=(count, 3)).astype(np.float32)

        variances = rng.uniform(0.001, 0.05, size=(count, 3))
        off = rng.uniform(-0.0005, 0.0005, size=(count, 3))
        covariances = np.column_stack((
            variances[:, 0], off[:, 0], off[:, 1],
            variances[:, 1], off[:, 2], variances[:, 2],
        )).astype(np.float32)

        colors = rng.integers(0, 256, size=(count, 4), dtype=np.uint8)
        weights = rng.uniform(0.0, 1.0, size=count).astype(np.float32)
        return GaussianChunk(chunk_id=chunk_id, index_offset=index_offset, count=count,
                             positions=positions, covariances=covariances, colors=colors, weights=weights)
    return build


@pytest.fixture
def default_quantization():
    return Quantization(pos_bits=16, color_bits=8, cov_bits=12, weight_bits=8)
