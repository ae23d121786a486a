"""
SOG Decoder
Copyright (c) 2026 SOG Decoder contributors

This software is released under the MIT License.
For more information about the license, please see the LICENSE file.
"""

import numpy as np
from ..errors import TruncatedError

MAX_BITS = 32


class BitReader:
    """
    Sequential LSB-first cursor over a bit-packed byte buffer.

    Stream bit p is bit (p % 8) of byte (p // 8); the first bit read is the
    least significant bit of the returned value. The cursor is owned by a
    single decode call and only ever moves forward.
    """

    def __init__(self, data):
        self._data = memoryview(data).cast('B')
        self._byte = 0
        self._bit = 0

    @property
    def position(self):
        """Current cursor position in bits."""
        return self._byte * 8 + self._bit

    @property
    def bits_remaining(self):
        return len(self._data) * 8 - self.position

    def _require(self, nbits):
        if nbits > self.bits_remaining:
            raise TruncatedError(
                f"Need {nbits} bits at bit offset {self.position}, only {self.bits_remaining} available"
            )

    def read(self, nbits):
        if not 1 <= nbits <= MAX_BITS:
            raise ValueError(f"Bit width must be in [1, {MAX_BITS}], got {nbits}")
        self._require(nbits)

        value = 0
        filled = 0
        while filled < nbits:
            take = min(8 - self._bit, nbits - filled)
            chunk = (self._data[self._byte] >> self._bit) & ((1 << take) - 1)
            value |= chunk << filled
            filled += take
            self._bit += take
            if self._bit == 8:
                self._bit = 0
                self._byte += 1
        return value

    def read_records(self, widths, count):
        """
        Reads `count` consecutive records, each made of components with the given
        bit widths in order, and returns them as a (count, len(widths)) uint64 array.

        Equivalent to calling read() for every component of every record, but
        vectorized: each value is gathered from the (at most) 5 bytes it spans.
        """
        widths = np.asarray(widths, dtype=np.int64)
        if np.any(widths < 1) or np.any(widths > MAX_BITS):
            raise ValueError(f"Bit widths must be in [1, {MAX_BITS}]")

        record_bits = int(widths.sum())
        total_bits = record_bits * count
        self._require(total_bits)
        if count == 0:
            return np.zeros((0, len(widths)), dtype=np.uint64)

        start = self.position
        component_offsets = np.concatenate(([0], np.cumsum(widths)[:-1]))
        bit_pos = start + np.arange(count, dtype=np.int64)[:, None] * record_bits + component_offsets[None, :]

        # Zero padding so the 5-byte window never runs past the buffer
        padded = np.concatenate((np.frombuffer(self._data, dtype=np.uint8), np.zeros(5, dtype=np.uint8)))

        byte_idx = bit_pos >> 3
        shift = (bit_pos & 7).astype(np.uint64)
        window = np.zeros(bit_pos.shape, dtype=np.uint64)
        for k in range(5):
            window |= padded[byte_idx + k].astype(np.uint64) << np.uint64(8 * k)

        masks = ((np.uint64(1) << widths.astype(np.uint64)) - np.uint64(1))[None, :]
        values = (window >> shift) & masks

        end = start + total_bits
        self._byte, self._bit = end >> 3, end & 7
        return values


class BitWriter:
    """LSB-first bit packer, the inverse of BitReader."""

    def __init__(self):
        self._parts = []
        self._nbits = 0

    @property
    def position(self):
        return self._nbits

    def write(self, value, nbits):
        if not 1 <= nbits <= MAX_BITS:
            raise ValueError(f"Bit width must be in [1, {MAX_BITS}], got {nbits}")
        value = int(value)
        if value < 0 or value >> nbits:
            raise ValueError(f"Value {value} does not fit in {nbits} bits")
        bits = (value >> np.arange(nbits, dtype=np.uint64)) & 1
        self._parts.append(bits.astype(np.uint8))
        self._nbits += nbits

    def write_records(self, values, widths):
        """
        Appends a (count, len(widths)) array of unsigned integers, record by record,
        each component packed with its width.
        """
        values = np.asarray(values, dtype=np.uint64)
        widths = [int(w) for w in widths]
        if values.ndim != 2 or values.shape[1] != len(widths):
            raise ValueError(f"Expected a (count, {len(widths)}) array, got shape {values.shape}")
        if len(values) == 0:
            return

        columns = []
        for j, w in enumerate(widths):
            if not 1 <= w <= MAX_BITS:
                raise ValueError(f"Bit width must be in [1, {MAX_BITS}], got {w}")
            if np.any(values[:, j] >> np.uint64(w)):
                raise ValueError(f"Component {j} has values that do not fit in {w} bits")
            shifts = np.arange(w, dtype=np.uint64)[None, :]
            columns.append(((values[:, j:j + 1] >> shifts) & np.uint64(1)).astype(np.uint8))

        bits = np.hstack(columns).reshape(-1)
        self._parts.append(bits)
        self._nbits += len(bits)

    def getvalue(self):
        if not self._parts:
            return b''
        bits = np.concatenate(self._parts)
        return np.packbits(bits, bitorder='little').tobytes()
