"""
SOG Decoder
Copyright (c) 2026 SOG Decoder contributors

This software is released under the MIT License.
For more information about the license, please see the LICENSE file.
"""

from dataclasses import dataclass, field
from typing import Tuple
import numpy as np
from .utils.utility_functions import debug_print

SOG_MAGIC = b'SOG0'
HEADER_PROLOGUE_SIZE = 64

# Flag bit 0: the prologue carries the covariance range at bytes 48..56
FLAG_COV_RANGE = 0x1

DEFAULT_COV_RANGE = (-1.0, 1.0)
WEIGHT_RANGE = (0.0, 1.0)

COV_FIELDS = ['cov_xx', 'cov_xy', 'cov_xz', 'cov_yy', 'cov_yz', 'cov_zz']
COLOR_FIELDS = ['red', 'green', 'blue', 'alpha']


@dataclass(frozen=True)
class Quantization:
    pos_bits: int
    color_bits: int
    cov_bits: int
    weight_bits: int

    def as_tuple(self):
        return (self.pos_bits, self.color_bits, self.cov_bits, self.weight_bits)

    def splat_layout(self):
        """
        Per-splat component bit widths in wire order:
        3 position, 6 covariance, 4 color, 1 weight.
        """
        return [self.pos_bits] * 3 + [self.cov_bits] * 6 + [self.color_bits] * 4 + [self.weight_bits]

    def bits_per_splat(self):
        return 3 * self.pos_bits + 6 * self.cov_bits + 4 * self.color_bits + self.weight_bits


@dataclass(frozen=True)
class SogHeader:
    """
    Parsed 64-byte SOG prologue. Read-only once parsed.

    `cov_range` is the effective covariance dequantization range: the values
    stored in the prologue when FLAG_COV_RANGE is set, DEFAULT_COV_RANGE otherwise.
    """
    magic: str
    version: int
    header_size: int
    gaussian_count: int
    chunk_count: int
    quantization: Quantization
    bounds_min: Tuple[float, float, float]
    bounds_max: Tuple[float, float, float]
    flags: int
    cov_range: Tuple[float, float] = DEFAULT_COV_RANGE

    @property
    def has_cov_range(self):
        return bool(self.flags & FLAG_COV_RANGE)

    def __str__(self):
        q = self.quantization
        return (f"SogHeader(version={self.version}, splats={self.gaussian_count}, chunks={self.chunk_count}, "
                f"bits=pos:{q.pos_bits}/color:{q.color_bits}/cov:{q.cov_bits}/weight:{q.weight_bits}, "
                f"flags=0x{self.flags:08X})")


@dataclass
class GaussianChunk:
    """
    One decoded chunk. Arrays are owned by the chunk and never shared with another one.
    `lod_levels` is scratch space for the LOD pass and is not part of the decode output.
    """
    chunk_id: int
    index_offset: int
    count: int
    positions: np.ndarray
    covariances: np.ndarray
    colors: np.ndarray
    weights: np.ndarray
    lod_levels: np.ndarray = field(default=None)

    def __post_init__(self):
        if self.lod_levels is None:
            self.lod_levels = np.zeros(self.count, dtype=np.uint8)

    def to_structured(self, include_lod=False):
        dtype = GaussianStruct.define_dtype(has_lod=include_lod)
        out = np.zeros(self.count, dtype=dtype)
        for axis, name in enumerate(('x', 'y', 'z')):
            out[name] = self.positions[:, axis]
        for i, name in enumerate(COV_FIELDS):
            out[name] = self.covariances[:, i]
        for i, name in enumerate(COLOR_FIELDS):
            out[name] = self.colors[:, i]
        out['weight'] = self.weights
        if include_lod:
            out['lod_level'] = self.lod_levels
        return out

    @classmethod
    def from_structured(cls, data, chunk_id=0, index_offset=0):
        positions = np.column_stack([data[n] for n in ('x', 'y', 'z')]).astype(np.float32)
        covariances = np.column_stack([data[n] for n in COV_FIELDS]).astype(np.float32)
        colors = np.column_stack([data[n] for n in COLOR_FIELDS]).astype(np.uint8)
        weights = np.asarray(data['weight'], dtype=np.float32)
        return cls(chunk_id=chunk_id, index_offset=index_offset, count=len(data),
                   positions=positions.reshape(-1, 3), covariances=covariances.reshape(-1, 6),
                   colors=colors.reshape(-1, 4), weights=weights)


class GaussianStruct:
    @staticmethod
    def get_standard_order(has_lod=False):
        """
        Returns the decoded splat attribute names in strict order.
        """
        order = ['x', 'y', 'z', *COV_FIELDS, *COLOR_FIELDS, 'weight']
        if has_lod:
            order.append('lod_level')
        return order

    @staticmethod
    def define_dtype(has_lod=False, extra_fields=None):
        """
        Defines the structured numpy dtype for decoded splats, optionally including extra fields.
        """
        debug_print("[DEBUG] Executing 'define_dtype' function...")

        dtype = [
            ('x', 'f4'), ('y', 'f4'), ('z', 'f4'),
            *[(name, 'f4') for name in COV_FIELDS],
            *[(name, 'u1') for name in COLOR_FIELDS],
            ('weight', 'f4'),
        ]

        if has_lod:
            dtype.append(('lod_level', 'u1'))

        if extra_fields:
            for field_name, field_type in extra_fields:
                # Avoid duplicates
                if not any(d[0] == field_name for d in dtype):
                    dtype.append((field_name, field_type))

        return dtype
