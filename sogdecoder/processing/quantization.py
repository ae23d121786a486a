"""
SOG Decoder
Copyright (c) 2026 SOG Decoder contributors

This software is released under the MIT License.
For more information about the license, please see the LICENSE file.
"""

import numpy as np


def max_level(bits):
    return float((1 << int(bits)) - 1)


def dequantize(q, bits, lo, hi):
    """
    Inverts the uniform quantizer: lo + (q / (2^bits - 1)) * (hi - lo).
    `lo` and `hi` may be scalars or arrays broadcastable against `q`
    (e.g. per-axis bounds against a (N, 3) block).
    """
    lo = np.asarray(lo, dtype=np.float64)
    hi = np.asarray(hi, dtype=np.float64)
    return lo + (np.asarray(q, dtype=np.float64) / max_level(bits)) * (hi - lo)


def quantize(values, bits, lo, hi):
    """
    Maps values in [lo, hi] to integers in [0, 2^bits - 1], rounding to the nearest level.
    Out-of-range values are clipped; a degenerate range (hi == lo) maps everything to 0.
    """
    lo = np.asarray(lo, dtype=np.float64)
    hi = np.asarray(hi, dtype=np.float64)
    span = hi - lo
    levels = max_level(bits)

    safe_span = np.where(span > 0, span, 1.0)
    norm = (np.asarray(values, dtype=np.float64) - lo) / safe_span
    norm = np.where(span > 0, norm, 0.0)
    q = np.rint(np.clip(norm, 0.0, 1.0) * levels)
    return q.astype(np.uint64)


def dequantize_colors(q, bits):
    """Color channels are raw bytes at 8 bits, otherwise rescaled to [0, 255] and rounded."""
    if bits == 8:
        return np.asarray(q).astype(np.uint8)
    return np.clip(np.rint(dequantize(q, bits, 0.0, 255.0)), 0, 255).astype(np.uint8)


def quantize_colors(colors, bits):
    if bits == 8:
        return np.asarray(colors, dtype=np.uint64)
    return quantize(np.asarray(colors, dtype=np.float64), bits, 0.0, 255.0)
