"""
SOG Decoder
Copyright (c) 2026 SOG Decoder contributors

This software is released under the MIT License.
For more information about the license, please see the LICENSE file.
"""

__version__ = '0.1'

from .errors import (
    FormatError, BadMagicError, TruncatedError, InvalidBoundsError,
    InvalidBitDepthError, InvalidHeaderSizeError, InvalidChunkTableError,
)
from .structures import SogHeader, Quantization, GaussianChunk, GaussianStruct
from .formats.sog import parse_header, decode_chunk, encode_chunk, load_asset, build_asset, SogAsset
from .processing.lod import LodEngine, LodWeights, LodInput, LodDecision

__all__ = [
    'FormatError', 'BadMagicError', 'TruncatedError', 'InvalidBoundsError',
    'InvalidBitDepthError', 'InvalidHeaderSizeError', 'InvalidChunkTableError',
    'SogHeader', 'Quantization', 'GaussianChunk', 'GaussianStruct',
    'parse_header', 'decode_chunk', 'encode_chunk', 'load_asset', 'build_asset', 'SogAsset',
    'LodEngine', 'LodWeights', 'LodInput', 'LodDecision',
]
