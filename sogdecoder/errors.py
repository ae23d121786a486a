"""
SOG Decoder
Copyright (c) 2026 SOG Decoder contributors

This software is released under the MIT License.
For more information about the license, please see the LICENSE file.
"""


class FormatError(ValueError):
    """Base class for every malformed-asset condition raised by the decoder."""


class BadMagicError(FormatError):
    """The first 4 bytes are not the SOG0 tag. Fatal for the whole asset."""


class TruncatedError(FormatError):
    """Fewer bytes are available than the declared counts and bit depths require."""


class InvalidBoundsError(FormatError):
    """An axis (or the covariance range) has max < min, or a non-finite limit."""


class InvalidBitDepthError(FormatError):
    """A quantization bit depth lies outside [1, 32]."""


class InvalidHeaderSizeError(FormatError):
    """The declared header size is smaller than the fixed prologue."""


class InvalidChunkTableError(FormatError):
    """The chunk directory disagrees with the header's splat count."""
