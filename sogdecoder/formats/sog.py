"""
SOG Decoder
Copyright (c) 2026 SOG Decoder contributors

This software is released under the MIT License.
For more information about the license, please see the LICENSE file.
"""

import math
import struct
from dataclasses import dataclass
from multiprocessing import Pool
import numpy as np
from tqdm import tqdm
from .base import BaseFormat
from ..errors import (
    BadMagicError, TruncatedError, InvalidBoundsError, InvalidBitDepthError,
    InvalidHeaderSizeError, InvalidChunkTableError,
)
from ..structures import (
    SogHeader, Quantization, GaussianChunk, GaussianStruct,
    SOG_MAGIC, HEADER_PROLOGUE_SIZE, FLAG_COV_RANGE, DEFAULT_COV_RANGE, WEIGHT_RANGE,
)
from ..processing.bitstream import BitReader, BitWriter
from ..processing.quantization import dequantize, quantize, dequantize_colors, quantize_colors
from ..utils.utility_functions import debug_print, status_print, init_worker

# magic, version, headerSize, gaussianCount, chunkCount, pos/color/cov/weight bits,
# boundsMin xyz, boundsMax xyz, flags
HEADER_STRUCT = struct.Struct('<4sHHIIBBBB3f3fI')
COV_RANGE_STRUCT = struct.Struct('<2f')
COV_RANGE_OFFSET = HEADER_STRUCT.size

# offset (relative to the chunk data region), length in bytes, splat count
CHUNK_ENTRY_STRUCT = struct.Struct('<III')

CHUNK_SIZE = 65536


def parse_header(buffer) -> SogHeader:
    """
    Parses the fixed 64-byte prologue of a SOG asset.

    The magic tag is checked before anything else, so a wrong tag always
    raises BadMagicError whatever follows it. The version is not validated.

    Raises:
        BadMagicError, TruncatedError, InvalidHeaderSizeError,
        InvalidBitDepthError, InvalidBoundsError
    """
    buf = bytes(buffer[:HEADER_PROLOGUE_SIZE])

    if len(buf) < len(SOG_MAGIC):
        raise TruncatedError(f"SOG header needs {HEADER_PROLOGUE_SIZE} bytes, got {len(buf)}")
    if buf[:4] != SOG_MAGIC:
        raise BadMagicError(f"Invalid SOG magic: {buf[:4]!r}")
    if len(buf) < HEADER_PROLOGUE_SIZE:
        raise TruncatedError(f"SOG header needs {HEADER_PROLOGUE_SIZE} bytes, got {len(buf)}")

    fields = HEADER_STRUCT.unpack_from(buf, 0)
    _, version, header_size, gaussian_count, chunk_count = fields[:5]
    quantization = Quantization(*fields[5:9])
    bounds_min = tuple(fields[9:12])
    bounds_max = tuple(fields[12:15])
    flags = fields[15]

    if header_size < HEADER_PROLOGUE_SIZE:
        raise InvalidHeaderSizeError(f"Header size {header_size} is smaller than the {HEADER_PROLOGUE_SIZE}-byte prologue")

    for name, bits in zip(('posBits', 'colorBits', 'covBits', 'weightBits'), quantization.as_tuple()):
        if not 1 <= bits <= 32:
            raise InvalidBitDepthError(f"{name}={bits} is outside [1, 32]")

    for axis in range(3):
        lo, hi = bounds_min[axis], bounds_max[axis]
        if not (math.isfinite(lo) and math.isfinite(hi)) or hi < lo:
            raise InvalidBoundsError(f"Invalid bounds on axis {'xyz'[axis]}: min={lo}, max={hi}")

    cov_range = DEFAULT_COV_RANGE
    if flags & FLAG_COV_RANGE:
        cov_min, cov_max = COV_RANGE_STRUCT.unpack_from(buf, COV_RANGE_OFFSET)
        if not (math.isfinite(cov_min) and math.isfinite(cov_max)) or cov_max < cov_min:
            raise InvalidBoundsError(f"Invalid covariance range: min={cov_min}, max={cov_max}")
        cov_range = (cov_min, cov_max)

    header = SogHeader(
        magic=SOG_MAGIC.decode('ascii'),
        version=version,
        header_size=header_size,
        gaussian_count=gaussian_count,
        chunk_count=chunk_count,
        quantization=quantization,
        bounds_min=bounds_min,
        bounds_max=bounds_max,
        flags=flags,
        cov_range=cov_range,
    )
    debug_print(f"[DEBUG] Parsed {header}")
    return header


def pack_header(header: SogHeader) -> bytes:
    """Serializes the prologue, zero padded up to header.header_size."""
    buf = bytearray(max(header.header_size, HEADER_PROLOGUE_SIZE))
    HEADER_STRUCT.pack_into(
        buf, 0, SOG_MAGIC, header.version, header.header_size,
        header.gaussian_count, header.chunk_count, *header.quantization.as_tuple(),
        *header.bounds_min, *header.bounds_max, header.flags,
    )
    if header.flags & FLAG_COV_RANGE:
        COV_RANGE_STRUCT.pack_into(buf, COV_RANGE_OFFSET, *header.cov_range)
    return bytes(buf)


def decode_chunk(chunk_id, payload, header: SogHeader, count, index_offset=0) -> GaussianChunk:
    """
    Decodes `count` splats from a chunk's bit-packed payload.

    Every splat is read in wire order (3 position, 6 covariance, 4 color,
    1 weight components), each component with its attribute's bit depth.
    Raises TruncatedError when the payload holds fewer bits than needed;
    no partially decoded chunk is ever returned.
    """
    if count < 0:
        raise ValueError(f"Splat count must be non-negative, got {count}")
    if count > header.gaussian_count:
        raise ValueError(f"Chunk {chunk_id} asks for {count} splats, asset declares {header.gaussian_count}")

    q = header.quantization
    reader = BitReader(payload)
    try:
        raw = reader.read_records(q.splat_layout(), count)
    except TruncatedError as e:
        raise TruncatedError(f"Chunk {chunk_id}: {e}") from e

    positions = dequantize(raw[:, 0:3], q.pos_bits, header.bounds_min, header.bounds_max).astype(np.float32)
    covariances = dequantize(raw[:, 3:9], q.cov_bits, *header.cov_range).astype(np.float32)
    colors = dequantize_colors(raw[:, 9:13], q.color_bits)
    weights = dequantize(raw[:, 13], q.weight_bits, *WEIGHT_RANGE).astype(np.float32)

    debug_print(f"[DEBUG] Decoded chunk {chunk_id}: {count} splats from {reader.position} bits")
    return GaussianChunk(
        chunk_id=chunk_id,
        index_offset=index_offset,
        count=count,
        positions=positions,
        covariances=covariances,
        colors=colors,
        weights=weights,
    )


def encode_chunk(chunk: GaussianChunk, header: SogHeader) -> bytes:
    """Quantizes and bit-packs a chunk with the header's bit depths and ranges."""
    q = header.quantization
    values = np.empty((chunk.count, 14), dtype=np.uint64)
    values[:, 0:3] = quantize(chunk.positions, q.pos_bits, header.bounds_min, header.bounds_max)
    values[:, 3:9] = quantize(chunk.covariances, q.cov_bits, *header.cov_range)
    values[:, 9:13] = quantize_colors(chunk.colors, q.color_bits)
    values[:, 13] = quantize(chunk.weights, q.weight_bits, *WEIGHT_RANGE)

    writer = BitWriter()
    writer.write_records(values, q.splat_layout())
    return writer.getvalue()


@dataclass(frozen=True)
class ChunkEntry:
    chunk_id: int
    offset: int
    length: int
    count: int
    index_offset: int


def read_chunk_table(buffer, header: SogHeader):
    """
    Reads the chunk directory that follows the header: one (offset, length, count)
    entry per chunk, offsets relative to the data region right after the directory.
    """
    start = header.header_size
    end = start + CHUNK_ENTRY_STRUCT.size * header.chunk_count
    if len(buffer) < end:
        raise TruncatedError(f"Chunk directory needs {end} bytes, asset has {len(buffer)}")

    entries = []
    index_offset = 0
    for chunk_id in range(header.chunk_count):
        offset, length, count = CHUNK_ENTRY_STRUCT.unpack_from(buffer, start + chunk_id * CHUNK_ENTRY_STRUCT.size)
        entries.append(ChunkEntry(chunk_id, offset, length, count, index_offset))
        index_offset += count

    if index_offset != header.gaussian_count:
        raise InvalidChunkTableError(
            f"Chunk directory lists {index_offset} splats, header declares {header.gaussian_count}"
        )
    return entries


def _decode_task(chunk_id, payload, header, count, index_offset, skip_truncated):
    try:
        return decode_chunk(chunk_id, payload, header, count, index_offset)
    except TruncatedError as e:
        if not skip_truncated:
            raise
        status_print(f"Warning: skipping truncated chunk {chunk_id} ({e})")
        return None


class SogAsset:
    """
    A parsed SOG asset over an in-memory buffer. The header and chunk directory
    are read once; chunks are decoded on demand and never cached.
    """

    def __init__(self, buffer, header: SogHeader, entries):
        self._buffer = memoryview(buffer).cast('B')
        self.header = header
        self.entries = entries
        self.data_start = header.header_size + CHUNK_ENTRY_STRUCT.size * header.chunk_count

    def __len__(self):
        return len(self.entries)

    def _entry(self, chunk_id):
        if not 0 <= chunk_id < len(self.entries):
            raise IndexError(f"Chunk id {chunk_id} out of range, asset has {len(self.entries)} chunks")
        return self.entries[chunk_id]

    def chunk_payload(self, chunk_id):
        """Only this chunk's byte range; may be short if the asset is truncated."""
        entry = self._entry(chunk_id)
        start = self.data_start + entry.offset
        return self._buffer[start:start + entry.length]

    def decode(self, chunk_id) -> GaussianChunk:
        entry = self._entry(chunk_id)
        return decode_chunk(entry.chunk_id, self.chunk_payload(entry.chunk_id), self.header, entry.count, entry.index_offset)

    def iter_chunks(self):
        for entry in self.entries:
            yield self.decode(entry.chunk_id)

    def decode_all(self, workers=None, skip_truncated=False):
        """
        Decodes every chunk. With workers > 1 the chunks are spread over a process
        pool; each task carries only its own chunk's bytes.
        Truncated chunks either abort the call or, with skip_truncated, are reported and left out.
        """
        tasks = [
            (e.chunk_id, bytes(self.chunk_payload(e.chunk_id)), self.header, e.count, e.index_offset, skip_truncated)
            for e in self.entries
        ]

        if workers and workers > 1 and len(tasks) > 1:
            debug_print(f"[DEBUG] Decoding {len(tasks)} chunks on {workers} workers")
            with Pool(processes=workers, initializer=init_worker) as pool:
                results = pool.starmap(_decode_task, tasks)
        else:
            results = []
            for task in tqdm(tasks, desc="Decoding Chunks", leave=False, disable=len(tasks) < 2):
                results.append(_decode_task(*task))

        return [chunk for chunk in results if chunk is not None]


def load_asset(buffer) -> SogAsset:
    header = parse_header(buffer)
    entries = read_chunk_table(buffer, header)
    return SogAsset(buffer, header, entries)


def build_asset(chunks, quantization: Quantization, version=1, header_size=HEADER_PROLOGUE_SIZE, flags=0) -> bytes:
    """
    Encodes chunks into a complete asset: prologue, chunk directory, chunk streams.

    Bounds are the tight per-axis box of all positions. The covariance range is
    taken from the data and stored in the prologue (FLAG_COV_RANGE). Other flag
    bits are written through untouched. Non-finite positions or
    covariances raise InvalidBoundsError.
    """
    chunks = list(chunks)
    gaussian_count = sum(c.count for c in chunks)

    if gaussian_count:
        positions = np.concatenate([c.positions for c in chunks]).astype(np.float32)
        covariances = np.concatenate([c.covariances for c in chunks]).astype(np.float32)
        for name, values in (('positions', positions), ('covariances', covariances)):
            bad = ~np.isfinite(values).all(axis=1)
            if bad.any():
                raise InvalidBoundsError(
                    f"{int(bad.sum())} splats have non-finite {name} (first at index {int(np.argmax(bad))})"
                )
        bounds_min = tuple(float(v) for v in positions.min(axis=0))
        bounds_max = tuple(float(v) for v in positions.max(axis=0))
        cov_range = (float(covariances.min()), float(covariances.max()))
        flags |= FLAG_COV_RANGE
    else:
        bounds_min = bounds_max = (0.0, 0.0, 0.0)
        cov_range = DEFAULT_COV_RANGE
        flags &= ~FLAG_COV_RANGE

    header = SogHeader(
        magic=SOG_MAGIC.decode('ascii'),
        version=version,
        header_size=header_size,
        gaussian_count=gaussian_count,
        chunk_count=len(chunks),
        quantization=quantization,
        bounds_min=bounds_min,
        bounds_max=bounds_max,
        flags=flags,
        cov_range=cov_range,
    )

    streams = [encode_chunk(c, header) for c in chunks]
    directory = bytearray()
    offset = 0
    for chunk, stream in zip(chunks, streams):
        directory += CHUNK_ENTRY_STRUCT.pack(offset, len(stream), chunk.count)
        offset += len(stream)

    debug_print(f"[DEBUG] Built SOG asset: {gaussian_count} splats in {len(chunks)} chunks, {offset} payload bytes")
    return pack_header(header) + bytes(directory) + b''.join(streams)


class SogFormat(BaseFormat):
    def __init__(self):
        super().__init__()
        self.header = None

    def read(self, path: str, **kwargs) -> np.ndarray:
        debug_print(f"[DEBUG] Reading .sog file from {path}")

        with open(path, 'rb') as f:
            file_data = f.read()

        asset = load_asset(file_data)
        self.header = asset.header
        self.metadata = {
            'version': asset.header.version,
            'count': asset.header.gaussian_count,
            'chunks': asset.header.chunk_count,
            'flags': asset.header.flags,
        }

        chunks = asset.decode_all(workers=kwargs.get('workers'), skip_truncated=kwargs.get('skip_truncated', False))
        if not chunks:
            return np.zeros(0, dtype=GaussianStruct.define_dtype())
        return np.concatenate([c.to_structured() for c in chunks])

    def write(self, data: np.ndarray, path: str, **kwargs) -> None:
        debug_print(f"[DEBUG] Writing .sog file to {path}")

        quantization = Quantization(
            pos_bits=int(kwargs.get('pos_bits') or 16),
            color_bits=int(kwargs.get('color_bits') or 8),
            cov_bits=int(kwargs.get('cov_bits') or 12),
            weight_bits=int(kwargs.get('weight_bits') or 8),
        )
        for bits in quantization.as_tuple():
            if not 1 <= bits <= 32:
                raise InvalidBitDepthError(f"Bit depth {bits} is outside [1, 32]")

        chunk_size = int(kwargs.get('chunk_size') or CHUNK_SIZE)
        chunks = []
        for chunk_id, start in enumerate(range(0, len(data), chunk_size)):
            chunks.append(GaussianChunk.from_structured(data[start:start + chunk_size], chunk_id=chunk_id, index_offset=start))

        asset = build_asset(chunks, quantization)
        with open(path, 'wb') as f:
            f.write(asset)

        status_print(f"SOG write completed to {path}. {len(data)} splats in {len(chunks)} chunks.")
