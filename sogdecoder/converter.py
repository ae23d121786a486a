"""
SOG Decoder
Copyright (c) 2026 SOG Decoder contributors

This software is released under the MIT License.
For more information about the license, please see the LICENSE file.
"""

from tqdm import tqdm
from .formats.sog import SogFormat
from .formats.ply import PlyFormat
from .formats.parquet import ParquetFormat
from .processing.data_processor import DataProcessor
from .processing.lod import LodWeights
from .utils.utility_functions import debug_print, status_print

VALID_FORMATS = ['sog', 'ply', 'parquet']


class Converter:
    def __init__(self, input_path, output_path, target_format):
        self.input_path = input_path
        self.output_path = output_path
        self.target_format = target_format.lower()

        # Early Validation
        if self.target_format not in VALID_FORMATS:
             raise ValueError(f"Unknown target format '{self.target_format}'. Supported: {', '.join(VALID_FORMATS)}")

        self.data = None
        self.source_format = None
        self.source_handler = None

    @staticmethod
    def _detect_format(path):
        lower = path.lower()
        if lower.endswith('.sog'):
            return 'sog'
        if lower.endswith('.ply'):
            return 'ply'
        if lower.endswith('.parquet'):
            return 'parquet'

        # Fall back to sniffing the SOG magic
        try:
            with open(path, 'rb') as f:
                if f.read(4) == b'SOG0':
                    return 'sog'
        except OSError as e:
            debug_print(f"[DEBUG] Could not sniff '{path}': {e}")
        return None

    @staticmethod
    def _get_format_handler(format_name):
        if format_name == 'sog':
            return SogFormat()
        elif format_name == 'ply':
            return PlyFormat()
        elif format_name == 'parquet':
            return ParquetFormat()
        raise ValueError(f"Unsupported format: {format_name}")

    def load_source_only(self, **kwargs):
        """Loads the source file and determines format without converting."""
        self.source_format = self._detect_format(self.input_path)
        if not self.source_format:
             raise ValueError("Could not detect source format")

        debug_print(f"[DEBUG] Detected source format: {self.source_format}")
        self.source_handler = self._get_format_handler(self.source_format)
        self.data = self.source_handler.read(self.input_path, **kwargs)
        return self.data

    def run(self, **kwargs):
        debug_print(f"[DEBUG] Starting conversion: {self.input_path} -> {self.output_path} ({self.target_format})")

        with tqdm(total=100, desc="Converting", bar_format='{desc}: {percentage:3.0f}% |{bar}| {n_fmt}/{total_fmt}') as pbar:

            # 1. Detect & Read
            pbar.set_description("Reading Source")
            self.load_source_only(workers=kwargs.get('workers'), skip_truncated=kwargs.get('skip_truncated', False))
            status_print(f"Read {len(self.data)} splats from {self.source_format.upper()} source.")
            pbar.update(40)

            # 2. Filters
            pbar.set_description("Filtering")
            processor = DataProcessor(self.data)

            if kwargs.get('bbox'):
                processor.crop_by_bbox(*kwargs['bbox'])

            min_weight = kwargs.get('min_weight')
            if min_weight is not None and min_weight > 0:
                processor.apply_weight_filter(min_weight)
            pbar.update(10)

            # 3. LOD pass for one view
            if kwargs.get('lod'):
                pbar.set_description("LOD")
                lod_weights = kwargs.get('lod_weights')
                processor.apply_lod(
                    camera_position=kwargs.get('camera') or (0.0, 0.0, 8.0),
                    fov_deg=kwargs.get('fov') or 55.0,
                    viewport_height=kwargs.get('viewport_height') or 1080,
                    weights=LodWeights(*lod_weights) if lod_weights else None,
                    cull=kwargs.get('cull', False),
                )
            pbar.update(10)

            if kwargs.get('auto_bbox'):
                processor.apply_auto_bbox()

            self.data = processor.data

            # 4. Write
            pbar.set_description(f"Writing {self.target_format.upper()}")
            target_handler = self._get_format_handler(self.target_format)
            target_handler.write(self.data, self.output_path, **kwargs)
            pbar.update(40)
            pbar.set_description("Completed")

        status_print(f"Conversion completed: Saved to {self.output_path}")
        return self.data
