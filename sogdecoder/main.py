"""
SOG Decoder
Copyright (c) 2026 SOG Decoder contributors

This software is released under the MIT License.
For more information about the license, please see the LICENSE file.
"""

import argparse
import os
import sys
from . import __version__
from .converter import Converter, VALID_FORMATS
from .formats.sog import load_asset
from .utils import config
from .utils.argument_actions import LodWeightsAction, BitDepthAction, AboutAction
from .utils.utility_functions import status_print


def print_info(path):
    with open(path, 'rb') as f:
        asset = load_asset(f.read())

    header = asset.header
    q = header.quantization
    print(f"File: {path}")
    print(f"Version: {header.version}")
    print(f"Header size: {header.header_size}")
    print(f"Splats: {header.gaussian_count}")
    print(f"Chunks: {header.chunk_count}")
    print(f"Bits: pos={q.pos_bits} color={q.color_bits} cov={q.cov_bits} weight={q.weight_bits}")
    print(f"Bounds: {list(header.bounds_min)} to {list(header.bounds_max)}")
    print(f"Covariance range: {list(header.cov_range)}{'' if header.has_cov_range else ' (default)'}")
    print(f"Flags: 0x{header.flags:08X}")
    for entry in asset.entries:
        print(f"  chunk {entry.chunk_id}: offset={entry.offset} length={entry.length} "
              f"count={entry.count} first_index={entry.index_offset}")


def build_parser():
    parser = argparse.ArgumentParser(description="Decode SOG splat assets, classify level of detail and convert between SOG, PLY and Parquet.")

    # Arguments for input and output
    parser.add_argument("--input", "-i", required=True, help="Path to the source file (.sog, .ply or .parquet).")
    parser.add_argument("--output", "-o", help="Path to save the converted file.")
    parser.add_argument("--target_format", "-f", choices=VALID_FORMATS, help="Target format.")
    parser.add_argument("--info", action="store_true", help="Print the SOG header and chunk directory and exit.")
    parser.add_argument("--force", action="store_true", help="Overwrite the output file without asking.")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug prints.")
    parser.add_argument('--about', action=AboutAction, help='Show copyright and license info')

    # Decoding
    parser.add_argument("--workers", type=int, default=None, help="Decode chunks in parallel with this many worker processes.")
    parser.add_argument("--skip_truncated", action="store_true", help="Skip chunks whose payload is truncated instead of aborting.")

    # Filters
    parser.add_argument("--bbox", nargs=6, type=float, metavar=('minX', 'minY', 'minZ', 'maxX', 'maxY', 'maxZ'), help="Specify the 3D bounding box to crop the splats.")
    parser.add_argument("--min_weight", type=float, default=None, help="Drop splats whose weight is below this value (0..1).")
    parser.add_argument("--auto_bbox", action="store_true", help="Report the tight bounding box after filtering.")

    # Level of detail
    parser.add_argument("--lod", action="store_true", help="Classify every splat for one view and store its 'lod_level'.")
    parser.add_argument("--camera", nargs=3, type=float, metavar=('X', 'Y', 'Z'), default=None, help="Camera position for --lod (default: 0 0 8).")
    parser.add_argument("--fov", type=float, default=55.0, help="Vertical field of view in degrees for --lod.")
    parser.add_argument("--viewport_height", type=int, default=1080, help="Viewport height in pixels for --lod.")
    parser.add_argument("--lod_weights", nargs=3, action=LodWeightsAction, metavar=('W1', 'W2', 'W3'), default=None, help="LOD score weights (default: 0.5 0.35 0.15).")
    parser.add_argument("--cull", action="store_true", help="With --lod, drop splats the LOD policy does not keep.")

    # SOG encoding
    parser.add_argument("--pos_bits", type=int, action=BitDepthAction, default=None, help="Position bit depth when writing SOG (default: 16).")
    parser.add_argument("--color_bits", type=int, action=BitDepthAction, default=None, help="Color bit depth when writing SOG (default: 8).")
    parser.add_argument("--cov_bits", type=int, action=BitDepthAction, default=None, help="Covariance bit depth when writing SOG (default: 12).")
    parser.add_argument("--weight_bits", type=int, action=BitDepthAction, default=None, help="Weight bit depth when writing SOG (default: 8).")
    parser.add_argument("--chunk_size", type=int, default=None, help="Splats per chunk when writing SOG (default: 65536).")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    config.DEBUG = args.debug

    try:
        if args.info:
            print_info(args.input)
            return 0

        if not args.output or not args.target_format:
            parser.error("--output and --target_format are required unless --info is given.")

        if os.path.exists(args.output) and not args.force:
            user_response = input(f"File {args.output} already exists. Do you want to overwrite it? (y/N): ").lower()
            if user_response != 'y':
                print("Operation aborted by the user.")
                return 0

        status_print(f"SOG Decoder: {__version__}")
        converter = Converter(args.input, args.output, args.target_format)
        converter.run(
            workers=args.workers,
            skip_truncated=args.skip_truncated,
            bbox=args.bbox,
            min_weight=args.min_weight,
            auto_bbox=args.auto_bbox,
            lod=args.lod,
            camera=args.camera,
            fov=args.fov,
            viewport_height=args.viewport_height,
            lod_weights=args.lod_weights,
            cull=args.cull,
            pos_bits=args.pos_bits,
            color_bits=args.color_bits,
            cov_bits=args.cov_bits,
            weight_bits=args.weight_bits,
            chunk_size=args.chunk_size,
        )
    except KeyboardInterrupt:
        print("Caught KeyboardInterrupt, terminating.")
        sys.exit(-1)
    except (ValueError, OSError) as e:  # FormatError included
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    return 0


if __name__ == "__main__":
    main()
