"""
SOG Decoder
Copyright (c) 2026 SOG Decoder contributors

This software is released under the MIT License.
For more information about the license, please see the LICENSE file.
"""

import argparse

class LodWeightsAction(argparse.Action):
    def __call__(self, parser, args, values, option_string=None):
        if len(values) != 3:
            parser.error("--lod_weights requires three numbers: w1 (distance), w2 (radius) and w3 (priority).")
        try:
            values = [float(v) for v in values]
        except ValueError:
            parser.error("All arguments for --lod_weights must be numbers.")
        setattr(args, self.dest, values)

class BitDepthAction(argparse.Action):
    def __call__(self, parser, args, values, option_string=None):
        if not 1 <= values <= 32:
            parser.error(f"{option_string} must be between 1 and 32, got {values}.")
        setattr(args, self.dest, values)

class AboutAction(argparse.Action):
    def __init__(self, option_strings, dest, nargs=0, **kwargs):
        super(AboutAction, self).__init__(option_strings, dest, nargs=0, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        copyright_info = """
        SOG Decoder
        Copyright (c) 2026 SOG Decoder contributors

        This software is released under the MIT License.
        For more information about the license, please see the LICENSE file.
        """
        print(copyright_info)
        parser.exit()  # Exit after displaying the information.
