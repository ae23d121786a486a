"""
SOG Decoder
Copyright (c) 2026 SOG Decoder contributors

This software is released under the MIT License.
For more information about the license, please see the LICENSE file.
"""

import numpy as np
from numpy.lib import recfunctions as rfn
from .lod import LodEngine, compute_view_scalars, focal_length_px
from ..structures import GaussianChunk
from ..utils.utility_functions import debug_print, status_print

class DataProcessor:
    def __init__(self, data):
        self.data = data

    def crop_by_bbox(self, min_x, min_y, min_z, max_x, max_y, max_z):
        # Perform cropping based on the bounding box
        self.data = self.data[
            (self.data['x'] >= min_x) &
            (self.data['x'] <= max_x) &
            (self.data['y'] >= min_y) &
            (self.data['y'] <= max_y) &
            (self.data['z'] >= min_z) &
            (self.data['z'] <= max_z)
        ]
        status_print(f"After cropping, retained {len(self.data)} splats.")
        return self.data

    def apply_weight_filter(self, min_weight):
        debug_print(f"[DEBUG] Executing 'apply_weight_filter' with min={min_weight}")

        if min_weight <= 0:
            return self.data

        original_len = len(self.data)
        self.data = self.data[self.data['weight'] >= min_weight]
        status_print(f"Weight Filter (min {min_weight}): Retained {len(self.data)} out of {original_len} splats.")
        return self.data

    def apply_lod(self, camera_position, fov_deg=55.0, viewport_height=1080, weights=None, cull=False):
        """
        Classifies every splat for a single view and stores the result in a
        'lod_level' field. The splat weight doubles as semantic priority.
        With cull=True, splats the policy drops are removed.
        """
        debug_print(f"[DEBUG] Executing 'apply_lod' for camera {camera_position}, fov {fov_deg}, height {viewport_height}")

        chunk = GaussianChunk.from_structured(self.data)
        focal_px = focal_length_px(fov_deg, viewport_height)
        distance, radius_px = compute_view_scalars(chunk.positions, chunk.covariances, camera_position, focal_px)

        engine = LodEngine(weights)
        keep = engine.apply(chunk, distance, radius_px, chunk.weights)

        if 'lod_level' in self.data.dtype.names:
            self.data = rfn.drop_fields(self.data, 'lod_level', usemask=False)
        self.data = rfn.append_fields(self.data, 'lod_level', chunk.lod_levels, dtypes='u1', usemask=False)

        counts = np.bincount(chunk.lod_levels, minlength=3)
        status_print(f"LOD: full={counts[0]}, reduced={counts[1]}, minimal={counts[2]}, culled={int((~keep).sum())}")

        if cull:
            original_len = len(self.data)
            self.data = self.data[keep]
            status_print(f"LOD Cull: Retained {len(self.data)} out of {original_len} splats.")
        return self.data

    def apply_auto_bbox(self):
        """
        Reports the tight bounding box of the remaining splats.
        """
        if len(self.data) == 0:
            status_print("Auto-BBox: No splats remaining. Bounding box is undefined.")
            return None

        mins = [float(np.min(self.data[a])) for a in ('x', 'y', 'z')]
        maxs = [float(np.max(self.data[a])) for a in ('x', 'y', 'z')]
        status_print(f"Auto-BBox: [{mins[0]:.4f}, {mins[1]:.4f}, {mins[2]:.4f}] to [{maxs[0]:.4f}, {maxs[1]:.4f}, {maxs[2]:.4f}]")
        return mins, maxs
