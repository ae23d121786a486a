import numpy as np
from plyfile import PlyData, PlyElement
from .base import BaseFormat
from ..structures import GaussianStruct
from ..utils.utility_functions import debug_print, status_print

class PlyFormat(BaseFormat):
    """
    Decoded splats as a binary PLY 'vertex' element: position, covariance upper
    triangle, RGBA bytes and weight, plus lod_level when present.
    """

    def read(self, path: str, **kwargs) -> np.ndarray:
        debug_print(f"[DEBUG] Reading PLY file from {path}")
        plydata = PlyData.read(path)

        if 'vertex' not in plydata:
            raise ValueError("PLY file does not contain 'vertex' element")

        vertices = plydata['vertex'].data
        source_names = vertices.dtype.names

        missing = [name for name in ('x', 'y', 'z') if name not in source_names]
        if missing:
            raise ValueError(f"PLY vertex element lacks position properties: {', '.join(missing)}")

        # Keep unknown properties with their original types
        std_names = set(GaussianStruct.get_standard_order(has_lod=True))
        extra_fields = [(name, vertices.dtype[name].str) for name in source_names if name not in std_names]

        has_lod = 'lod_level' in source_names
        internal_dtype = GaussianStruct.define_dtype(has_lod=has_lod, extra_fields=extra_fields)
        converted_data = np.zeros(len(vertices), dtype=internal_dtype)

        for name, _ in internal_dtype:
            if name in source_names:
                converted_data[name] = vertices[name]
            elif name == 'alpha':
                converted_data[name] = 255
            elif name == 'weight':
                converted_data[name] = 1.0

        self.metadata = {'count': len(converted_data), 'extra_fields': [f[0] for f in extra_fields]}
        debug_print(f"[DEBUG] Loaded {len(converted_data)} splats from PLY")
        return converted_data

    def write(self, data: np.ndarray, path: str, **kwargs) -> None:
        debug_print(f"[DEBUG] Writing PLY file to {path}")

        has_lod = 'lod_level' in data.dtype.names
        std_order = GaussianStruct.get_standard_order(has_lod=has_lod)

        output_dtype_list = []
        for name in std_order:
            if name in data.dtype.names:
                output_dtype_list.append((name, data.dtype[name].str))

        # Extra fields at the end
        for name in data.dtype.names:
            if name not in std_order:
                output_dtype_list.append((name, data.dtype[name].str))

        output_data = np.zeros(len(data), dtype=np.dtype(output_dtype_list))
        for name in output_data.dtype.names:
            output_data[name] = data[name]

        el = PlyElement.describe(output_data, 'vertex')
        PlyData([el], byte_order='<').write(path)
        status_print(f"PLY write completed. {len(data)} splats.")
