import numpy as np
import pandas as pd
from .base import BaseFormat
from ..structures import GaussianStruct
from ..utils.utility_functions import debug_print, status_print

class ParquetFormat(BaseFormat):
    def read(self, path: str, **kwargs) -> np.ndarray:
        debug_print(f"[DEBUG] Reading Parquet file from {path}")
        df = pd.read_parquet(path)

        for col in ('x', 'y', 'z'):
            if col not in df.columns:
                raise ValueError(f"Parquet file lacks position column '{col}'")

        has_lod = 'lod_level' in df.columns
        final_dtype = np.dtype(GaussianStruct.define_dtype(has_lod=has_lod))
        converted_data = np.zeros(len(df), dtype=final_dtype)

        for name in final_dtype.names:
            if name in df.columns:
                converted_data[name] = df[name].values
            elif name == 'alpha':
                converted_data[name] = 255
            elif name == 'weight':
                converted_data[name] = 1.0

        self.metadata = {'count': len(converted_data)}
        return converted_data

    def write(self, data: np.ndarray, path: str, **kwargs) -> None:
        debug_print(f"[DEBUG] Writing Parquet file to {path}")

        df = pd.DataFrame(data)

        # Standard columns first, then anything else in its original order
        std_order = [c for c in GaussianStruct.get_standard_order(has_lod=True) if c in df.columns]
        extra = [c for c in df.columns if c not in std_order]
        df_final = df[std_order + extra]

        df_final.to_parquet(path, index=False)
        status_print(f"Parquet write completed. {len(df_final)} rows.")
