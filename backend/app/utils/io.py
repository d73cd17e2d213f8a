import math
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from ..schemas.dataset import ColumnDescriptor, Dataset


def read_any(path: str) -> pd.DataFrame:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Dataset file not found: {path}")
    if p.suffix.lower() in [".csv"]:
        return pd.read_csv(p)
    if p.suffix.lower() in [".tsv"]:
        return pd.read_csv(p, sep="\t")
    if p.suffix.lower() in [".xlsx", ".xls"]:
        return pd.read_excel(p)
    if p.suffix.lower() in [".json"]:
        return pd.read_json(p, lines=False)
    if p.suffix.lower() in [".parquet"]:
        return pd.read_parquet(p)
    raise ValueError(f"Unsupported file type: {p.suffix}")


def _to_py(value: Any) -> Any:
    """numpy/pandas scalars -> plain Python; NaN/NaT -> None."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def frame_to_dataset(df: pd.DataFrame) -> Dataset:
    """Rows as plain dicts plus one descriptor per column carrying the pandas dtype."""
    columns = [
        ColumnDescriptor(
            name=str(col),
            type=str(df[col].dtype),
            missing_count=int(df[col].isna().sum()),
            unique_count=int(df[col].nunique(dropna=True)),
        )
        for col in df.columns
    ]
    records: List[Dict[str, Any]] = [
        {str(k): _to_py(v) for k, v in row.items()}
        for row in df.to_dict(orient="records")
    ]
    return Dataset(data=records, columns=columns)


def load_dataset(path: str) -> Dataset:
    return frame_to_dataset(read_any(path))
