from __future__ import annotations

from pathlib import Path

import pandas as pd


def _suffix(path: Path) -> str:
    return path.suffix.lower().lstrip(".")


def read_table(path: Path) -> pd.DataFrame:
    suffix = _suffix(path)
    if suffix == "csv":
        return pd.read_csv(path)
    if suffix == "parquet":
        return pd.read_parquet(path)
    raise ValueError(f"Unsupported input format: {path}")


def write_table(df: pd.DataFrame, path: Path) -> None:
    suffix = _suffix(path)
    if suffix == "csv":
        df.to_csv(path, index=False)
        return
    if suffix == "parquet":
        df.to_parquet(path, index=False)
        return
    raise ValueError(f"Unsupported output format: {path}")
