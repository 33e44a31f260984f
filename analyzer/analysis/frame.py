"""pandas views over a Dataset, shared by the analysis modules."""

import math

import numpy as np
import pandas as pd

from analyzer.dataset import Dataset


def unique_labels(headers: tuple[str, ...] | list[str]) -> list[str]:
    """Make header names usable as DataFrame columns (unique, non-empty)."""
    labels: list[str] = []
    seen: dict[str, int] = {}
    for i, header in enumerate(headers):
        base = header or f"column_{i + 1}"
        count = seen.get(base, 0)
        seen[base] = count + 1
        labels.append(base if count == 0 else f"{base}.{count}")
    return labels


def to_frame(dataset: Dataset) -> pd.DataFrame:
    """Dataset as a DataFrame of stripped strings, blanks as NaN."""
    labels = unique_labels(dataset.headers)
    df = pd.DataFrame({label: dataset.column(i) for i, label in enumerate(labels)}, columns=labels, dtype=object)
    df = df.apply(lambda col: col.astype(str).str.strip())
    return df.where(df != "")


def _as_numeric(series: pd.Series) -> pd.Series:
    return pd.to_numeric(series, errors="coerce")


def numeric_columns(df: pd.DataFrame) -> list[str]:
    """Columns where every non-blank value parses as a number."""
    cols = []
    for col in df.columns:
        present = df[col].dropna()
        if present.empty:
            continue
        if _as_numeric(present).notna().all():
            cols.append(col)
    return cols


def categorical_columns(df: pd.DataFrame) -> list[str]:
    numeric = set(numeric_columns(df))
    return [c for c in df.columns if c not in numeric and df[c].notna().any()]


def numeric_frame(df: pd.DataFrame, cols: list[str]) -> pd.DataFrame:
    return df[cols].apply(_as_numeric).astype(float)


def fmt(value: float | int, digits: int = 2) -> str:
    """Format a statistic for display."""
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    value = float(value)
    if math.isnan(value):
        return "n/a"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return f"{value:.{digits}f}"


def fmt_p(p_value: float) -> str:
    if math.isnan(p_value):
        return "n/a"
    if p_value < 0.001:
        return "<0.001"
    return f"{p_value:.3f}"


def pct(part: float, whole: float) -> str:
    if not whole:
        return "0%"
    return f"{100.0 * part / whole:.0f}%"
