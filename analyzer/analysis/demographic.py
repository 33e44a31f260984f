"""Group counts by a demographic (or other low-cardinality) column."""

import logging
import math
import re

import pandas as pd

from analyzer.analysis import register
from analyzer.analysis.frame import categorical_columns, numeric_columns, pct, to_frame
from analyzer.analysis.models import AnalysisKind, AnalysisResult, CategoryPoint, ChartKind, ChartSpec
from analyzer.dataset import Dataset

log = logging.getLogger(__name__)

_MAX_GROUPS = 20

_KEYWORDS = {
    "age", "gender", "sex", "race", "ethnicity", "ethnic", "education", "income",
    "region", "religion", "marital", "employment", "occupation", "party", "country",
}

_AGE_BINS = [-math.inf, 18, 30, 45, 65, math.inf]
_AGE_LABELS = ["<18", "18-29", "30-44", "45-64", "65+"]


def _tokens(name: str) -> set[str]:
    return {t for t in re.split(r"[^a-z0-9]+", name.lower()) if t}


def _grouping(df: pd.DataFrame) -> tuple[str, pd.Series, int]:
    """Pick a grouping column. Returns (column, group counts, rows without a group)."""
    categorical = categorical_columns(df)

    for col in categorical:
        if _tokens(col) & _KEYWORDS and df[col].nunique() <= _MAX_GROUPS:
            return col, df[col].value_counts(), int(df[col].isna().sum())

    for col in numeric_columns(df):
        if "age" in _tokens(col):
            ages = pd.to_numeric(df[col], errors="coerce")
            bands = pd.cut(ages, bins=_AGE_BINS, labels=_AGE_LABELS, right=False)
            # sort=False keeps band order, including empty bands
            return col, bands.value_counts(sort=False), int(bands.isna().sum())

    for col in categorical:
        if 2 <= df[col].nunique() <= _MAX_GROUPS:
            return col, df[col].value_counts(), int(df[col].isna().sum())

    raise ValueError(
        f"No demographic column or categorical column with at most {_MAX_GROUPS} groups to break down by."
    )


@register(AnalysisKind.DEMOGRAPHIC)
def demographic_analysis(dataset: Dataset) -> AnalysisResult:
    df = to_frame(dataset)
    col, counts, ungrouped = _grouping(df)
    grouped_total = int(counts.sum())
    warnings: list[str] = []

    if ungrouped:
        warnings.append(f"{ungrouped} rows have no value for {col} and are not counted.")

    present = counts[counts > 0]
    summary = {
        "groupingVariable": col,
        "groups": str(len(present)),
    }
    if not present.empty:
        largest, smallest = present.idxmax(), present.idxmin()
        summary["largestGroup"] = f"{largest} ({int(present[largest])})"
        summary["smallestGroup"] = f"{smallest} ({int(present[smallest])})"
    for group, n in counts.items():
        summary[f"share {group}"] = pct(int(n), grouped_total)

    chart = ChartSpec(
        kind=ChartKind.BAR,
        data=[CategoryPoint(name=str(group), value=float(n)) for group, n in counts.items()],
    )

    return AnalysisResult(
        title="Demographic Breakdown",
        stats=summary,
        chart=chart,
        analysis_kind=AnalysisKind.DEMOGRAPHIC.value,
        warnings=warnings,
    )
