"""Descriptive statistics: size, completeness and numeric summaries."""

import logging

from analyzer.analysis import register
from analyzer.analysis.frame import categorical_columns, fmt, numeric_columns, numeric_frame, pct, to_frame
from analyzer.analysis.models import AnalysisKind, AnalysisResult, CategoryPoint, ChartKind, ChartSpec
from analyzer.dataset import Dataset

log = logging.getLogger(__name__)

_CHART_COLUMNS = 5
_SUMMARY_COLUMNS = 3


@register(AnalysisKind.DESCRIPTIVE)
def descriptive_analysis(dataset: Dataset) -> AnalysisResult:
    df = to_frame(dataset)
    n_rows, n_cols = df.shape
    total_cells = n_rows * n_cols
    missing = int(df.isna().sum().sum())
    numeric = numeric_columns(df)
    categorical = categorical_columns(df)
    warnings: list[str] = []

    summary = {
        "totalRows": str(n_rows),
        "totalColumns": str(n_cols),
        "missingData": str(missing),
        "completeness": pct(total_cells - missing, total_cells),
        "numericColumns": str(len(numeric)),
        "categoricalColumns": str(len(categorical)),
    }

    if n_rows == 0:
        warnings.append("Dataset has no data rows.")

    if numeric:
        values = numeric_frame(df, numeric[:_SUMMARY_COLUMNS])
        for col in values.columns:
            summary[f"{col} mean"] = fmt(values[col].mean())
            summary[f"{col} std"] = fmt(values[col].std())

    # Share of non-blank values per column
    points = []
    for col in list(df.columns)[:_CHART_COLUMNS]:
        filled = float(df[col].notna().mean()) if n_rows else 0.0
        points.append(CategoryPoint(name=col, value=round(100.0 * filled, 1)))

    return AnalysisResult(
        title="Descriptive Statistics",
        stats=summary,
        chart=ChartSpec(kind=ChartKind.BAR, data=points) if points else None,
        analysis_kind=AnalysisKind.DESCRIPTIVE.value,
        warnings=warnings,
    )
