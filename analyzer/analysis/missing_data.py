"""Missing data overview and most common missingness pattern."""

import logging

from analyzer.analysis import register
from analyzer.analysis.frame import pct, to_frame
from analyzer.analysis.models import AnalysisKind, AnalysisResult, CategoryPoint, ChartKind, ChartSpec
from analyzer.dataset import Dataset

log = logging.getLogger(__name__)


@register(AnalysisKind.MISSING_DATA)
def missing_data_analysis(dataset: Dataset) -> AnalysisResult:
    df = to_frame(dataset)
    n_rows = len(df)
    is_missing = df.isna()
    per_column = is_missing.sum()
    total_missing = int(per_column.sum())
    rows_with_missing = int(is_missing.any(axis=1).sum())
    warnings: list[str] = []

    summary = {
        "totalMissing": str(total_missing),
        "rowsWithMissing": str(rows_with_missing),
        "completeRows": str(n_rows - rows_with_missing),
        "columnsWithMissing": str(int((per_column > 0).sum())),
    }

    if total_missing:
        worst = per_column.idxmax()
        summary["mostMissingColumn"] = f"{worst} ({pct(per_column[worst], n_rows)} missing)"
        patterns = (
            ", ".join(col for col, gap in row.items() if gap)
            for _, row in is_missing[is_missing.any(axis=1)].iterrows()
        )
        counts: dict[str, int] = {}
        for pattern in patterns:
            counts[pattern] = counts.get(pattern, 0) + 1
        common, n = max(counts.items(), key=lambda kv: kv[1])
        summary["commonPattern"] = f"{common} ({n} rows)"
    else:
        summary["mostMissingColumn"] = "none"

    if n_rows == 0:
        warnings.append("Dataset has no data rows.")

    chart = ChartSpec(
        kind=ChartKind.BAR,
        data=[CategoryPoint(name=col, value=float(n)) for col, n in per_column.items()],
    )

    return AnalysisResult(
        title="Missing Data Analysis",
        stats=summary,
        chart=chart,
        analysis_kind=AnalysisKind.MISSING_DATA.value,
        warnings=warnings,
    )
