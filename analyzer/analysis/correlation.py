"""Pairwise correlation between numeric columns."""

import itertools
import logging

import numpy as np
from scipy import stats

from analyzer.analysis import register
from analyzer.analysis.frame import fmt, fmt_p, numeric_columns, numeric_frame, to_frame
from analyzer.analysis.models import AnalysisKind, AnalysisResult, ChartKind, ChartSpec, XYPoint
from analyzer.config import settings
from analyzer.dataset import Dataset

log = logging.getLogger(__name__)

_MIN_PAIRS = 3
_STRONG_R = 0.5
_ALPHA = 0.05


@register(AnalysisKind.CORRELATION)
def correlation_analysis(dataset: Dataset) -> AnalysisResult:
    df = to_frame(dataset)
    numeric = numeric_columns(df)
    if len(numeric) < 2:
        raise ValueError(
            f"Correlation needs at least 2 numeric columns, found {len(numeric)}."
        )

    values = numeric_frame(df, numeric)
    warnings: list[str] = []
    pairs: list[tuple[str, str, float, float, int]] = []

    for a, b in itertools.combinations(numeric, 2):
        paired = values[[a, b]].dropna()
        if len(paired) < _MIN_PAIRS:
            continue
        # pearsonr is undefined for constant input
        if paired[a].nunique() < 2 or paired[b].nunique() < 2:
            continue
        r, p = stats.pearsonr(paired[a], paired[b])
        pairs.append((a, b, float(r), float(p), len(paired)))

    if not pairs:
        raise ValueError(
            f"No pair of numeric columns has at least {_MIN_PAIRS} complete, non-constant observations."
        )

    a, b, r_best, p_best, n_best = max(pairs, key=lambda t: abs(t[2]))
    abs_r = np.array([abs(t[2]) for t in pairs])

    if n_best < 20:
        warnings.append(f"Small sample size ({n_best} pairs). Results may not be reliable.")

    strongest = values[[a, b]].dropna()
    spearman_r, _ = stats.spearmanr(strongest[a], strongest[b])

    summary = {
        "numericColumns": str(len(numeric)),
        "pairsTested": str(len(pairs)),
        "strongCorrelations": str(int((abs_r >= _STRONG_R).sum())),
        "averageCorrelation": fmt(float(abs_r.mean())),
        "significantPairs": str(sum(1 for t in pairs if t[3] < _ALPHA)),
        "strongestPair": f"{a} ~ {b}",
        "strongestR": fmt(r_best, 3),
        "strongestPValue": fmt_p(p_best),
        "strongestSpearman": fmt(float(spearman_r), 3),
    }

    shown = strongest.head(settings.notebook.max_chart_points)
    if len(strongest) > len(shown):
        warnings.append(f"Scatter plot shows the first {len(shown)} of {len(strongest)} points.")
    chart = ChartSpec(
        kind=ChartKind.SCATTER,
        data=[XYPoint(x=float(x), y=float(y)) for x, y in shown.itertuples(index=False, name=None)],
    )

    return AnalysisResult(
        title="Correlation Analysis",
        stats=summary,
        chart=chart,
        analysis_kind=AnalysisKind.CORRELATION.value,
        warnings=warnings,
    )
