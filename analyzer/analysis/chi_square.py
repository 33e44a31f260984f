"""Chi-square tests on categorical columns."""

import logging

import pandas as pd
from scipy import stats

from analyzer.analysis import register
from analyzer.analysis.frame import categorical_columns, fmt, fmt_p, to_frame
from analyzer.analysis.models import AnalysisKind, AnalysisResult, CategoryPoint, ChartKind, ChartSpec
from analyzer.dataset import Dataset

log = logging.getLogger(__name__)

_MAX_LEVELS = 50
_ALPHA = 0.05


def _candidate_columns(df: pd.DataFrame) -> list[str]:
    return [c for c in categorical_columns(df) if 2 <= df[c].nunique() <= _MAX_LEVELS]


@register(AnalysisKind.CHI_SQUARE)
def chi_square_analysis(dataset: Dataset) -> AnalysisResult:
    df = to_frame(dataset)
    candidates = _candidate_columns(df)
    if not candidates:
        raise ValueError(
            f"Chi-square test needs a categorical column with 2 to {_MAX_LEVELS} distinct values."
        )

    warnings: list[str] = []
    first = candidates[0]

    if len(candidates) >= 2:
        second = candidates[1]
        table = pd.crosstab(df[first], df[second])
        if table.shape[0] < 2 or table.shape[1] < 2:
            raise ValueError(
                f"Not enough rows with values for both {first} and {second} to build a contingency table."
            )
        chi2, p_value, dof, expected = stats.chi2_contingency(table)
        if (expected < 5).any():
            warnings.append(
                "Some expected cell counts are below 5; the chi-square approximation may be unreliable."
            )
        test_name = "Chi-square test of independence"
        variables = f"{first} x {second}"
        if p_value < _ALPHA:
            interpretation = f"There is a significant association between {first} and {second}"
        else:
            interpretation = f"No significant association between {first} and {second}"
    else:
        counts = df[first].value_counts()
        chi2, p_value = stats.chisquare(counts.to_numpy())
        dof = len(counts) - 1
        test_name = "Chi-square goodness-of-fit (uniform)"
        variables = first
        warnings.append("Only one categorical column found; tested against a uniform distribution.")
        if p_value < _ALPHA:
            interpretation = f"The distribution of {first} differs significantly from uniform"
        else:
            interpretation = f"The distribution of {first} is consistent with a uniform distribution"

    significant = p_value < _ALPHA
    summary = {
        "chiSquare": fmt(chi2),
        "pValue": fmt_p(float(p_value)),
        "degreesOfFreedom": str(int(dof)),
        "variables": variables,
        "test": test_name,
        "significance": f"{'Significant' if significant else 'Not significant'} at p < {_ALPHA}",
        "interpretation": interpretation,
    }

    level_counts = df[first].value_counts()
    chart = ChartSpec(
        kind=ChartKind.PIE,
        data=[CategoryPoint(name=str(level), value=float(n)) for level, n in level_counts.items()],
    )

    return AnalysisResult(
        title="Chi-Square Test Results",
        stats=summary,
        chart=chart,
        analysis_kind=AnalysisKind.CHI_SQUARE.value,
        warnings=warnings,
    )
