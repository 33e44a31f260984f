"""Analysis providers: the backends that turn (dataset, kind) into a result.

The dispatcher only depends on the AnalysisProvider protocol. Three
implementations ship with the service:

- LocalProvider runs the registered statistics in-process.
- LLMProvider runs the same statistics and asks a chat model to interpret
  them, using the notebook credential as the API key.
- MockProvider waits a fixed delay and returns canned results. It is the
  stand-in used by tests and demos.
"""

import asyncio
import logging
from typing import Protocol

import numpy as np

from analyzer import llm
from analyzer.analysis import run_analysis
from analyzer.analysis.models import (
    FALLBACK_KIND,
    AnalysisKind,
    AnalysisResult,
    CategoryPoint,
    ChartKind,
    ChartSpec,
    RequestedKind,
    UnknownKind,
    XYPoint,
)
from analyzer.config import settings
from analyzer.dataset import Dataset
from analyzer.errors import ProviderError
from analyzer.prompts import build_system_prompt, build_user_message

log = logging.getLogger(__name__)


class AnalysisProvider(Protocol):
    name: str

    async def analyze(self, dataset: Dataset, kind: RequestedKind, credential: str) -> AnalysisResult:
        ...


class LocalProvider:
    name = "local"

    async def analyze(self, dataset: Dataset, kind: RequestedKind, credential: str) -> AnalysisResult:
        return await run_analysis(dataset, kind)


class LLMProvider:
    name = "llm"

    async def analyze(self, dataset: Dataset, kind: RequestedKind, credential: str) -> AnalysisResult:
        result = await run_analysis(dataset, kind)
        try:
            raw, finish_reason = await llm.chat(
                build_system_prompt(), build_user_message(dataset, result), api_key=credential
            )
            parsed = llm.parse_json_reply(raw)
        except Exception as e:
            raise ProviderError(f"LLM error: {e}") from e

        interpretation = str(parsed.get("interpretation", "")).strip()
        if not interpretation:
            log.warning("LLM reply had no interpretation (finish_reason=%s)", finish_reason)
            return result
        stats = {**result.stats, "interpretation": interpretation}
        return result.model_copy(update={"stats": stats})


class MockProvider:
    """Canned results after a fixed delay."""

    name = "mock"

    def __init__(self, delay_s: float | None = None, seed: int = 0):
        self.delay_s = settings.notebook.mock_delay_s if delay_s is None else delay_s
        self.seed = seed

    async def analyze(self, dataset: Dataset, kind: RequestedKind, credential: str) -> AnalysisResult:
        await asyncio.sleep(self.delay_s)
        rng = np.random.default_rng(self.seed)
        if isinstance(kind, UnknownKind) or kind not in _CANNED:
            kind = FALLBACK_KIND
        return _CANNED[kind](dataset, rng)


def _mock_descriptive(dataset: Dataset, rng: np.random.Generator) -> AnalysisResult:
    return AnalysisResult(
        title="Descriptive Statistics",
        stats={
            "totalRows": str(dataset.row_count),
            "totalColumns": str(dataset.column_count),
            "missingData": str(int(dataset.row_count * 0.1)),
            "completeness": "89%",
        },
        chart=ChartSpec(
            kind=ChartKind.BAR,
            data=[
                CategoryPoint(name=col, value=float(rng.integers(0, 100)))
                for col in dataset.headers[:5]
            ],
        ),
        analysis_kind=AnalysisKind.DESCRIPTIVE.value,
    )


def _mock_chi_square(dataset: Dataset, rng: np.random.Generator) -> AnalysisResult:
    return AnalysisResult(
        title="Chi-Square Test Results",
        stats={
            "chiSquare": "12.45",
            "pValue": "0.032",
            "significance": "Significant at p < 0.05",
            "interpretation": "There is a significant association between the variables",
        },
        chart=ChartSpec(
            kind=ChartKind.PIE,
            data=[
                CategoryPoint(name="Category A", value=35),
                CategoryPoint(name="Category B", value=45),
                CategoryPoint(name="Category C", value=20),
            ],
        ),
        analysis_kind=AnalysisKind.CHI_SQUARE.value,
    )


def _mock_correlation(dataset: Dataset, rng: np.random.Generator) -> AnalysisResult:
    points = rng.uniform(0, 100, size=(50, 2))
    return AnalysisResult(
        title="Correlation Analysis",
        stats={
            "strongCorrelations": "3",
            "averageCorrelation": "0.42",
            "significantPairs": "8",
        },
        chart=ChartSpec(
            kind=ChartKind.SCATTER,
            data=[XYPoint(x=float(x), y=float(y)) for x, y in points],
        ),
        analysis_kind=AnalysisKind.CORRELATION.value,
    )


_CANNED = {
    AnalysisKind.DESCRIPTIVE: _mock_descriptive,
    AnalysisKind.CHI_SQUARE: _mock_chi_square,
    AnalysisKind.CORRELATION: _mock_correlation,
}


def build_provider(name: str | None = None) -> AnalysisProvider:
    name = name or settings.notebook.provider
    if name == "local":
        return LocalProvider()
    if name == "llm":
        return LLMProvider()
    if name == "mock":
        return MockProvider()
    raise ValueError(f"Unknown analysis provider: {name}")
