from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, model_validator


class AnalysisKind(str, Enum):
    DESCRIPTIVE = "descriptive"
    CHI_SQUARE = "chi-square"
    CORRELATION = "correlation"
    MISSING_DATA = "missing-data"
    DEMOGRAPHIC = "demographic"


@dataclass(frozen=True)
class UnknownKind:
    """An analysis kind nobody handles. Routed to the descriptive fallback."""

    name: str


RequestedKind = AnalysisKind | UnknownKind

FALLBACK_KIND = AnalysisKind.DESCRIPTIVE


def resolve_kind(name: str) -> RequestedKind:
    try:
        return AnalysisKind(name.strip().lower())
    except ValueError:
        return UnknownKind(name)


class ChartKind(str, Enum):
    BAR = "bar"
    PIE = "pie"
    SCATTER = "scatter"


class CategoryPoint(BaseModel):
    name: str
    value: float


class XYPoint(BaseModel):
    x: float
    y: float


class ChartSpec(BaseModel):
    # Any string is accepted; kinds the renderer does not know draw nothing.
    kind: ChartKind | str
    data: list[CategoryPoint | XYPoint] = []

    @model_validator(mode="after")
    def _check_point_shape(self) -> "ChartSpec":
        if self.kind in (ChartKind.BAR, ChartKind.PIE):
            expected: type[BaseModel] = CategoryPoint
        elif self.kind == ChartKind.SCATTER:
            expected = XYPoint
        else:
            return self
        for point in self.data:
            if not isinstance(point, expected):
                kind = getattr(self.kind, "value", self.kind)
                raise ValueError(f"{kind} chart expects {expected.__name__} data points")
        return self


class AnalysisResult(BaseModel):
    title: str
    stats: dict[str, str]  # display order is insertion order
    chart: ChartSpec | None = None
    analysis_kind: str = ""
    warnings: list[str] = []  # data quality notes
    failed: bool = False

    @classmethod
    def failure(cls, message: str, analysis_kind: str = "", title: str = "Analysis failed") -> "AnalysisResult":
        return cls(
            title=title,
            stats={"error": message},
            chart=None,
            analysis_kind=analysis_kind,
            failed=True,
        )
