from typing import Any

from pydantic import BaseModel

from analyzer.analysis.models import AnalysisKind, AnalysisResult
from analyzer.notebook import CellKind


class CredentialRequest(BaseModel):
    credential: str


class SetModelRequest(BaseModel):
    model: str


class CreateCellRequest(BaseModel):
    kind: CellKind = CellKind.CODE
    content: str | None = None


class EditCellRequest(BaseModel):
    content: str


class RunAnalysisRequest(BaseModel):
    # Free text: unknown kinds fall back to descriptive.
    analysis: str = AnalysisKind.DESCRIPTIVE.value


class CellOut(BaseModel):
    id: str
    kind: CellKind
    content: str
    output: AnalysisResult | None = None
    running: bool = False


class DatasetOut(BaseModel):
    name: str
    headers: list[str]
    row_count: int
    column_count: int


class DatasetPreview(BaseModel):
    headers: list[str]
    rows: list[list[str]]
    row_count: int


class NotebookOut(BaseModel):
    dataset: DatasetOut | None = None
    has_credential: bool = False
    ready: bool = False
    running: int = 0
    cells: list[CellOut] = []


class TemplateOut(BaseModel):
    title: str
    description: str
    analysis_kind: str


class RunAccepted(BaseModel):
    cell_id: str
    status: str = "running"


class ChartOut(BaseModel):
    cell_id: str
    figure: dict[str, Any] | None = None
