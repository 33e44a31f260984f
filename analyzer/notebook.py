"""Cell store for a single notebook.

NotebookState owns every Cell and its output. Callers get copies back, so
the only way to change a cell is through create_cell, edit_content and
attach_output.
"""

import itertools
import logging
from enum import Enum

from pydantic import BaseModel

from analyzer.analysis.models import AnalysisResult
from analyzer.errors import CellNotFoundError

log = logging.getLogger(__name__)

DEFAULT_CODE = "# Write your analysis code here\n"


class CellKind(str, Enum):
    CODE = "code"
    INFO = "info"
    ANALYSIS = "analysis"


class Cell(BaseModel):
    id: str
    kind: CellKind
    content: str = ""
    output: AnalysisResult | None = None


class NotebookState:
    def __init__(self) -> None:
        # dict keeps creation order; nothing ever reorders it
        self._cells: dict[str, Cell] = {}
        self._counter = itertools.count(1)

    def _next_id(self) -> str:
        return f"cell_{next(self._counter)}"

    def _require(self, cell_id: str) -> Cell:
        cell = self._cells.get(cell_id)
        if cell is None:
            raise CellNotFoundError(cell_id)
        return cell

    def create_cell(self, kind: CellKind | str, content: str | None = None) -> Cell:
        kind = CellKind(kind)
        if content is None:
            content = DEFAULT_CODE if kind is CellKind.CODE else ""
        cell = Cell(id=self._next_id(), kind=kind, content=content)
        self._cells[cell.id] = cell
        log.debug("Created %s cell %s", kind.value, cell.id)
        return cell.model_copy(deep=True)

    def edit_content(self, cell_id: str, content: str) -> Cell:
        cell = self._require(cell_id)
        cell.content = content
        return cell.model_copy(deep=True)

    def attach_output(self, cell_id: str, result: AnalysisResult) -> Cell:
        """Set (or replace) the output of one cell. Other cells are untouched."""
        cell = self._require(cell_id)
        cell.output = result.model_copy(deep=True)
        log.debug("Attached %r to %s", result.title, cell_id)
        return cell.model_copy(deep=True)

    def get(self, cell_id: str) -> Cell:
        return self._require(cell_id).model_copy(deep=True)

    def cells(self) -> list[Cell]:
        return [c.model_copy(deep=True) for c in self._cells.values()]

    def __contains__(self, cell_id: object) -> bool:
        return cell_id in self._cells

    def __len__(self) -> int:
        return len(self._cells)
