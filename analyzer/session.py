"""The notebook session: one dataset, one credential, one cell store.

All state changes go through the methods here (or the NotebookState
operations they call). Analyses run as asyncio tasks on the running loop.
"""

import asyncio
import logging

from analyzer.analysis.models import AnalysisResult
from analyzer.config import settings
from analyzer.dataset import Dataset, ingest_csv
from analyzer.dispatcher import AnalysisDispatcher, missing_preconditions
from analyzer.errors import CellNotFoundError
from analyzer.notebook import Cell, CellKind, NotebookState
from analyzer.provider import AnalysisProvider, build_provider
from analyzer.templates import get_template

log = logging.getLogger(__name__)


class NotebookSession:
    def __init__(self, provider: AnalysisProvider | None = None, timeout_s: float | None = None):
        self.state = NotebookState()
        self.dispatcher = AnalysisDispatcher(
            self.state,
            provider or build_provider(),
            settings.notebook.analysis_timeout_s if timeout_s is None else timeout_s,
        )
        self._dataset: Dataset | None = None
        self._credential: str = ""
        self._tasks: set[asyncio.Task] = set()

    # ── Dataset and credential ──

    @property
    def dataset(self) -> Dataset | None:
        return self._dataset

    @property
    def has_credential(self) -> bool:
        return bool(self._credential)

    def load_dataset(self, data: bytes | str, name: str = "") -> Dataset:
        """Ingest CSV content and make it the current dataset.

        Raises IngestionError and leaves the current dataset in place on bad
        input.
        """
        return self.set_dataset(ingest_csv(data, name=name))

    def set_dataset(self, dataset: Dataset) -> Dataset:
        """Make an ingested dataset current. Existing cells and outputs are kept."""
        self._dataset = dataset
        self.state.create_cell(
            CellKind.INFO,
            f"Dataset loaded! {dataset.row_count} rows, {dataset.column_count} columns",
        )
        log.info("Dataset %r loaded into session", dataset.name)
        return dataset

    def set_credential(self, credential: str) -> None:
        self._credential = credential.strip()

    def clear_credential(self) -> None:
        self._credential = ""

    def missing_preconditions(self) -> list[str]:
        return missing_preconditions(self._dataset, self._credential)

    @property
    def ready(self) -> bool:
        return not self.missing_preconditions()

    # ── Cells ──

    def create_cell(self, kind: CellKind | str = CellKind.CODE, content: str | None = None) -> Cell:
        return self.state.create_cell(kind, content)

    def edit_content(self, cell_id: str, content: str) -> Cell:
        return self.state.edit_content(cell_id, content)

    def cells(self) -> list[Cell]:
        return self.state.cells()

    def is_running(self, cell_id: str) -> bool:
        return self.dispatcher.is_running(cell_id)

    # ── Analyses ──

    async def run_analysis(self, cell_id: str, analysis_kind: str) -> AnalysisResult | None:
        return await self.dispatcher.dispatch(cell_id, self._dataset, self._credential, analysis_kind)

    def start_analysis(self, cell_id: str, analysis_kind: str) -> asyncio.Task | None:
        """Schedule run_analysis on the running loop.

        Returns None (and schedules nothing) when preconditions are missing.
        Raises CellNotFoundError for an unknown cell.
        """
        if cell_id not in self.state:
            raise CellNotFoundError(cell_id)
        if not self.ready:
            log.warning("Not starting %s for %s: missing %s", analysis_kind, cell_id, self.missing_preconditions())
            return None
        # Bind the current dataset and credential before the task first runs.
        task = asyncio.create_task(
            self.dispatcher.dispatch(cell_id, self._dataset, self._credential, analysis_kind)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def trigger_template(self, kind: str) -> tuple[Cell, asyncio.Task] | None:
        """Create an analysis cell for a template and start its analysis.

        The analysis is bound to the id of the cell created here. Nothing is
        created when preconditions are missing, or when called outside a
        running event loop (RuntimeError).
        """
        template = get_template(kind)
        if not self.ready:
            log.warning("Template %r ignored: missing %s", template.title, self.missing_preconditions())
            return None
        # The cell and its task are created together or not at all.
        asyncio.get_running_loop()
        cell = self.state.create_cell(CellKind.ANALYSIS, template.description)
        task = self.start_analysis(cell.id, template.analysis_kind.value)
        return cell, task

    async def wait_idle(self) -> None:
        """Wait for every analysis started on this session."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
