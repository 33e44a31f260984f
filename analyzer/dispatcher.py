"""Runs analyses against a provider and writes the result into the owning cell.

Each dispatch is an independent coroutine keyed by cell id. Dispatches for
different cells can be in flight together; each one only ever writes its
own cell. Overlapping dispatches for the same cell are allowed and the last
one to resolve wins.
"""

import asyncio
import logging
import time
from collections import Counter

from analyzer.analysis.models import AnalysisResult, UnknownKind, resolve_kind
from analyzer.dataset import Dataset
from analyzer.errors import CellNotFoundError, PreconditionNotMet, ProviderError, ProviderTimeoutError
from analyzer.notebook import NotebookState
from analyzer.provider import AnalysisProvider

log = logging.getLogger(__name__)


def missing_preconditions(dataset: Dataset | None, credential: str | None) -> list[str]:
    missing = []
    if dataset is None:
        missing.append("dataset")
    if not credential:
        missing.append("credential")
    return missing


class AnalysisDispatcher:
    def __init__(self, state: NotebookState, provider: AnalysisProvider, timeout_s: float):
        self.state = state
        self.provider = provider
        self.timeout_s = timeout_s
        self._in_flight: Counter[str] = Counter()

    def is_running(self, cell_id: str) -> bool:
        return self._in_flight[cell_id] > 0

    def in_flight(self) -> int:
        return sum(self._in_flight.values())

    async def _resolve(self, dataset: Dataset, analysis_kind: str, credential: str) -> AnalysisResult:
        kind = resolve_kind(analysis_kind)
        label = kind.name if isinstance(kind, UnknownKind) else kind.value
        try:
            return await asyncio.wait_for(
                self.provider.analyze(dataset, kind, credential), timeout=self.timeout_s
            )
        except asyncio.TimeoutError:
            err = ProviderTimeoutError(self.timeout_s)
            log.warning("Analysis %s timed out after %.1fs", label, self.timeout_s)
            return AnalysisResult.failure(str(err), analysis_kind=label)
        except ProviderError as e:
            log.warning("Provider failed for %s: %s", label, e)
            return AnalysisResult.failure(str(e), analysis_kind=label)
        except Exception as e:
            log.exception("Analysis %s failed", label)
            return AnalysisResult.failure(str(e) or type(e).__name__, analysis_kind=label)

    async def dispatch(
        self,
        cell_id: str,
        dataset: Dataset | None,
        credential: str | None,
        analysis_kind: str,
    ) -> AnalysisResult | None:
        """Run one analysis and attach its result to cell_id.

        Returns None without touching any cell when the dataset or credential
        is missing, or when cell_id is unknown. Provider failures and timeouts
        come back as failure results attached to the cell.
        """
        missing = missing_preconditions(dataset, credential)
        if missing:
            log.warning("%s (cell %s)", PreconditionNotMet(missing), cell_id)
            return None
        # Cells are never removed, so a known id stays known until attach.
        if cell_id not in self.state:
            log.warning("Not dispatching %s: %s", analysis_kind, CellNotFoundError(cell_id))
            return None

        t0 = time.monotonic()
        self._in_flight[cell_id] += 1
        try:
            result = await self._resolve(dataset, analysis_kind, credential)
        finally:
            self._in_flight[cell_id] -= 1
            if not self._in_flight[cell_id]:
                del self._in_flight[cell_id]

        self.state.attach_output(cell_id, result)
        log.info(
            "Analysis %s for %s %s in %.2fs",
            analysis_kind, cell_id, "failed" if result.failed else "finished", time.monotonic() - t0,
        )
        return result
