import asyncio
import importlib
import logging
from collections.abc import Callable

from analyzer.analysis.models import (
    FALLBACK_KIND,
    AnalysisKind,
    AnalysisResult,
    RequestedKind,
    UnknownKind,
    resolve_kind,
)
from analyzer.dataset import Dataset

log = logging.getLogger(__name__)

Handler = Callable[[Dataset], AnalysisResult]

_REGISTRY: dict[AnalysisKind, Handler] = {}

# Analysis module names, imported at bottom to auto-register
_MODULES = [
    "analyzer.analysis.descriptive",
    "analyzer.analysis.chi_square",
    "analyzer.analysis.correlation",
    "analyzer.analysis.missing_data",
    "analyzer.analysis.demographic",
]


def register(kind: AnalysisKind):
    """Decorator to register an analysis function."""

    def decorator(fn: Handler) -> Handler:
        _REGISTRY[kind] = fn
        return fn

    return decorator


def registered_kinds() -> list[AnalysisKind]:
    return [k for k in AnalysisKind if k in _REGISTRY]


async def run_analysis(dataset: Dataset, kind: RequestedKind | str) -> AnalysisResult:
    """Dispatch to the registered analysis function.

    Unknown kinds are not an error: they get the descriptive analysis, with a
    note in the result's warnings. Handlers are synchronous pandas/scipy code
    and run in a worker thread so the event loop stays free.
    """
    if isinstance(kind, str) and not isinstance(kind, AnalysisKind):
        kind = resolve_kind(kind)

    notes: list[str] = []
    if isinstance(kind, UnknownKind):
        log.info("Unknown analysis kind %r, falling back to %s", kind.name, FALLBACK_KIND.value)
        notes.append(
            f"Unknown analysis kind '{kind.name}'; showing {FALLBACK_KIND.value} statistics instead."
        )
        kind = FALLBACK_KIND

    fn = _REGISTRY.get(kind)
    if not fn:
        raise ValueError(
            f"No handler for analysis kind: {kind.value}. "
            f"Available: {', '.join(k.value for k in registered_kinds())}"
        )
    log.info("Running analysis: %s on %d rows", kind.value, dataset.row_count)
    result = await asyncio.to_thread(fn, dataset)
    if notes:
        result = result.model_copy(update={"warnings": notes + result.warnings})
    return result


# Auto-import modules to trigger @register decorators
for _mod in _MODULES:
    importlib.import_module(_mod)
