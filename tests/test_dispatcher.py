import asyncio
import time

from analyzer import analysis
from analyzer.analysis.models import AnalysisKind, AnalysisResult
from analyzer.dataset import ingest_csv
from analyzer.dispatcher import AnalysisDispatcher
from analyzer.errors import ProviderError
from analyzer.notebook import CellKind, NotebookState
from analyzer.provider import LocalProvider


class SlowProvider:
    name = "slow"

    async def analyze(self, dataset, kind, credential):
        await asyncio.sleep(10)
        return AnalysisResult(title="never", stats={})


class BrokenProvider:
    name = "broken"

    def __init__(self, exc: Exception):
        self.exc = exc

    async def analyze(self, dataset, kind, credential):
        raise self.exc


def _dispatcher(provider, timeout_s: float = 5) -> AnalysisDispatcher:
    return AnalysisDispatcher(NotebookState(), provider, timeout_s)


def test_no_dataset_is_a_no_op(survey_csv: str, echo_provider) -> None:
    provider = echo_provider()
    dispatcher = _dispatcher(provider)
    cell = dispatcher.state.create_cell(CellKind.ANALYSIS)

    result = asyncio.run(dispatcher.dispatch(cell.id, None, "sk-test", "descriptive"))

    assert result is None
    assert dispatcher.state.get(cell.id).output is None
    assert provider.calls == []


def test_no_credential_is_a_no_op(survey_csv: str, echo_provider) -> None:
    provider = echo_provider()
    dispatcher = _dispatcher(provider)
    cell = dispatcher.state.create_cell(CellKind.ANALYSIS)

    for credential in (None, ""):
        result = asyncio.run(dispatcher.dispatch(cell.id, ingest_csv(survey_csv), credential, "descriptive"))
        assert result is None
    assert dispatcher.state.get(cell.id).output is None
    assert provider.calls == []


def test_concurrent_runs_write_their_own_cells(survey_csv: str, echo_provider) -> None:
    # The first cell's analysis is issued first but resolves last.
    dispatcher = _dispatcher(echo_provider(delays={"descriptive": 0.05, "correlation": 0.0}))
    dataset = ingest_csv(survey_csv)
    a = dispatcher.state.create_cell(CellKind.ANALYSIS)
    b = dispatcher.state.create_cell(CellKind.ANALYSIS)

    async def run_both():
        return await asyncio.gather(
            dispatcher.dispatch(a.id, dataset, "sk-test", "descriptive"),
            dispatcher.dispatch(b.id, dataset, "sk-test", "correlation"),
        )

    asyncio.run(run_both())

    assert dispatcher.state.get(a.id).output.analysis_kind == "descriptive"
    assert dispatcher.state.get(b.id).output.analysis_kind == "correlation"


def test_last_resolution_wins_on_one_cell(survey_csv: str, echo_provider) -> None:
    dispatcher = _dispatcher(echo_provider(delays={"descriptive": 0.05, "chi-square": 0.0}))
    dataset = ingest_csv(survey_csv)
    cell = dispatcher.state.create_cell(CellKind.ANALYSIS)

    async def overlap():
        await asyncio.gather(
            dispatcher.dispatch(cell.id, dataset, "sk-test", "descriptive"),
            dispatcher.dispatch(cell.id, dataset, "sk-test", "chi-square"),
        )

    asyncio.run(overlap())

    assert dispatcher.state.get(cell.id).output.analysis_kind == "descriptive"


def test_unknown_kind_gets_descriptive_result(survey_csv: str) -> None:
    dispatcher = _dispatcher(LocalProvider())
    dataset = ingest_csv(survey_csv)
    cell = dispatcher.state.create_cell(CellKind.ANALYSIS)
    reference = dispatcher.state.create_cell(CellKind.ANALYSIS)

    async def run():
        await dispatcher.dispatch(cell.id, dataset, "sk-test", "not-a-real-kind")
        await dispatcher.dispatch(reference.id, dataset, "sk-test", "descriptive")

    asyncio.run(run())

    output = dispatcher.state.get(cell.id).output
    expected = dispatcher.state.get(reference.id).output
    assert not output.failed
    assert output.analysis_kind == "descriptive"
    assert output.title == expected.title
    assert list(output.stats) == list(expected.stats)
    assert output.chart.kind == expected.chart.kind
    assert any("not-a-real-kind" in w for w in output.warnings)


def test_timeout_attaches_failure_result(survey_csv: str) -> None:
    dispatcher = _dispatcher(SlowProvider(), timeout_s=0.01)
    cell = dispatcher.state.create_cell(CellKind.ANALYSIS)

    result = asyncio.run(dispatcher.dispatch(cell.id, ingest_csv(survey_csv), "sk-test", "descriptive"))

    assert result.failed
    assert "timed out" in result.stats["error"]
    assert result.chart is None
    assert dispatcher.state.get(cell.id).output == result
    assert not dispatcher.is_running(cell.id)


def test_provider_errors_attach_failure_result(survey_csv: str) -> None:
    for exc in (ProviderError("backend unavailable"), RuntimeError("boom")):
        dispatcher = _dispatcher(BrokenProvider(exc))
        cell = dispatcher.state.create_cell(CellKind.ANALYSIS)

        result = asyncio.run(dispatcher.dispatch(cell.id, ingest_csv(survey_csv), "sk-test", "chi-square"))

        assert result.failed
        assert result.stats == {"error": str(exc)}
        assert dispatcher.state.get(cell.id).output.failed


def test_unusable_data_attaches_failure_result(survey_csv: str) -> None:
    # Only one numeric column: correlation cannot run.
    dispatcher = _dispatcher(LocalProvider())
    cell = dispatcher.state.create_cell(CellKind.ANALYSIS)

    result = asyncio.run(dispatcher.dispatch(cell.id, ingest_csv(survey_csv), "sk-test", "correlation"))

    assert result.failed
    assert "numeric" in result.stats["error"]
    assert result.chart is None


def test_in_flight_tracking(survey_csv: str, echo_provider) -> None:
    dispatcher = _dispatcher(echo_provider(delays={"descriptive": 0.05}))
    cell = dispatcher.state.create_cell(CellKind.ANALYSIS)

    async def run():
        task = asyncio.create_task(
            dispatcher.dispatch(cell.id, ingest_csv(survey_csv), "sk-test", "descriptive")
        )
        await asyncio.sleep(0.01)
        running = dispatcher.is_running(cell.id), dispatcher.in_flight()
        await task
        return running

    assert asyncio.run(run()) == (True, 1)
    assert not dispatcher.is_running(cell.id)
    assert dispatcher.in_flight() == 0


def test_slow_handler_times_out_without_blocking_the_loop(survey_csv: str, monkeypatch) -> None:
    def slow_correlation(dataset):
        time.sleep(0.5)
        return AnalysisResult(title="too late", stats={})

    monkeypatch.setitem(analysis._REGISTRY, AnalysisKind.CORRELATION, slow_correlation)
    dispatcher = _dispatcher(LocalProvider(), timeout_s=0.05)
    cell = dispatcher.state.create_cell(CellKind.ANALYSIS)
    ticks = 0

    async def ticker():
        nonlocal ticks
        while True:
            await asyncio.sleep(0.01)
            ticks += 1

    async def run():
        t = asyncio.create_task(ticker())
        t0 = time.monotonic()
        result = await dispatcher.dispatch(cell.id, ingest_csv(survey_csv), "sk-test", "correlation")
        elapsed = time.monotonic() - t0
        t.cancel()
        return result, elapsed

    result, elapsed = asyncio.run(run())

    assert result.failed
    assert result.stats["error"] == "Analysis timed out after 0.05s"
    assert elapsed < 0.4
    assert ticks > 0
    assert dispatcher.state.get(cell.id).output == result


def test_unknown_cell_is_a_no_op(survey_csv: str, echo_provider) -> None:
    provider = echo_provider()
    dispatcher = _dispatcher(provider)

    result = asyncio.run(dispatcher.dispatch("cell_7", ingest_csv(survey_csv), "sk-test", "descriptive"))

    assert result is None
    assert provider.calls == []
    assert dispatcher.in_flight() == 0
