import asyncio

import pytest

from analyzer import llm
from analyzer.analysis.models import AnalysisKind, UnknownKind
from analyzer.dataset import ingest_csv
from analyzer.dispatcher import AnalysisDispatcher
from analyzer.errors import ProviderError
from analyzer.notebook import CellKind, NotebookState
from analyzer.provider import LLMProvider, LocalProvider, MockProvider, build_provider


def test_build_provider() -> None:
    assert isinstance(build_provider("local"), LocalProvider)
    assert isinstance(build_provider("llm"), LLMProvider)
    assert isinstance(build_provider("mock"), MockProvider)
    with pytest.raises(ValueError):
        build_provider("remote")


def test_mock_provider_canned_results(survey_csv: str) -> None:
    provider = MockProvider(delay_s=0)
    dataset = ingest_csv(survey_csv)

    chi = asyncio.run(provider.analyze(dataset, AnalysisKind.CHI_SQUARE, "sk-test"))
    assert chi.stats["pValue"] == "0.032"
    assert chi.chart.kind == "pie"

    fallback = asyncio.run(provider.analyze(dataset, UnknownKind("anova"), "sk-test"))
    assert fallback.title == "Descriptive Statistics"
    assert fallback.stats["totalRows"] == "2"
    assert [p.name for p in fallback.chart.data] == ["age", "vote"]


def test_mock_provider_is_deterministic(survey_csv: str) -> None:
    dataset = ingest_csv(survey_csv)
    first = asyncio.run(MockProvider(delay_s=0).analyze(dataset, AnalysisKind.CORRELATION, ""))
    second = asyncio.run(MockProvider(delay_s=0).analyze(dataset, AnalysisKind.CORRELATION, ""))
    assert first == second


def test_llm_provider_adds_interpretation(survey_csv: str, monkeypatch) -> None:
    seen = {}

    async def fake_chat(system_prompt, user_message, api_key, max_tokens=1024):
        seen["api_key"] = api_key
        seen["message"] = user_message
        return '```json\n{"interpretation": "Both rows are complete."}\n```', "stop"

    monkeypatch.setattr(llm, "chat", fake_chat)
    result = asyncio.run(LLMProvider().analyze(ingest_csv(survey_csv), AnalysisKind.DESCRIPTIVE, "sk-user"))

    assert seen["api_key"] == "sk-user"
    assert '"totalRows": "2"' in seen["message"]
    assert result.stats["interpretation"] == "Both rows are complete."
    assert list(result.stats)[0] == "totalRows"


def test_llm_failure_becomes_failure_result(survey_csv: str, monkeypatch) -> None:
    async def failing_chat(system_prompt, user_message, api_key, max_tokens=1024):
        raise RuntimeError("401 invalid api key")

    monkeypatch.setattr(llm, "chat", failing_chat)

    with pytest.raises(ProviderError):
        asyncio.run(LLMProvider().analyze(ingest_csv(survey_csv), AnalysisKind.DESCRIPTIVE, "bad"))

    dispatcher = AnalysisDispatcher(NotebookState(), LLMProvider(), timeout_s=5)
    cell = dispatcher.state.create_cell(CellKind.ANALYSIS)
    result = asyncio.run(dispatcher.dispatch(cell.id, ingest_csv(survey_csv), "bad", "descriptive"))
    assert result.failed
    assert result.stats["error"] == "LLM error: 401 invalid api key"


def test_parse_json_reply() -> None:
    assert llm.parse_json_reply('{"a": 1}') == {"a": 1}
    assert llm.parse_json_reply('Sure!\n{"a": 2}\nDone.') == {"a": 2}
    with pytest.raises(ValueError):
        llm.parse_json_reply("no json here")


def test_max_completion_tokens_models() -> None:
    assert llm._needs_max_completion_tokens("gpt-5-mini")
    assert llm._needs_max_completion_tokens("o3-mini-2025")
    assert not llm._needs_max_completion_tokens("gpt-4o-mini")


class FakeClient:
    def __init__(self, api_key):
        self.api_key = api_key
        self.closed = False

    async def close(self):
        self.closed = True


def test_client_is_kept_per_credential_and_closed_on_change(monkeypatch) -> None:
    monkeypatch.setattr(llm, "AsyncOpenAI", FakeClient)
    monkeypatch.setattr(llm.settings.openai, "endpoint", "")
    monkeypatch.setattr(llm, "_client", None)
    monkeypatch.setattr(llm, "_client_key", None)

    async def run():
        first = await llm.get_client("sk-a")
        again = await llm.get_client("sk-a")
        second = await llm.get_client("sk-b")
        await llm.close_client()
        return first, again, second

    first, again, second = asyncio.run(run())

    assert first is again
    assert first.closed
    assert second.api_key == "sk-b"
    assert second.closed
    assert llm._client is None
