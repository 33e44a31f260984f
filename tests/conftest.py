import asyncio

import pytest
from fastapi.testclient import TestClient

import analyzer.main as main
from analyzer.analysis.models import AnalysisResult, UnknownKind
from analyzer.provider import LocalProvider

SURVEY_CSV = "age,vote\n34,yes\n,\n29,no\n"


class EchoProvider:
    """Returns a result naming the kind and dataset it was called with."""

    name = "echo"

    def __init__(self, delays: dict[str, float] | None = None):
        self.delays = delays or {}
        self.calls: list[str] = []

    async def analyze(self, dataset, kind, credential):
        label = kind.name if isinstance(kind, UnknownKind) else kind.value
        self.calls.append(label)
        await asyncio.sleep(self.delays.get(label, 0))
        return AnalysisResult(
            title=label,
            stats={"kind": label, "rows": str(dataset.row_count)},
            analysis_kind=label,
        )


@pytest.fixture
def survey_csv() -> str:
    return SURVEY_CSV


@pytest.fixture
def client():
    main.reset_session(provider=LocalProvider(), timeout_s=5)
    with TestClient(main.app) as c:
        yield c
    main.reset_session()


@pytest.fixture
def echo_provider():
    return EchoProvider
