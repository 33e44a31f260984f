import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, HTTPException, Response, UploadFile
from starlette.concurrency import run_in_threadpool

from analyzer import llm
from analyzer.analysis import registered_kinds
from analyzer.config import settings
from analyzer.dataset import Dataset, ingest_csv
from analyzer.errors import CellNotFoundError, IngestionError, TemplateNotFoundError
from analyzer.models import (
    CellOut,
    ChartOut,
    CreateCellRequest,
    CredentialRequest,
    DatasetOut,
    DatasetPreview,
    EditCellRequest,
    NotebookOut,
    RunAccepted,
    RunAnalysisRequest,
    SetModelRequest,
    TemplateOut,
)
from analyzer.notebook import Cell
from analyzer.provider import AnalysisProvider
from analyzer.render import render_json
from analyzer.session import NotebookSession
from analyzer.templates import TEMPLATES, get_template

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

_CSV_CONTENT_TYPES = {"text/csv", "application/csv", "application/vnd.ms-excel", "text/plain"}

_session: NotebookSession | None = None


def get_session() -> NotebookSession:
    global _session
    if _session is None:
        _session = NotebookSession()
    return _session


def reset_session(provider: AnalysisProvider | None = None, timeout_s: float | None = None) -> NotebookSession:
    """Replace the in-memory notebook with a fresh one."""
    global _session
    _session = NotebookSession(provider=provider, timeout_s=timeout_s)
    return _session


def _cell_out(cell: Cell, session: NotebookSession) -> CellOut:
    return CellOut(
        id=cell.id,
        kind=cell.kind,
        content=cell.content,
        output=cell.output,
        running=session.is_running(cell.id),
    )


def _dataset_out(dataset: Dataset) -> DatasetOut:
    return DatasetOut(
        name=dataset.name,
        headers=list(dataset.headers),
        row_count=dataset.row_count,
        column_count=dataset.column_count,
    )


def _require_ready(session: NotebookSession) -> None:
    missing = session.missing_preconditions()
    if missing:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot run analysis: missing {', '.join(missing)}",
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    session = get_session()
    log.info(
        "Notebook ready (provider: %s, timeout: %.0fs)",
        session.dispatcher.provider.name, session.dispatcher.timeout_s,
    )
    yield
    if session.dispatcher.in_flight():
        log.info("Waiting for %d running analyses", session.dispatcher.in_flight())
        await session.wait_idle()
    await llm.close_client()


app = FastAPI(title="social-data-analyzer", version="0.1.0", lifespan=lifespan)


@app.get("/api/health")
async def health():
    return {"status": "ok", "analyses": [k.value for k in registered_kinds()]}


@app.get("/api/notebook", response_model=NotebookOut)
async def notebook():
    session = get_session()
    return NotebookOut(
        dataset=_dataset_out(session.dataset) if session.dataset else None,
        has_credential=session.has_credential,
        ready=session.ready,
        running=session.dispatcher.in_flight(),
        cells=[_cell_out(c, session) for c in session.cells()],
    )


# ── Dataset ──


@app.post("/api/dataset", response_model=DatasetOut)
async def upload_dataset(file: UploadFile = File(...)):
    filename = file.filename or ""
    if file.content_type not in _CSV_CONTENT_TYPES and not filename.lower().endswith(".csv"):
        raise HTTPException(status_code=415, detail="Upload a CSV file")
    data = await file.read()
    if len(data) > settings.notebook.max_upload_bytes:
        raise HTTPException(status_code=413, detail="File is too large")
    try:
        dataset = await run_in_threadpool(ingest_csv, data, name=filename)
    except IngestionError as e:
        log.warning("Rejected upload %r: %s", filename, e)
        raise HTTPException(status_code=400, detail=str(e))
    get_session().set_dataset(dataset)
    return _dataset_out(dataset)


@app.get("/api/dataset/preview", response_model=DatasetPreview)
async def dataset_preview(limit: int | None = None):
    dataset = get_session().dataset
    if dataset is None:
        raise HTTPException(status_code=404, detail="No dataset loaded")
    n = settings.notebook.preview_rows if limit is None else max(limit, 0)
    return DatasetPreview(
        headers=list(dataset.headers),
        rows=[list(r) for r in dataset.rows[:n]],
        row_count=dataset.row_count,
    )


# ── Settings ──


@app.get("/api/settings")
async def get_settings():
    session = get_session()
    return {
        "provider": session.dispatcher.provider.name,
        "analysis_timeout_s": session.dispatcher.timeout_s,
        "has_credential": session.has_credential,
        "current_model": llm.get_deployment(),
        "available_models": llm.AVAILABLE_MODELS,
    }


@app.put("/api/settings/credential")
async def set_credential(req: CredentialRequest):
    session = get_session()
    session.set_credential(req.credential)
    return {"has_credential": session.has_credential}


@app.delete("/api/settings/credential")
async def clear_credential():
    session = get_session()
    session.clear_credential()
    return {"has_credential": session.has_credential}


@app.put("/api/settings/model")
async def set_model(req: SetModelRequest):
    llm.set_deployment(req.model)
    return {"current_model": llm.get_deployment()}


# ── Cells ──


@app.post("/api/cells", response_model=CellOut)
async def create_cell(req: CreateCellRequest):
    session = get_session()
    cell = session.create_cell(req.kind, req.content)
    return _cell_out(cell, session)


@app.put("/api/cells/{cell_id}", response_model=CellOut)
async def edit_cell(cell_id: str, req: EditCellRequest):
    session = get_session()
    try:
        cell = session.edit_content(cell_id, req.content)
    except CellNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _cell_out(cell, session)


@app.post("/api/cells/{cell_id}/run", status_code=202)
async def run_cell(cell_id: str, response: Response, req: RunAnalysisRequest | None = None, wait: bool = False):
    """Start an analysis for a cell.

    Returns 202 right away; poll /api/notebook for the result. With
    wait=true the response is the cell once its output is attached.
    """
    session = get_session()
    analysis = (req or RunAnalysisRequest()).analysis
    if cell_id not in session.state:
        raise HTTPException(status_code=404, detail=f"Cell not found: {cell_id}")
    _require_ready(session)
    task = session.start_analysis(cell_id, analysis)
    if wait and task is not None:
        await asyncio.shield(task)
        response.status_code = 200
        return _cell_out(session.state.get(cell_id), session)
    return RunAccepted(cell_id=cell_id)


@app.get("/api/cells/{cell_id}/chart", response_model=ChartOut)
async def cell_chart(cell_id: str):
    try:
        cell = get_session().state.get(cell_id)
    except CellNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    chart = cell.output.chart if cell.output else None
    return ChartOut(cell_id=cell_id, figure=render_json(chart))


# ── Templates ──


@app.get("/api/templates", response_model=list[TemplateOut])
async def list_templates():
    return [
        TemplateOut(title=t.title, description=t.description, analysis_kind=t.analysis_kind.value)
        for t in TEMPLATES
    ]


@app.post("/api/templates/{kind}/run", status_code=202)
async def run_template(kind: str, response: Response, wait: bool = False):
    session = get_session()
    try:
        get_template(kind)
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    _require_ready(session)
    cell, task = session.trigger_template(kind)
    if wait:
        await asyncio.shield(task)
        response.status_code = 200
    return _cell_out(session.state.get(cell.id), session)


def run() -> None:
    """Serve the app with uvicorn (the `social-data-analyzer` command)."""
    import uvicorn

    uvicorn.run("analyzer.main:app", host="127.0.0.1", port=8000)
