# src/api/server.py

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from graph_extract.exceptions import (
    InvalidConfiguration,
    ModelError,
    ModelUnavailable,
    PreconditionNotMet,
    RunInProgress,
)
from graph_extract.service import GraphExtractionService

service = GraphExtractionService()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    service.close()


app = FastAPI(title="Text to Graph Extraction API", version="0.1.0", lifespan=lifespan)


class ExtractRequest(BaseModel):
    text: str
    model: str | None = None
    base_url: str | None = None
    temperature: float | None = None
    chunk_size: int | None = None
    system_prompt: str | None = None
    user_prompt_template: str | None = None


class ExtractResponse(BaseModel):
    status: str
    error: str | None = None
    logs: list[str]
    graph: dict
    table: list[dict]
    num_nodes: int
    num_edges: int
    top_entities: list[dict]


class ModelInfo(BaseModel):
    name: str
    alias: str


class ExportRequest(BaseModel):
    rows: list[dict[str, str]]


@app.post("/extract", response_model=ExtractResponse)
def extract(req: ExtractRequest):
    """
    Run the extraction pipeline over the given text.
    A model failure still returns 200 with status "failed" and partial results.
    """
    overrides = req.model_dump(exclude={"text"})
    try:
        result = service.extract(req.text, **overrides)
    except (PreconditionNotMet, InvalidConfiguration) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RunInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ExtractResponse(**result)


@app.get("/models", response_model=list[ModelInfo])
def models(base_url: str | None = None):
    try:
        found = service.list_models(base_url)
    except (ModelUnavailable, ModelError) as e:
        raise HTTPException(status_code=502, detail=str(e))
    return [ModelInfo(**m) for m in found]


@app.post("/export")
def export(req: ExportRequest):
    try:
        payload = service.export_csv(req.rows)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=f"Missing column {e}")
    return PlainTextResponse(
        payload["content"],
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{payload["filename"]}"'},
    )


@app.get("/health")
def health():
    return {"status": "ok"}
