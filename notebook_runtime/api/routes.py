from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from ..core.errors import DocumentError, UnsupportedLanguage
from ..kernel.dispatcher import ExecutionDispatcher
from ..kernel.types import ExecutionRequest
from ..models.result import CellExecutionResult
from ..notebook import cells_to_notebook, notebook_to_cells, parse_notebook, serialize_notebook
from .schemas import (
    CellSchema,
    ExecutionCountsResponse,
    ParseNotebookResponse,
    ResetCountsRequest,
    SerializeNotebookRequest,
)

router = APIRouter()

IPYNB_MEDIA_TYPE = "application/x-ipynb+json"


def get_dispatcher(request: Request) -> ExecutionDispatcher:
    """The dispatcher created by the application lifespan."""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(status_code=503, detail="Execution runtime is not initialized")
    return dispatcher


@router.post("/execute", response_model=CellExecutionResult, tags=["execution"])
async def execute(
    request_body: ExecutionRequest,
    dispatcher: ExecutionDispatcher = Depends(get_dispatcher),
):
    """Execute one cell's source and return its normalized result"""
    try:
        return await dispatcher.execute(
            request_body.language,
            request_body.source,
            request_body.options,
            cell_id=request_body.cell_id,
        )
    except UnsupportedLanguage as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/execution-counts", response_model=ExecutionCountsResponse, tags=["execution"])
async def get_execution_counts(dispatcher: ExecutionDispatcher = Depends(get_dispatcher)):
    return ExecutionCountsResponse(counts=dispatcher.execution_counts())


@router.post("/execution-counts/reset", response_model=ExecutionCountsResponse, tags=["execution"])
async def reset_execution_counts(
    request_body: Optional[ResetCountsRequest] = None,
    dispatcher: ExecutionDispatcher = Depends(get_dispatcher),
):
    """Reset one language's counter, or every counter when no language is given"""
    language = request_body.language if request_body else None
    try:
        dispatcher.reset_execution_count(language)
    except UnsupportedLanguage as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ExecutionCountsResponse(counts=dispatcher.execution_counts())


@router.post("/notebooks/parse", response_model=ParseNotebookResponse, tags=["notebooks"])
async def parse_notebook_document(request: Request):
    """Load a raw .ipynb body into in-memory cells"""
    body = await request.body()
    try:
        document = parse_notebook(body)
    except DocumentError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return ParseNotebookResponse(
        cells=[CellSchema.from_cell(cell) for cell in notebook_to_cells(document)],
        metadata=document.metadata.model_dump(mode="json", exclude_none=True),
        nbformat=document.nbformat,
        nbformat_minor=document.nbformat_minor,
    )


@router.post("/notebooks/serialize", tags=["notebooks"])
async def serialize_notebook_document(request_body: SerializeNotebookRequest):
    """Build an .ipynb document from in-memory cells"""
    document = cells_to_notebook(
        [cell.to_cell() for cell in request_body.cells],
        request_body.metadata,
    )
    return Response(content=serialize_notebook(document), media_type=IPYNB_MEDIA_TYPE)
