from __future__ import annotations

import locale
import logging
from typing import List, Literal, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse

from .config import Settings, get_settings
from .errors import (
    ColumnIndexError,
    ExportIOError,
    MalformedRowError,
    NoTableLoadedError,
    ParseError,
    PathNotAllowedError,
    TableViewError,
    UnsupportedFormatError,
)
from .models import (
    Effect,
    ExportRequest,
    FilterRequest,
    HealthResponse,
    OpenRequest,
    SessionCreated,
    SortRequest,
    TableInfo,
    ViewResponse,
)
from .parsers import detect_file_type
from .session import Session, SessionStore

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ParseError: 422,
    MalformedRowError: 422,
    ColumnIndexError: 422,
    UnsupportedFormatError: 415,
    NoTableLoadedError: 409,
    ExportIOError: 500,
    PathNotAllowedError: 403,
}

MEDIA_TYPES = {"csv": "text/csv", "json": "application/json"}


def setup_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def setup_collation(settings: Settings) -> None:
    if not settings.collation_locale:
        return
    try:
        locale.setlocale(locale.LC_COLLATE, settings.collation_locale)
    except locale.Error:
        logger.warning(
            "locale %r unavailable; sorting with %r",
            settings.collation_locale,
            locale.setlocale(locale.LC_COLLATE),
        )


def resolve_path(settings: Settings, raw: str) -> str:
    """
    Confine a client-supplied path to ``settings.data_dir``.

    Relative paths resolve against the data directory; anything that lands
    outside it (``..``, absolute paths, symlinks) is refused. Blank paths pass
    through so export can report the cancelled destination itself.
    """
    if settings.data_dir is None or not raw.strip():
        return raw
    base = settings.data_dir.resolve()
    candidate = (base / raw).resolve()
    if not candidate.is_relative_to(base):
        raise PathNotAllowedError(raw)
    return str(candidate)


def get_session(session_id: str, request: Request) -> Session:
    session = request.app.state.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def view_response(session: Session, effects: Optional[List[Effect]] = None) -> ViewResponse:
    table = session.state.table
    if table is None:
        return ViewResponse(effects=effects or [])
    return ViewResponse(
        table=TableInfo(
            file_name=table.file_name,
            file_type=table.file_type,
            column_count=len(table.headers),
            row_count=table.row_count,
        ),
        view=session.state.view,
        effects=effects or [],
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)
    setup_collation(settings)

    app = FastAPI(
        title=settings.app_title,
        description="Load CSV, JSON and JSONL files into one table, then filter, sort and re-export it",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.sessions = SessionStore(max_sessions=settings.max_sessions)

    @app.exception_handler(TableViewError)
    async def table_view_error_handler(request: Request, exc: TableViewError) -> JSONResponse:
        status = ERROR_STATUS.get(type(exc), 400)
        logger.info("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=status,
            content={"error": type(exc).__name__, "detail": exc.message},
        )

    @app.get("/health", response_model=HealthResponse)
    def health():
        return {"ok": True}

    @app.post("/sessions", response_model=SessionCreated, status_code=201)
    def create_session(request: Request):
        session = request.app.state.sessions.create()
        return {"session_id": session.session_id}

    @app.delete("/sessions/{session_id}", status_code=204)
    def delete_session(session_id: str, request: Request):
        if not request.app.state.sessions.drop(session_id):
            raise HTTPException(status_code=404, detail="Session not found")

    @app.post("/sessions/{session_id}/upload", response_model=ViewResponse)
    async def upload(file: UploadFile = File(...), session: Session = Depends(get_session)):
        file_name = file.filename or ""
        detect_file_type(file_name)

        raw = await file.read()
        if len(raw) > settings.max_upload_bytes:
            raise HTTPException(status_code=413, detail="File is too large")

        effects = await session.load_bytes(file_name, raw)
        return view_response(session, effects)

    @app.post("/sessions/{session_id}/open", response_model=ViewResponse)
    async def open_path(body: OpenRequest, session: Session = Depends(get_session)):
        effects = await session.load_path(resolve_path(settings, body.path))
        return view_response(session, effects)

    @app.get("/sessions/{session_id}/view", response_model=ViewResponse)
    def get_view(session: Session = Depends(get_session)):
        return view_response(session)

    @app.post("/sessions/{session_id}/filter", response_model=ViewResponse)
    async def filter_view(body: FilterRequest, session: Session = Depends(get_session)):
        effects = await session.filter(body.term)
        return view_response(session, effects)

    @app.post("/sessions/{session_id}/sort", response_model=ViewResponse)
    async def sort_view(body: SortRequest, session: Session = Depends(get_session)):
        effects = await session.sort(body.column_index)
        return view_response(session, effects)

    @app.post("/sessions/{session_id}/export", response_model=ViewResponse)
    async def export_view(body: ExportRequest, session: Session = Depends(get_session)):
        effects = await session.export(resolve_path(settings, body.path), body.format)
        return view_response(session, effects)

    @app.get("/sessions/{session_id}/download")
    def download(format: Literal["csv", "json"] = "csv", session: Session = Depends(get_session)):
        text = session.render(format)
        return PlainTextResponse(
            text,
            media_type=MEDIA_TYPES[format],
            headers={"Content-Disposition": f'attachment; filename="exported_data.{format}"'},
        )

    return app


app = create_app()
