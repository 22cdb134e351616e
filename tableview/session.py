"""
Session state and command handlers.

The reducers (``on_load``, ``on_filter_change``, ``on_sort_click``,
``on_export``) are pure: they take the current ``SessionState`` plus an input
and return the next state with the effects a client should render. ``Session``
wraps one state and performs the I/O around them.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from starlette.concurrency import run_in_threadpool

from . import export as export_engine
from .errors import ColumnIndexError, NoTableLoadedError
from .filtering import filter_rows
from .models import Effect, RenderView, ShowMessage, SortState, Table, UpdateRowCount, View
from .parsers import parse_bytes, parse_path
from .sorting import apply_sort, toggle_sort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionState:
    table: Optional[Table] = None
    term: str = ""
    sort: Optional[SortState] = None
    view: Optional[View] = None


Transition = Tuple[SessionState, List[Effect]]


def _build_view(table: Table, term: str, sort: Optional[SortState]) -> View:
    rows = apply_sort(filter_rows(table, term), sort)
    return View(
        headers=table.headers,
        rows=rows,
        total_rows=table.row_count,
        term=term,
        sort=sort,
    )


def _render(view: View) -> List[Effect]:
    return [
        RenderView(view=view),
        UpdateRowCount(row_count=view.row_count, total_rows=view.total_rows),
    ]


def _require_table(state: SessionState) -> Table:
    if state.table is None:
        raise NoTableLoadedError()
    return state.table


def on_load(state: SessionState, table: Table) -> Transition:
    """A new table replaces everything: term and sort start empty."""
    view = _build_view(table, "", None)
    return SessionState(table=table, view=view), _render(view)


def on_filter_change(state: SessionState, term: str) -> Transition:
    # the active sort is re-applied to the freshly filtered rows
    table = _require_table(state)
    view = _build_view(table, term, state.sort)
    return replace(state, term=term, view=view), _render(view)


def on_sort_click(state: SessionState, column_index: int) -> Transition:
    table = _require_table(state)
    if not 0 <= column_index < len(table.headers):
        raise ColumnIndexError(column_index, len(table.headers))
    sort = toggle_sort(state.sort, column_index)
    view = _build_view(table, state.term, sort)
    return replace(state, sort=sort, view=view), _render(view)


def on_export(state: SessionState, message: str) -> Transition:
    return state, [ShowMessage(message=message)]


def current_view(state: SessionState) -> View:
    _require_table(state)
    return state.view


class Session:
    """One user's table and view; at most one command runs at a time."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.state = SessionState()
        self._lock = asyncio.Lock()

    def _commit(self, transition: Transition) -> List[Effect]:
        self.state, effects = transition
        return effects

    async def load_path(self, path: str) -> List[Effect]:
        async with self._lock:
            table = await run_in_threadpool(parse_path, path)
            logger.info("session %s loaded %s (%d rows)", self.session_id, table.file_name, table.row_count)
            return self._commit(on_load(self.state, table))

    async def load_bytes(self, file_name: str, raw: bytes) -> List[Effect]:
        async with self._lock:
            table = await run_in_threadpool(parse_bytes, file_name, raw)
            logger.info("session %s loaded %s (%d rows)", self.session_id, table.file_name, table.row_count)
            return self._commit(on_load(self.state, table))

    async def filter(self, term: str) -> List[Effect]:
        async with self._lock:
            return self._commit(on_filter_change(self.state, term))

    async def sort(self, column_index: int) -> List[Effect]:
        async with self._lock:
            return self._commit(on_sort_click(self.state, column_index))

    async def export(self, path: str, fmt: str) -> List[Effect]:
        async with self._lock:
            view = current_view(self.state)
            exporter = export_engine.EXPORTERS[fmt]
            message = await run_in_threadpool(exporter, path, view.headers, view.rows)
            return self._commit(on_export(self.state, message))

    def render(self, fmt: str) -> str:
        view = current_view(self.state)
        return export_engine.RENDERERS[fmt](view.headers, view.rows)


class SessionStore:
    """Sessions by id, least recently used dropped once ``max_sessions`` is reached."""

    def __init__(self, max_sessions: int = 32) -> None:
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, Session] = OrderedDict()

    def create(self) -> Session:
        while len(self._sessions) >= self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("dropped idle session %s (limit %d)", evicted, self.max_sessions)
        session = Session(uuid.uuid4().hex)
        self._sessions[session.session_id] = session
        logger.debug("created session %s", session.session_id)
        return session

    def get(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
        return session

    def drop(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)


__all__ = [
    "Session",
    "SessionState",
    "SessionStore",
    "current_view",
    "on_export",
    "on_filter_change",
    "on_load",
    "on_sort_click",
]
