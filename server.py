#!/usr/bin/env python3
"""Studio sync service - HTTP API for the dashboard plus the Telegram sync loop."""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from app_context import AppContext
from integrations.config import HOST, PORT, STATIC_DIR
from integrations.state import PersistenceError
from integrations.trends import resolve_category
from integrations.utils import format_uptime, make_logger
from sync_loop import SyncLoop

logger = logging.getLogger(__name__)


class TaskIn(BaseModel):
    text: str
    isDaily: bool = False


class NoteIn(BaseModel):
    text: str


class ScanIn(BaseModel):
    category: Optional[str] = None


def _persisted(operation, *args, **kwargs):
    """Run a registry/settings write, mapping storage failures to 503."""
    try:
        return operation(*args, **kwargs)
    except PersistenceError as e:
        logger.error(f"Persistence failure: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e


def create_app(ctx: Optional[AppContext] = None, start_loops: bool = True) -> FastAPI:
    ctx = ctx or AppContext.build()
    sync = SyncLoop(ctx)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_loops:
            sync.start()
            logger.info("Telegram sync loop started")
        try:
            yield
        finally:
            if start_loops:
                sync.stop()
                logger.info("Telegram sync loop stopped")

    app = FastAPI(title="Studio Sync", lifespan=lifespan)
    app.state.ctx = ctx
    app.state.sync = sync

    # Keep-alive endpoint (external pinger hits this)
    @app.get("/ping", response_class=PlainTextResponse)
    def ping() -> str:
        return "alive"

    @app.get("/health")
    def health() -> dict:
        snapshot = ctx.sync_state.snapshot()
        return {
            "ok": True,
            "uptime": format_uptime(ctx.uptime()),
            "loop_running": sync.is_running(),
            "ticks": sync.ticks,
            "cursor": snapshot["lastUpdateId"],
            "last_reminder": snapshot["lastReminderDate"],
        }

    # -------------------- settings --------------------
    @app.get("/api/settings")
    def get_settings() -> dict:
        return ctx.settings.get().to_dict()

    @app.put("/api/settings")
    def put_settings(changes: dict[str, Any]) -> dict:
        try:
            updated = _persisted(ctx.settings.update, changes)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return updated.to_dict()

    # -------------------- tasks --------------------
    @app.get("/api/tasks")
    def list_tasks() -> list[dict]:
        return [t.to_dict() for t in ctx.registry.tasks()]

    @app.post("/api/tasks", status_code=201)
    def add_task(body: TaskIn) -> dict:
        task = _persisted(ctx.registry.add_task, body.text, is_daily=body.isDaily)
        if task is None:
            raise HTTPException(status_code=422, detail="Task text is empty")
        return task.to_dict()

    @app.post("/api/tasks/{task_id}/toggle")
    def toggle_task(task_id: str) -> dict:
        task = _persisted(ctx.registry.toggle_task, task_id)
        if task is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return task.to_dict()

    @app.delete("/api/tasks/{task_id}")
    def delete_task(task_id: str) -> dict:
        return {"deleted": _persisted(ctx.registry.delete_task, task_id)}

    # -------------------- notes --------------------
    @app.get("/api/notes")
    def list_notes() -> list[dict]:
        return [n.to_dict() for n in ctx.registry.notes()]

    @app.post("/api/notes", status_code=201)
    def add_note(body: NoteIn) -> dict:
        note = _persisted(ctx.registry.add_note, body.text)
        if note is None:
            raise HTTPException(status_code=422, detail="Note text is empty")
        return note.to_dict()

    @app.delete("/api/notes/{note_id}")
    def delete_note(note_id: str) -> dict:
        return {"deleted": _persisted(ctx.registry.delete_note, note_id)}

    # -------------------- trends --------------------
    @app.get("/api/trends")
    def list_trends() -> list[dict]:
        return [t.to_dict() for t in ctx.trends.items()]

    @app.post("/api/trends/scan")
    async def scan_trends(body: ScanIn) -> list[dict]:
        settings = ctx.settings.get()
        category = resolve_category(body.category, default=resolve_category(settings.trend_category))
        result = await ctx.generator.scan_trends(settings, category)
        if not result.ok:
            raise HTTPException(status_code=502, detail=result.error)
        if result.value:
            _persisted(ctx.trends.replace, result.value)
        return [t.to_dict() for t in ctx.trends.items()]

    # -------------------- sync --------------------
    @app.post("/api/sync")
    async def sync_now() -> dict:
        ran = await sync.run_once()
        return {"ran": ran, "cursor": ctx.sync_state.cursor}

    # Static dashboard build, if present (must be mounted last)
    if STATIC_DIR.exists():
        app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="dashboard")

    return app


def main() -> None:
    """Run the service."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in ("sync_loop", "dispatcher", "integrations"):
        make_logger(name)

    logger.info("Starting studio sync service...")
    uvicorn.run(create_app(), host=HOST, port=PORT, log_level="info")


if __name__ == "__main__":
    main()
