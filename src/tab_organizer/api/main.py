"""FastAPI app for detached observers: start, poll, cancel, dismiss."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException

from tab_organizer.config.settings import Settings, get_settings
from tab_organizer.errors import AlreadyRunning, ConfigInvalid
from tab_organizer.orchestrator import TaskOrchestrator, build_orchestrator
from tab_organizer.state.models import dump_state


def create_app(
    *,
    orchestrator: TaskOrchestrator | None = None,
    settings_override: Settings | None = None,
) -> FastAPI:
    settings = settings_override or get_settings()
    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.orchestrator = orchestrator or build_orchestrator(settings)

    def _orchestrator() -> TaskOrchestrator:
        return app.state.orchestrator

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "service": settings.app_name}

    @app.get("/task")
    def get_task_state() -> dict[str, Any]:
        return dump_state(_orchestrator().state())

    # Returns as soon as the run is accepted; poll GET /task for progress.
    @app.post("/task/organize", status_code=202)
    async def start_organize() -> dict[str, Any]:
        try:
            ack = await _orchestrator().start()
        except ConfigInvalid as exc:
            raise HTTPException(status_code=400, detail=exc.user_message) from exc
        except AlreadyRunning as exc:
            raise HTTPException(status_code=409, detail=exc.user_message) from exc
        return {
            "status": "running",
            "run_id": ack.run_id,
            "started_at": ack.started_at.isoformat(),
        }

    # Async so the run's cancellation token is tripped on the event loop.
    @app.post("/task/cancel")
    async def cancel_organize() -> dict[str, Any]:
        cancelled = await _orchestrator().cancel()
        if cancelled is None:
            raise HTTPException(status_code=409, detail="No organize task is running")
        return dump_state(cancelled)

    @app.post("/task/dismiss")
    def dismiss_task() -> dict[str, Any]:
        if not _orchestrator().dismiss():
            raise HTTPException(status_code=409, detail="Organize task is still running")
        return dump_state(_orchestrator().state())

    return app


# Module-level app for `uvicorn tab_organizer.api.main:app`.
app = create_app()
