"""Public ingestion API.

Endpoints (all require the project's ``X-API-Key`` header):

- POST  /api/v1/feedback: submit feedback (runs the same create path as the CLI)
- GET   /api/v1/feedback: list the project's feedback
- PATCH /api/v1/feedback/{feedback_id}: change status / priority / assignee
- POST  /api/v1/feedback/{feedback_id}/comments/sync: import new GitHub comments
- POST  /api/v1/tasks: create a task
- GET   /api/v1/tasks: list the project's tasks

An unknown or inactive key is 401; an id outside the key's project is 404.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from feedhub_api.schemas import FeedbackIn, FeedbackPatch, TaskIn
from feedhub_core.config import AIConfig
from feedhub_core.result import ActionResult
from feedhub_core.sync import ReconciliationEngine
from feedhub_core.tasks import TaskLifecycle
from feedhub_store.models import Project

logger = logging.getLogger(__name__)


def _engine(request: Request) -> ReconciliationEngine:
    return request.app.state.engine


def _lifecycle(request: Request) -> TaskLifecycle:
    return request.app.state.lifecycle


def get_project(
    request: Request,
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
) -> Project:
    if not x_api_key:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unauthorized. Missing API key.")
    project = _engine(request).store.get_project_by_api_key(x_api_key)
    if project is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unauthorized. Invalid API key.")
    return project


def _reject(result: ActionResult) -> None:
    """Raise the HTTP error matching a failed result."""
    if result.not_found:
        raise HTTPException(status.HTTP_404_NOT_FOUND, result.message or "Not found.")
    if result.errors:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, {"errors": result.errors})


def create_app(engine: ReconciliationEngine, ai_config: AIConfig | None = None) -> FastAPI:
    app = FastAPI(title="Feedback Hub ingestion API")
    app.state.engine = engine
    app.state.lifecycle = TaskLifecycle(engine, analyzer_factory=engine.analyzer_factory)
    app.state.ai_config = ai_config

    @app.post("/api/v1/feedback", status_code=status.HTTP_201_CREATED)
    def submit_feedback(body: FeedbackIn, request: Request, project: Project = Depends(get_project)):
        result = _engine(request).create_feedback(
            project.id,
            body.model_dump(exclude_none=True),
            source="api",
            ai_config=request.app.state.ai_config,
        )
        _reject(result)
        if result.warning:
            logger.info("Feedback %s: %s", result.data.id, result.warning)
        return {**asdict(result.data), "warning": result.warning}

    @app.get("/api/v1/feedback")
    def list_feedback(
        request: Request,
        project: Project = Depends(get_project),
        status_filter: Optional[str] = Query(default=None, alias="status"),
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=20, ge=1, le=100),
    ):
        store = _engine(request).store
        items = store.list_feedback(project.id, status=status_filter, limit=limit, offset=(page - 1) * limit)
        total = store.count_feedback(project.id, status=status_filter)
        return {"data": [asdict(f) for f in items], "total": total, "page": page, "limit": limit}

    @app.patch("/api/v1/feedback/{feedback_id}")
    def patch_feedback(
        feedback_id: str,
        body: FeedbackPatch,
        request: Request,
        project: Project = Depends(get_project),
    ):
        engine = _engine(request)
        feedback = engine.store.get_feedback(feedback_id)
        if feedback is None or feedback.project_id != project.id:
            raise HTTPException(status.HTTP_404_NOT_FOUND, "Feedback not found.")
        result = engine.update_feedback(feedback_id, body.model_dump(exclude_unset=True))
        _reject(result)
        return {**asdict(result.data), "warning": result.warning}

    @app.post("/api/v1/feedback/{feedback_id}/comments/sync")
    def sync_comments(feedback_id: str, request: Request, project: Project = Depends(get_project)):
        engine = _engine(request)
        feedback = engine.store.get_feedback(feedback_id)
        if feedback is None or feedback.project_id != project.id:
            raise HTTPException(status.HTTP_404_NOT_FOUND, "Feedback not found.")
        result = engine.import_comments(feedback_id)
        return {"synced": result.data or 0, "warning": result.warning}

    @app.post("/api/v1/tasks", status_code=status.HTTP_201_CREATED)
    def create_task(body: TaskIn, request: Request, project: Project = Depends(get_project)):
        result = _lifecycle(request).create_task(project.id, body.model_dump(exclude_none=True))
        _reject(result)
        return asdict(result.data)

    @app.get("/api/v1/tasks")
    def list_tasks(
        request: Request,
        project: Project = Depends(get_project),
        status_filter: Optional[str] = Query(default=None, alias="status"),
    ):
        tasks = _engine(request).store.list_tasks(project.id, status=status_filter)
        return {"data": [asdict(t) for t in tasks]}

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error."})

    return app
