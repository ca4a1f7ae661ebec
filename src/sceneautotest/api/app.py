"""FastAPI application exposing the scene autotester over HTTP."""

from __future__ import annotations

from dataclasses import replace

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, field_validator

from ..autotester import AnalysisError, analyze
from ..coverage import CoverageReport
from ..errors import AutotestError
from ..settings import AutotestSettings


class AutotestRequest(BaseModel):
    """Scene text to analyse plus optional per-request exploration limits.

    ``max_steps`` and ``max_paths`` can only tighten the service's configured
    budgets; larger values are capped.
    """

    script: str
    name: str = "scene"
    prune_infeasible: bool | None = None
    max_steps: int | None = Field(default=None, ge=1)
    max_paths: int | None = Field(default=None, ge=1)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("name must be a non-empty string")
        return trimmed


class AutotestResponse(BaseModel):
    """Coverage for every line and the lines no path reaches."""

    name: str
    coverage: list[int]
    unreachable: list[int]
    complete: bool
    paths_explored: int = Field(..., ge=0)
    steps: int = Field(..., ge=0)
    scene_exits: list[str] = Field(default_factory=list)


class AutotestErrorResource(BaseModel):
    """Error payload returned when a scene cannot be analysed."""

    kind: str
    message: str
    line: int | None = None


def _tightened(requested: int | None, configured: int) -> int:
    """Apply a per-request limit without exceeding the configured one."""

    if requested is None:
        return configured
    return min(requested, configured)


def _build_autotest_response(name: str, report: CoverageReport) -> AutotestResponse:
    return AutotestResponse(
        name=name,
        coverage=list(report.coverage),
        unreachable=list(report.unreachable),
        complete=report.complete,
        paths_explored=report.paths_explored,
        steps=report.steps,
        scene_exits=list(report.scene_exits),
    )


def create_app(settings: AutotestSettings | None = None) -> FastAPI:
    """Create a FastAPI app exposing the autotest endpoint."""

    resolved_settings = settings or AutotestSettings.from_env()

    app = FastAPI(
        title="Scene Autotester",
        description="Static coverage and reachability analysis for scene scripts.",
    )

    @app.post(
        "/api/autotest",
        response_model=AutotestResponse,
        tags=["Autotest"],
    )
    def autotest_scene(payload: AutotestRequest) -> AutotestResponse:
        request_settings = replace(
            resolved_settings,
            max_steps=_tightened(payload.max_steps, resolved_settings.max_steps),
            max_paths=_tightened(payload.max_paths, resolved_settings.max_paths),
        )
        if payload.prune_infeasible is not None:
            request_settings = replace(
                request_settings, prune_infeasible=payload.prune_infeasible
            )
        try:
            report = analyze(
                payload.script,
                navigator=request_settings.navigator(),
                options=request_settings.to_options(),
                name=payload.name,
            )
        except AutotestError as exc:
            error = AnalysisError.from_exception(exc)
            raise HTTPException(
                status_code=422,
                detail=AutotestErrorResource(
                    kind=error.kind, message=error.message, line=error.line
                ).model_dump(),
            ) from exc
        return _build_autotest_response(payload.name, report)

    return app


__all__ = [
    "AutotestRequest",
    "AutotestResponse",
    "AutotestErrorResource",
    "create_app",
]
