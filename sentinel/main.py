"""FastAPI entry point. Transport layer in front of the per-session risk
engines: event ingestion, score queries and the session event journal."""

import logging

from fastapi import Body, Depends, FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from sentinel import config
from sentinel.alerts import AlertDispatcher
from sentinel.auth import verify_api_key
from sentinel.fusion import RiskScore
from sentinel.models import (
    EventQueryResponse,
    IngestResponse,
    RiskResponse,
    event_adapter,
)
from sentinel.registry import InvalidDelta, RegistryError
from sentinel.sessions import Session, SessionStore

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

sessions = SessionStore(alerts=AlertDispatcher())

app = FastAPI(
    title="CyberSentinel Risk API",
    description="Behavioral telemetry ingestion and explainable risk scoring",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://127.0.0.1:5500", "http://localhost:5500"],
    allow_origin_regex=r"https://.*\.(railway|vercel)\.app",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-risk-score"],
)


@app.on_event("startup")
async def _on_startup() -> None:
    logger.info(f"CyberSentinel Risk API v{VERSION} started | score_mode={config.SCORE_MODE}")


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.error(f"422 VALIDATION ERROR | {request.url.path} | {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors()), "message": "Invalid request payload."},
    )


@app.exception_handler(RegistryError)
async def _registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    if isinstance(exc, InvalidDelta):
        return JSONResponse(status_code=422, content={"detail": str(exc)})
    return JSONResponse(
        status_code=404,
        content={"detail": str(exc), "name": getattr(exc, "name", None)},
    )


def _require_session(session_id: str) -> Session:
    session = sessions.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return session


def _risk_response(session_id: str, score: RiskScore) -> RiskResponse:
    data = score.to_dict()
    return RiskResponse(
        sessionId=session_id,
        risk=data["risk"],
        level=data["level"],
        computedAt=data["computedAt"],
        breakdown=data["breakdown"],
    )


@app.get("/")
async def health_check() -> dict:
    return {
        "status": "online",
        "service": "CyberSentinel Risk API",
        "version": VERSION,
        "sessions": sessions.get_session_count(),
    }


@app.post("/api/sessions/{session_id}/events", response_model=IngestResponse)
async def ingest_event(
    session_id: str,
    response: Response,
    payload: dict = Body(...),
    api_key: str = Depends(verify_api_key),
) -> IngestResponse:
    """Ingest one telemetry event and return the freshly computed score.

    Body is a discriminated event: ``{"kind": "numeric", "name", "value"}``,
    ``{"kind": "flag", "name", "value"}``, ``{"kind": "counter", "name", "delta"}``
    or ``{"kind": "counterReset", "name"}``.
    """
    try:
        event = event_adapter.validate_python(payload)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors())

    existing = sessions.get_session(session_id)
    session = sessions.ensure_session(session_id)
    record = {k: v for k, v in event.model_dump().items() if k not in ("kind", "name")}
    try:
        accepted = session.engine.ingest(event)
    except RegistryError as exc:
        if existing is None:
            # A rejected first event must not leave a session behind.
            sessions.end_session(session_id)
        else:
            record.update(accepted=False, rejected=type(exc).__name__)
            session.events.push(event.name, event.kind, record)
        raise

    if not accepted:
        # Dropped non-finite samples are journaled without the value.
        record["value"] = None
    record["accepted"] = accepted
    session.events.push(event.name, event.kind, record)

    score = session.engine.compute_score()
    response.headers["x-risk-score"] = f"{score.value:.2f}"
    logger.debug(f"[{session_id[:8]}] {event.kind}:{event.name} -> risk {score.value:.1f}")
    return IngestResponse(
        ok=True,
        accepted=accepted,
        risk=round(score.value, 2),
        level=score.level,
    )


@app.get("/api/sessions/{session_id}/risk", response_model=RiskResponse)
async def get_risk(
    session_id: str,
    api_key: str = Depends(verify_api_key),
) -> RiskResponse:
    session = _require_session(session_id)
    return _risk_response(session_id, session.engine.last_score)


@app.post("/api/sessions/{session_id}/counters/{name}/reset", response_model=RiskResponse)
async def reset_counter(
    session_id: str,
    name: str,
    api_key: str = Depends(verify_api_key),
) -> RiskResponse:
    session = _require_session(session_id)
    session.engine.reset_counter(name)
    session.events.push(name, "counterReset", {})
    return _risk_response(session_id, session.engine.compute_score())


@app.get("/api/sessions/{session_id}/events", response_model=EventQueryResponse)
async def query_events(
    session_id: str,
    q: str = "",
    api_key: str = Depends(verify_api_key),
) -> EventQueryResponse:
    session = _require_session(session_id)
    events = session.events.query(q)
    return EventQueryResponse(sessionId=session_id, count=len(events), events=events)


@app.get("/api/sessions/{session_id}/events/export")
async def export_events(
    session_id: str,
    api_key: str = Depends(verify_api_key),
) -> Response:
    session = _require_session(session_id)
    return Response(
        content=session.events.export_json(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="sentinel-events-{session_id}.json"'},
    )


@app.delete("/api/sessions/{session_id}")
async def end_session(
    session_id: str,
    api_key: str = Depends(verify_api_key),
) -> dict:
    if not sessions.end_session(session_id):
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return {"ok": True, "sessionId": session_id}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
