"""
Match Stats API
Stateless FastAPI service around the match stats engine.
Storage lives with the caller: updates send the previously stored statsJson.
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from match_stats import build_stats_json, update_stats_json

# Load .env from the backend directory (works regardless of CWD)
_backend_dir = os.path.dirname(os.path.abspath(__file__))
load_dotenv(os.path.join(_backend_dir, ".env"))

# ============================================================
# CONFIG
# ============================================================

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
API_VERSION = "1.0.0"

# ============================================================
# LOGGING
# ============================================================

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("matchstats.api")

# ============================================================
# APP + MIDDLEWARE
# ============================================================

app = FastAPI(
    title="Match Stats API",
    description="Derived performance metrics for youth soccer matches",
    version=API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        FRONTEND_URL,
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Accept", "Accept-Language", "Content-Language", "Content-Type"],
    max_age=600,
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = str(uuid.uuid4())[:8]
    try:
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response
    except Exception as exc:
        logger.exception("Middleware error on %s %s", request.method, request.url.path)
        detail = str(exc) if ENVIRONMENT == "development" else "Internal server error"
        return JSONResponse(status_code=500, content={"detail": detail})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = str(exc) if ENVIRONMENT == "development" else "Internal server error."
    return JSONResponse(status_code=500, content={"detail": detail})

# ============================================================
# PYDANTIC MODELS
# ============================================================

class _CamelModel(BaseModel):
    """Accepts the dashboard's camelCase JSON (opponentName, rawStats, ...)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MatchStatsRequest(_CamelModel):
    team_id: Optional[int] = None
    opponent_name: Optional[str] = None
    match_date: Optional[str] = None
    competition_type: Optional[str] = None
    result: Optional[str] = None
    is_home: Optional[bool] = None
    venue: Optional[str] = None
    referee: Optional[str] = None
    notes: Optional[str] = None
    raw_stats: Optional[Dict[str, Any]] = None
    stats_json: Optional[Dict[str, Any]] = None
    stats_source: Optional[str] = None
    stats_computed_at: Optional[str] = None

    @field_validator("opponent_name", "match_date")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        return v.strip() or None


class MatchStatsUpdateRequest(MatchStatsRequest):
    existing_stats_json: Optional[Dict[str, Any]] = None

# ============================================================
# HELPERS
# ============================================================

_GAME_INFO_FIELDS = (
    "team_id", "opponent_name", "match_date", "competition_type",
    "result", "venue", "referee", "notes",
)


def _game_info(body: MatchStatsRequest) -> dict:
    """Game info fields under their camelCase stat keys (None values skipped later)."""
    return {to_camel(name): getattr(body, name) for name in _GAME_INFO_FIELDS}


def _require_game_info(body: MatchStatsRequest):
    if not body.opponent_name or not body.match_date:
        raise HTTPException(status_code=400, detail="Opponent name and match date are required")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()

# ============================================================
# ROUTES
# ============================================================

@app.get("/health")
async def health():
    return {"status": "ok", "version": API_VERSION}


@app.post("/api/matches/preview")
async def preview_match_stats(body: MatchStatsRequest):
    """Preview computed stats without anything being stored."""
    _require_game_info(body)
    raw, computed, all_stats = build_stats_json(body.raw_stats, _game_info(body))
    logger.info("Preview for %s on %s: %d computed metrics", body.opponent_name, body.match_date, len(computed))
    return {
        "gameInfo": {**_game_info(body), "isHome": body.is_home},
        "rawStats": raw,
        "computedStats": computed,
        "allStats": all_stats,
    }


@app.post("/api/matches/stats", status_code=201)
async def create_match_stats(body: MatchStatsRequest):
    """Build the statsJson blob for a new match."""
    _require_game_info(body)
    stats_json = body.stats_json
    computed_at = body.stats_computed_at

    # Raw form stats are computed; a ready statsJson is passed through untouched
    if body.raw_stats is not None and body.stats_json is None:
        _, computed, stats_json = build_stats_json(body.raw_stats, _game_info(body))
        computed_at = _utc_now()
        logger.info("Computed %d metrics for new match vs %s", len(computed), body.opponent_name)

    return {
        "statsJson": stats_json,
        "statsSource": body.stats_source or "manual",
        "statsComputedAt": computed_at,
    }


@app.put("/api/matches/stats")
async def update_match_stats(body: MatchStatsUpdateRequest):
    """Merge edited raw stats into the stored statsJson and recompute."""
    if body.raw_stats is None and body.stats_json is None:
        raise HTTPException(status_code=400, detail="rawStats or statsJson is required")

    if body.stats_json is not None:
        return {"statsJson": body.stats_json, "statsComputedAt": body.stats_computed_at}

    stats_json = update_stats_json(body.existing_stats_json, body.raw_stats, _game_info(body))
    logger.info("Recomputed stats after update (%d fields)", len(stats_json))
    return {"statsJson": stats_json, "statsComputedAt": _utc_now()}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    logger.info("Starting Match Stats API on port %d (%s)", port, ENVIRONMENT)
    logger.info("API Docs: http://localhost:%d/docs", port)
    uvicorn.run(app, host="0.0.0.0", port=port)
