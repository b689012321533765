"""Internal API routers — /signals endpoints.

Thin wrapper around the engine: validates nothing itself, maps engine errors
to HTTP status codes, and delegates storage to the repo and cache
collaborators.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from signal_engine.cache import TTLCache
from signal_engine.engine import TIMEFRAMES, SignalEngine
from signal_engine.errors import InvalidInputError, NumericCorruptionError

logger = logging.getLogger("signal_engine")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_engine: SignalEngine = SignalEngine()
_signal_repo = None  # Set via configure_routers()
_cache: Optional[TTLCache] = None  # Set via configure_routers()


def configure_routers(
    engine: Optional[SignalEngine] = None,
    signal_repo=None,
    cache: Optional[TTLCache] = None,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        engine: A ``SignalEngine``; a default instance is used when omitted.
        signal_repo: A ``SignalRepo`` instance (or duck-type for tests).
        cache: A ``TTLCache`` for latest-signal lookups.
    """
    global _engine, _signal_repo, _cache  # noqa: PLW0603
    _engine = engine if engine is not None else SignalEngine()
    _signal_repo = signal_repo
    _cache = cache


def _cache_key(asset_id: str, timeframe: str) -> tuple[str, str]:
    return (asset_id, timeframe)


# ── Endpoints ────────────────────────────────────────────────────────────


@router.post("/signals")
async def post_signals(body: dict):
    """Score one asset/timeframe and store the result.

    Expects ``{"asset_id", "timeframe", "ohlc", "onchain"?, "sentiment"?}``.
    Invalid input → 422; numeric corruption inside the engine → 500.
    """
    try:
        result = _engine.evaluate_payload(body)
    except InvalidInputError as exc:
        logger.warning("Rejected signal request: %s", exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except NumericCorruptionError as exc:
        logger.error("Numeric corruption while scoring: %s", exc)
        raise HTTPException(status_code=500, detail="Internal scoring error") from exc

    if _signal_repo is not None:
        _signal_repo.upsert_result(result)
    if _cache is not None:
        _cache.set(_cache_key(result["asset_id"], result["timeframe"]), result)
    return result


@router.get("/signals")
async def list_signals(
    limit: int = Query(default=20, ge=1, le=100),
    signal: Optional[str] = Query(default=None),
):
    """Return a summary of stored signals."""
    if _signal_repo is None:
        return {"signals": [], "total": 0}
    return _signal_repo.list_signals(limit=limit, signal_filter=signal)


@router.get("/signals/{asset_id}/{timeframe}")
async def get_signal(asset_id: str, timeframe: str):
    """Return the latest stored result for an asset/timeframe."""
    if timeframe not in TIMEFRAMES:
        raise HTTPException(
            status_code=422,
            detail=f"Unknown timeframe '{timeframe}'. Available: {', '.join(TIMEFRAMES)}",
        )

    key = _cache_key(asset_id, timeframe)
    if _cache is not None:
        cached = _cache.get(key)
        if cached is not None:
            return cached

    result = _signal_repo.get_latest(asset_id, timeframe) if _signal_repo else None
    if result is None:
        raise HTTPException(
            status_code=404,
            detail=f"No signal computed for {asset_id}/{timeframe}",
        )
    if _cache is not None:
        _cache.set(key, result)
    return result
