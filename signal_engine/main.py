"""Signal engine — application entry point.

Boots the FastAPI internal server that wraps the scoring engine.
"""

import logging

from fastapi import FastAPI

from signal_engine.api.routers import router

app = FastAPI(title="Signal Engine Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("signal_engine")


@app.get("/health")
async def health():
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments, wire collaborators and serve the API."""
    import argparse

    import uvicorn

    from signal_engine.api.routers import configure_routers
    from signal_engine.cache import TTLCache
    from signal_engine.config import load_config
    from signal_engine.engine import SignalEngine
    from signal_engine.repos.db import init_db
    from signal_engine.repos.signal_repo import SignalRepo

    config = load_config()

    parser = argparse.ArgumentParser(description="Technical signal & risk scoring engine")
    parser.add_argument("--host", default=config.api_host, help="Bind address")
    parser.add_argument("--port", type=int, default=config.api_port, help="Bind port")
    args = parser.parse_args()

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    init_db(config.db_path)
    configure_routers(
        engine=SignalEngine(large_tx_alert_count=config.large_tx_alert_count),
        signal_repo=SignalRepo(config.db_path),
        cache=TTLCache(config.cache_ttl_seconds),
    )

    logger.info("Serving signal engine API on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    _run_cli()
