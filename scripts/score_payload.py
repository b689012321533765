"""One-shot script to score a saved request payload without the API server.

Usage (from the project root):
    python -m scripts.score_payload payload.json --store
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from signal_engine.config import load_config
from signal_engine.engine import SignalEngine
from signal_engine.errors import InvalidInputError
from signal_engine.repos.db import init_db
from signal_engine.repos.signal_repo import SignalRepo


def _main(payload_path: Path, store: bool) -> int:
    config = load_config()
    payload = json.loads(payload_path.read_text(encoding="utf-8"))
    engine = SignalEngine(large_tx_alert_count=config.large_tx_alert_count)

    try:
        result = engine.evaluate_payload(payload)
    except InvalidInputError as exc:
        logging.getLogger(__name__).error("Invalid payload: %s", exc)
        return 2

    if store:
        init_db(config.db_path)
        SignalRepo(config.db_path).upsert_result(result)
        logging.getLogger(__name__).info("Stored → %s", config.db_path)

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Score a JSON request payload")
    parser.add_argument("payload", type=Path, help="Path to a request JSON file")
    parser.add_argument("--store", action="store_true", help="Persist the result")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    sys.exit(_main(args.payload, args.store))
