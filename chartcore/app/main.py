"""Entrypoint.

Usage:
  python -m chartcore.app.main api                      # run the FastAPI server
  python -m chartcore.app.main calculate candles.json   # print indicator series as JSON
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn

from chartcore.api.state import build_state, set_state
from chartcore.infrastructure.logging.logging import configure_logging, get_logger
from chartcore.infrastructure.utils.config import load_config
from chartcore.models.market_models import Candle


def _read_candles(path: Path) -> List[Candle]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("candles", [])
    return [Candle.from_dict(item) for item in data]


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser("chartcore")
    parser.add_argument("command", choices=["api", "calculate"], help="What to run")
    parser.add_argument("candles", nargs="?", type=Path, help="Candle JSON file (calculate)")
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    # calculate prints its result on stdout, so its logs go to stderr
    stream = sys.stderr if args.command == "calculate" else sys.stdout
    configure_logging(config.log_level, config.log_format, stream=stream)
    log = get_logger("main")

    if args.command == "api":
        set_state(build_state(config))
        log.info("api_starting", host=config.api.host, port=config.api.port)
        uvicorn.run("chartcore.api.server:app", host=config.api.host, port=config.api.port, reload=False)
        return 0

    if args.command == "calculate":
        if args.candles is None:
            parser.error("calculate needs a candle JSON file")
        state = build_state(config)
        snapshot = state.indicators.set_candles(_read_candles(args.candles))
        json.dump(snapshot.to_dict(), sys.stdout, indent=2)
        sys.stdout.write("\n")
        state.close()
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
