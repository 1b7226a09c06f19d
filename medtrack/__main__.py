"""Lance l'API de suivi des médicaments avec uvicorn."""
from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence

import uvicorn

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="medtrack",
        description="Lance le backend FastAPI du suivi des médicaments",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port sur lequel exposer l'API (défaut: 8000)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Adresse d'écoute d'uvicorn (défaut: 127.0.0.1)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Recharge automatique en développement",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    LOGGER.info("[SERVER] Starting host=%s port=%s reload=%s", args.host, args.port, args.reload)
    uvicorn.run("medtrack.app:app", host=args.host, port=args.port, reload=args.reload)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
