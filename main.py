"""
Main entrypoint for the Booty ingestion backend.

  python main.py serve     FastAPI ingestion + query API (uvicorn)
  python main.py monitor   Local transaction monitor: poll the ledger, POST webhooks

Env: GAME_PROGRAM_ID, SOLANA_RPC_URL, WEBHOOK_BASE_URL, HELIUS_WEBHOOK_AUTH_HEADER,
DATABASE_URL / DB_PATH, API_HOST, API_PORT, LOG_LEVEL, etc. (see backend_booty.config).

API-only: uvicorn backend_booty.api_server.app:app --host 0.0.0.0 --port 3000
"""

import argparse
import os
import sys

# Configure structured JSON logging before other imports that may log
from backend_booty.booty_logging import get_logger

logger = get_logger("main")


def _serve(args: argparse.Namespace) -> int:
    from backend_booty.api_server.server import create_app
    from backend_booty.config import get_settings
    import uvicorn

    settings = get_settings()
    host = args.host or settings.api_host
    port = args.port or settings.api_port
    app = create_app(settings)
    logger.info("main_server_starting", host=host, port=port)
    uvicorn.run(app, host=host, port=port, log_level=os.getenv("LOG_LEVEL", "info").lower())
    return 0


def _monitor(args: argparse.Namespace) -> int:
    from backend_booty.agent_worker.worker import run_monitor
    from backend_booty.config import get_settings
    from backend_booty.core.exceptions import RpcError

    settings = get_settings()
    try:
        run_monitor(settings)
    except RpcError as e:
        logger.error("main_monitor_failed", error=str(e))
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Booty transaction ingestion backend")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the webhook ingestion and query API")
    serve.add_argument("--host", default=None, help="Bind address (default: API_HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: API_PORT or 3000)")
    serve.set_defaults(func=_serve)

    monitor = sub.add_parser("monitor", help="Poll the ledger and forward game transactions as webhooks")
    monitor.set_defaults(func=_monitor)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ValueError as e:
        logger.error("main_config_error", error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
