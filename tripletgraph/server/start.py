"""
Command line launcher for the triplet graph server.

Usage:
    tripletgraph-server [--port PORT] [--host HOST] [--data-dir DIR] [--document ID]

Flags override the TG_HTTP_PORT, TG_HTTP_HOST, TG_LOG_LEVEL, TG_DATA_DIR and
TG_DOCUMENT_ID environment variables read by the app.
"""

import argparse
import logging
import os

import uvicorn

DEFAULT_PORT = 8765
DEFAULT_HOST = "127.0.0.1"

FLAG_ENV = {
    "port": "TG_HTTP_PORT",
    "host": "TG_HTTP_HOST",
    "log_level": "TG_LOG_LEVEL",
    "data_dir": "TG_DATA_DIR",
    "document": "TG_DOCUMENT_ID",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve a live triplet graph over HTTP and WebSocket")
    parser.add_argument("--port", type=int, help=f"Server port (default: {DEFAULT_PORT})")
    parser.add_argument("--host", help=f"Server host (default: {DEFAULT_HOST})")
    parser.add_argument("--log-level", type=str.upper, help="Log level (default: INFO)")
    parser.add_argument("--data-dir", help="Directory for persisted triplet stores (default: in memory)")
    parser.add_argument("--document", help="Graph document id (default: graph)")
    return parser


def apply_args(args: argparse.Namespace):
    """Copy the flags that were given into the environment the app reads."""
    for name, env_var in FLAG_ENV.items():
        value = getattr(args, name)
        if value is not None:
            os.environ[env_var] = str(value)


def main(argv: list[str] | None = None):
    apply_args(build_parser().parse_args(argv))

    # Imported after the environment is set; the app configures logging
    from tripletgraph.server.app import app

    logger = logging.getLogger("tripletgraph.server")
    port = int(os.getenv("TG_HTTP_PORT", str(DEFAULT_PORT)))
    host = os.getenv("TG_HTTP_HOST", DEFAULT_HOST)
    logger.info(
        f"Serving document '{os.getenv('TG_DOCUMENT_ID', 'graph')}' on {host}:{port} "
        f"(store: {os.getenv('TG_DATA_DIR') or 'in memory'})"
    )

    uvicorn.run(app, host=host, port=port, log_level=os.getenv("TG_LOG_LEVEL", "INFO").lower())


if __name__ == "__main__":
    main()
