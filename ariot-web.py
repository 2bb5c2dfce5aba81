#!/usr/bin/env python3
"""
ARIOT Web — Entry point.

Thin CLI shim that parses arguments and runs the Flask application.

Run:
    python ariot-web.py --db ariot.db --host 0.0.0.0 --port 3001

Environment:
    ARIOT_SECRET_KEY          Session cookie signing key (set in production)
    ARIOT_DECODER_TIMEOUT     Seconds a decoder script may run (default 2.0)
    ARIOT_LOG_LEVEL           DEBUG, INFO, WARNING, ERROR (default INFO)
    ARIOT_LOG_FILE            Optional JSON-lines log file
"""
from __future__ import annotations

import argparse


def parse_args():
    ap = argparse.ArgumentParser(
        description="ARIOT Web — LoRa coverage mapping and webhook ingestion"
    )
    ap.add_argument(
        "--db",
        default="ariot.db",
        help="Path to the SQLite database file (default: ariot.db)",
    )
    ap.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind the web server (default: 0.0.0.0)",
    )
    ap.add_argument(
        "--port",
        type=int,
        default=3001,
        help="Port to listen on (default: 3001)",
    )
    ap.add_argument(
        "--log-level",
        default=None,
        help="Override ARIOT_LOG_LEVEL",
    )
    return ap.parse_args()


def main():
    args = parse_args()

    from ariot_web.util.logging import configure_logging

    configure_logging(level=args.log_level)

    from ariot_web import create_app

    app = create_app(args.db)
    app.run(host=args.host, port=args.port, threaded=True)


if __name__ == "__main__":
    main()
