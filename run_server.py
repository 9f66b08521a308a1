#!/usr/bin/env python
"""
Server Entry Point

Starts the Coffee Sales Analytics API with Uvicorn.
Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py
"""

import argparse
import os


def run_dev_server(port: int):
    """Run development server with auto-reload."""
    import uvicorn

    uvicorn.run(
        "coffee_sales.main:app",
        host="0.0.0.0",
        port=port,
        reload=True,
        reload_dirs=["coffee_sales"],
        log_level="debug",
        access_log=True,
    )


def run_prod_server(port: int):
    """Run production server.

    One worker: the fact store serializes writes with an in-process lock.
    """
    import uvicorn

    uvicorn.run(
        "coffee_sales.main:app",
        host="0.0.0.0",
        port=port,
        workers=1,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        access_log=True,
        proxy_headers=True,
        server_header=False,
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Coffee Sales Analytics API Server")
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Run in development mode with auto-reload"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", 8000)),
        help="Port to run on (default: 8000)"
    )

    args = parser.parse_args()

    if args.dev:
        print("Starting development server...")
        run_dev_server(args.port)
    else:
        print("Starting production server with Uvicorn...")
        run_prod_server(args.port)
