"""
Run the environments panel service locally.

Usage:
    python -m envpanel [--host 127.0.0.1] [--port 8090]
"""

import argparse

import uvicorn


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Project environments panel service")
    parser.add_argument("--host", default="127.0.0.1",
                        help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8090,
                        help="Port to serve on (default: 8090)")
    parser.add_argument("--reload", action="store_true",
                        help="Reload on code changes (development)")

    args = parser.parse_args()

    uvicorn.run("envpanel.app:app", host=args.host, port=args.port, reload=args.reload)
