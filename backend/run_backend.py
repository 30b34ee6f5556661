#!/usr/bin/env python
"""
Development runner for the goalkeeper backend.

Usage: python -m backend.run_backend [--port 8000] [--reload]
"""
import argparse

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Run the goalkeeper API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()

    print(f"\n[INFO] Starting backend server on {args.host}:{args.port}...")
    uvicorn.run("backend.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
