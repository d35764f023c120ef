#!/usr/bin/env python3
"""
Production entrypoint: release phase, then gunicorn.

Environment:
  PORT             bind port (default 8080)
  WEB_CONCURRENCY  gunicorn worker count (default 2)

Request throttles live in worker memory, so with N workers a client can get
up to N times the configured limit.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = 8080
DEFAULT_WORKERS = 2


def _positive_int(name: str, default: int, *, upper: int | None = None) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")
    if value < 1 or (upper is not None and value > upper):
        raise RuntimeError(f"{name} out of range (got {value}).")
    return value


def gunicorn_argv(port: int, workers: int) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--timeout", "60",
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    try:
        port = _positive_int("PORT", DEFAULT_PORT, upper=65535)
        workers = _positive_int("WEB_CONCURRENCY", DEFAULT_WORKERS)
    except RuntimeError as e:
        print(f"ERROR: {e}", flush=True)
        sys.exit(1)

    from scripts.release import run_release

    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    if workers > 1:
        print(f"NOTE: {workers} workers; rate limits are enforced per worker.", flush=True)
    print(f"=== GrowShare listening on 0.0.0.0:{port} ===", flush=True)
    os.execvp("gunicorn", gunicorn_argv(port, workers))


if __name__ == "__main__":
    main()
