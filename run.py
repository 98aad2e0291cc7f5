#!/usr/bin/env python3
"""
Run the view action server.

Usage:
    python run.py

    # or with venv
    .venv/Scripts/python run.py
"""
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))


def run_fastapi():
    """Run the action server with uvicorn, settings taken from Config"""
    import uvicorn
    from couchdb_view_actions.core.config import Config

    print(f"Starting action server on {Config.ACTION_HOST}:{Config.ACTION_PORT}")
    uvicorn.run(
        'couchdb_view_actions.main:app',
        host=Config.ACTION_HOST,
        port=Config.ACTION_PORT,
        log_level=Config.LOG_LEVEL.lower(),
        http='h11',   # HTTP/1.1 only
        ws='none',
    )


if __name__ == "__main__":
    run_fastapi()
