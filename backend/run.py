#!/usr/bin/env python3
# backend/run.py
"""
Local development server.

Uses the mock geocoder and in-memory place caches so no API keys or Redis
are needed. Listing data comes from DATABASE_URL (defaults to local SQLite).
"""
import os
import sys
from pathlib import Path

backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("GEOCODING_PROVIDER", "mock")
os.environ.setdefault("PLACE_CACHE_BACKEND", "memory")

import uvicorn

if __name__ == "__main__":
    print("Starting discovery API on http://localhost:8000 (docs at /docs)")

    uvicorn.run("discovery.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
