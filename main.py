#!/usr/bin/env python3
"""
Local Visibility Score Engine - Main Entry Point

Convenience wrapper that starts the API server.
For a single analysis from the shell, use scripts/run_analyze.py.

Usage:
    python main.py

Environment Variables:
    GOOGLE_PLACES_API_KEY: Required. Google Places API key.
    PORT: Optional. Port to listen on (default 3001).
"""

import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run("backend.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "3001")))
