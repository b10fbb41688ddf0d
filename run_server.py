#!/usr/bin/env python
"""
Run the API Server

Starts the FastAPI server that forwards extraction and suggestion requests
to Gemini. Requires GEMINI_API_KEY in the environment.

Usage:
    python run_server.py

The server runs on http://localhost:8000 (GMAPS_LEADS_PORT to change)

Endpoints:
    GET  /api/health                - Health check
    POST /api/search                - Run one extraction batch
    POST /api/suggestions/locations - Location autocomplete
    POST /api/suggestions/niches    - Niche autocomplete
"""

import uvicorn

from gmaps_leads.config import API_HOST, API_PORT

if __name__ == "__main__":
    uvicorn.run("gmaps_leads.server:app", host=API_HOST, port=API_PORT, reload=False)
