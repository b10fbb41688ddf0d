"""
FastAPI Server for the Google Maps Leads Extractor

Thin routing layer between the extraction client and Gemini.

Provides API endpoints for:
- Health check (is the Gemini key configured)
- One extraction batch (Maps-grounded generation, raw text back)
- Location and niche autocomplete suggestions
"""

import logging
from functools import lru_cache
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .config import API_HOST, API_PORT, MAX_SUGGESTIONS
from .exceptions import ConfigurationError, MalformedResponseError, RateLimitError, UpstreamError
from .parsers.json_text import is_object_array, is_string_array, parse_array_payload
from .upstream import GeminiClient
from .upstream.prompts import (
    LOCATION_SUGGESTIONS_SCHEMA,
    NICHE_SUGGESTIONS_SCHEMA,
    build_location_prompt,
    build_niche_prompt,
    build_search_prompt,
)

logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(title="Google Maps Leads Extractor API")

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request Models
class SearchParams(BaseModel):
    location: str = Field(min_length=1)
    niche: str = Field(min_length=1)
    limit: int = Field(gt=0)


class SearchRequest(BaseModel):
    params: SearchParams
    batch_index: int = Field(ge=0)
    target_count: int = Field(gt=0)
    offset: Optional[int] = Field(default=None, ge=0)


class SuggestionRequest(BaseModel):
    input: str


@lru_cache()
def get_gemini_client() -> GeminiClient:
    """Shared Gemini client (overridden in tests)."""
    return GeminiClient()


def _to_http_error(error: Exception) -> HTTPException:
    """Map library errors onto HTTP status codes the client understands."""
    if isinstance(error, RateLimitError):
        return HTTPException(status_code=429, detail=str(error))
    if isinstance(error, ConfigurationError):
        return HTTPException(status_code=500, detail=str(error))
    if isinstance(error, UpstreamError):
        status = error.status_code if error.status_code and error.status_code >= 500 else 502
        return HTTPException(status_code=status, detail=str(error))
    if isinstance(error, MalformedResponseError):
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


# API Endpoints
@app.get("/api/health")
async def health_check(gemini: GeminiClient = Depends(get_gemini_client)):
    """Health check endpoint."""
    if gemini.configured:
        return {"status": "ok", "message": "Server is ready"}
    return {"status": "error", "message": "GEMINI_API_KEY is missing in server environment."}


@app.post("/api/search")
async def search_batch(request: SearchRequest, gemini: GeminiClient = Depends(get_gemini_client)):
    """Run one extraction batch and return the model's raw text."""
    prompt = build_search_prompt(
        request.params.location,
        request.params.niche,
        request.batch_index,
        request.target_count,
        offset=request.offset,
    )
    try:
        text = await gemini.search_text(prompt)
    except (ConfigurationError, UpstreamError) as e:
        logger.error("Search batch %d failed: %s", request.batch_index, e)
        raise _to_http_error(e)

    return {
        "success": True,
        "batch_index": request.batch_index,
        "text": text,
    }


@app.post("/api/suggestions/locations")
async def location_suggestions(
    request: SuggestionRequest,
    gemini: GeminiClient = Depends(get_gemini_client),
) -> List[Dict[str, str]]:
    """Suggest up to five locations for an autocomplete prefix."""
    try:
        text = await gemini.generate(
            build_location_prompt(request.input, MAX_SUGGESTIONS),
            response_schema=LOCATION_SUGGESTIONS_SCHEMA,
        )
        items = parse_array_payload(text, accept=is_object_array)
    except (ConfigurationError, UpstreamError, MalformedResponseError) as e:
        logger.error("Location suggestions failed: %s", e)
        raise _to_http_error(e)

    suggestions = []
    for item in items:
        if isinstance(item, dict) and item.get("name"):
            suggestions.append({
                "name": str(item["name"]),
                "description": str(item.get("description") or ""),
            })
    return suggestions[:MAX_SUGGESTIONS]


@app.post("/api/suggestions/niches")
async def niche_suggestions(
    request: SuggestionRequest,
    gemini: GeminiClient = Depends(get_gemini_client),
) -> List[str]:
    """Suggest up to five business niches for an autocomplete prefix."""
    try:
        text = await gemini.generate(
            build_niche_prompt(request.input, MAX_SUGGESTIONS),
            response_schema=NICHE_SUGGESTIONS_SCHEMA,
        )
        items = parse_array_payload(text, accept=is_string_array)
    except (ConfigurationError, UpstreamError, MalformedResponseError) as e:
        logger.error("Niche suggestions failed: %s", e)
        raise _to_http_error(e)

    return [item for item in items if isinstance(item, str) and item.strip()][:MAX_SUGGESTIONS]


def run_server(host: str = API_HOST, port: int = API_PORT):
    """Run the API server."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
