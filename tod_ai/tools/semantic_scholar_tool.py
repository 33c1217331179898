# tod_ai/tools/semantic_scholar_tool.py
"""
Semantic Scholar paper search.

Blocking (requests); async callers run it in a worker thread.
"""
from typing import Dict, List, Optional

import requests
from pydantic import BaseModel

from tod_ai.config import (
    PAPER_SEARCH_LIMIT,
    PAPER_SEARCH_TIMEOUT_SECONDS,
    SEMANTIC_SCHOLAR_API_KEY,
    SEMANTIC_SCHOLAR_BASE_URL,
    get_logger,
)

logger = get_logger(__name__)

PAPER_FIELDS = "title,authors,year,abstract,url"


class PaperSearchError(Exception):
    pass


class Paper(BaseModel):
    title: str
    authors: List[str] = []
    year: Optional[int] = None
    abstract: Optional[str] = None
    url: str = ""

    @classmethod
    def from_api(cls, data: Dict) -> "Paper":
        return cls(
            title=data.get("title") or "Untitled",
            authors=[a.get("name", "") for a in data.get("authors") or [] if a.get("name")],
            year=data.get("year"),
            abstract=data.get("abstract"),
            url=data.get("url") or "",
        )


def search_papers(
    keywords: List[str],
    limit: int = PAPER_SEARCH_LIMIT,
    api_key: Optional[str] = SEMANTIC_SCHOLAR_API_KEY,
    base_url: str = SEMANTIC_SCHOLAR_BASE_URL,
    session: Optional[requests.Session] = None,
) -> List[Paper]:
    """Search papers matching the keywords. Raises PaperSearchError on failure."""
    query = " ".join(k.strip() for k in keywords if k and k.strip())
    if not query:
        raise PaperSearchError("No keywords to search for")

    logger.info("🔎 Semantic Scholar search: '%s'", query[:80])

    headers = {"x-api-key": api_key} if api_key else {}
    http = session or requests

    try:
        response = http.get(
            f"{base_url}/paper/search",
            params={"query": query, "limit": limit, "fields": PAPER_FIELDS},
            headers=headers,
            timeout=PAPER_SEARCH_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning("❌ Semantic Scholar error: %s", str(e)[:120])
        raise PaperSearchError("Failed to search research papers") from e

    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise PaperSearchError("Invalid response from Semantic Scholar API")

    papers = [Paper.from_api(item) for item in payload["data"] if isinstance(item, dict)]
    logger.info("✅ Found %d papers", len(papers))
    return papers
