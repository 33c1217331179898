# tod_ai/tools/__init__.py
from tod_ai.tools.json_parser import parse_json_response
from tod_ai.tools.semantic_scholar_tool import Paper, PaperSearchError, search_papers

__all__ = [
    'Paper',
    'PaperSearchError',
    'parse_json_response',
    'search_papers',
]
