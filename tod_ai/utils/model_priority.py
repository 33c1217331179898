# tod_ai/utils/model_priority.py
"""
Model priority scoring - prefer stable, high-quota models.

Newer and preview models usually have lower free-tier quota and are the
first to report overload, so they are tried last.
"""
from typing import List

from tod_ai.memory.schema import ModelCandidate

DEFAULT_PRIORITY = 30


def get_model_priority(model_name: str) -> int:
    """Higher score = tried earlier. First matching rule wins."""
    preview = 'preview' in model_name

    # Stable, high-quota models
    if '1.5-flash' in model_name and not preview:
        return 100
    if '1.0-pro' in model_name and not preview:
        return 95

    # Stable, medium-quota models
    if '1.5-pro' in model_name and not preview:
        return 90
    if model_name == 'gemini-pro':
        return 85

    # Flash previews
    if '1.5-flash' in model_name and preview:
        return 70
    if '2.0-flash' in model_name:
        return 65

    # Pro previews
    if '1.5-pro' in model_name and preview:
        return 50
    if '2.5-flash' in model_name:
        return 45

    # Experimental / newest
    if '2.5-pro' in model_name:
        return 20
    if preview:
        return 10

    return DEFAULT_PRIORITY


def rank_candidates(candidates: List[ModelCandidate]) -> List[ModelCandidate]:
    """Sort by priority, highest first. Equal scores keep discovery order."""
    return sorted(candidates, key=lambda c: get_model_priority(c.model), reverse=True)
