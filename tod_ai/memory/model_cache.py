# tod_ai/memory/model_cache.py
"""In-memory bookkeeping for the model router.

Holds the last candidate that answered a request and the ranked list found
by the most recent discovery. One instance is shared by every request that
goes through the same router; there is no locking, a lost update only costs
an extra discovery round.
"""
from typing import List, Optional

from tod_ai.config import get_logger
from tod_ai.memory.schema import ModelCandidate

logger = get_logger(__name__)


class ModelCache:
    def __init__(self):
        self.working_config: Optional[ModelCandidate] = None
        self.available_models: List[ModelCandidate] = []

    def remember(self, candidate: ModelCandidate):
        """Mark a candidate as last known good."""
        if self.working_config != candidate:
            logger.info("💾 Caching working model: %s", candidate)
        self.working_config = candidate

    def store_models(self, candidates: List[ModelCandidate]):
        if not candidates:
            return
        self.available_models = list(candidates)
        logger.info("📦 Cached %d available models", len(candidates))

    def get_models(self) -> List[ModelCandidate]:
        return list(self.available_models)

    def clear(self):
        self.working_config = None
        self.available_models = []
        logger.info("✨ Model cache cleared")
