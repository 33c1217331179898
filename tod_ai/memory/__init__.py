# tod_ai/memory/__init__.py
from tod_ai.memory.model_cache import ModelCache
from tod_ai.memory.schema import ConnectionResult, ModelCandidate

__all__ = [
    'ConnectionResult',
    'ModelCache',
    'ModelCandidate',
]
