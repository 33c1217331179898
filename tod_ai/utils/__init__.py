# tod_ai/utils/__init__.py
from tod_ai.utils.diagnostics import render_diagnostic
from tod_ai.utils.errors import ErrorKind, FailureKind, GenerationError, ModelCallError
from tod_ai.utils.model_router import GeminiRouter, create_router

__all__ = [
    'ErrorKind',
    'FailureKind',
    'GeminiRouter',
    'GenerationError',
    'ModelCallError',
    'create_router',
    'render_diagnostic',
]
