# tod_ai/utils/diagnostics.py
"""
Human-readable explanations for GenerationError.

Each message is: a short title, numbered remediation steps, then the models
involved. The CLI and the Gradio UI both render errors through here.
"""
from typing import Dict, List, Tuple

from tod_ai.utils.errors import ErrorKind, FailureKind, GenerationError

API_KEY_URL = "https://aistudio.google.com/app/apikey"
ENABLE_API_URL = "https://console.cloud.google.com/apis/library/generativelanguage.googleapis.com"
CREDENTIALS_URL = "https://console.cloud.google.com/apis/credentials"
STATUS_URL = "https://status.cloud.google.com/"

_TEMPLATES: Dict[FailureKind, Tuple[str, List[str]]] = {
    FailureKind.INVALID_KEY: (
        "⚠️ Invalid API Key",
        [
            'Double-check you copied the entire key (it starts with "AIza")',
            "Make sure there are no extra spaces",
            f"Create a new key at {API_KEY_URL}, preferably in a new project",
            "Wait 1-2 minutes after creating the key before testing",
        ],
    ),
    FailureKind.NOT_ENABLED: (
        "⚠️ Generative Language API Not Enabled",
        [
            f"Enable the API at {ENABLE_API_URL}",
            "Make sure the key belongs to the project you enabled it in",
            "Wait 2-5 minutes after enabling, then try again",
        ],
    ),
    FailureKind.NO_MODELS: (
        "⚠️ No Models Available",
        [
            "If the API was just enabled, wait 5 minutes for it to activate",
            f"Check API key restrictions at {CREDENTIALS_URL}",
            f"Confirm the API is enabled at {ENABLE_API_URL}",
            "Try creating a new API key in a new project",
        ],
    ),
    FailureKind.ALL_OVERLOADED: (
        "🚦 All Models Currently Overloaded",
        [
            "Wait 30-60 seconds and try again; server load usually clears quickly",
            "Try again outside peak hours",
            f"Check {STATUS_URL} for known issues",
        ],
    ),
    FailureKind.ALL_QUOTA_EXCEEDED: (
        "⚠️ All Models Quota Exceeded",
        [
            f'Create a new API key at {API_KEY_URL} and choose "Create API key in new project"',
            f"Enable the API in that project at {ENABLE_API_URL} and wait 2 minutes",
            "Save the new key in Tod AI, or wait for the daily quota reset (midnight UTC)",
        ],
    ),
    FailureKind.MIXED: (
        "⚠️ Mixed Issues Detected",
        [
            f"Create a new API key in a new project at {API_KEY_URL} (fixes quota)",
            "Wait a minute before retrying (fixes overload)",
        ],
    ),
    FailureKind.PARTIALLY_OVERLOADED: (
        "🚦 Models Overloaded or Unavailable",
        [
            "Wait 30-60 seconds and try again",
            f"Create a new API key at {API_KEY_URL} if the problem persists",
        ],
    ),
    FailureKind.PARTIALLY_QUOTA_EXCEEDED: (
        "⚠️ API Quota Issues",
        [
            f'Create a new API key at {API_KEY_URL} using "Create API key in new project"',
            "Or wait 1-2 hours and retry",
        ],
    ),
    FailureKind.ALL_FAILED: (
        "⚠️ All Available Models Failed",
        [
            "The API may still be activating; wait 5 more minutes",
            "There may be a temporary issue with the API; retry shortly",
            "Check whether your API key has usage restrictions",
        ],
    ),
}

_MODEL_LINES = [
    (ErrorKind.OVERLOADED, "Overloaded models"),
    (ErrorKind.QUOTA_EXCEEDED, "Models that hit quota"),
    (ErrorKind.NOT_FOUND, "Models not available"),
    (ErrorKind.NOT_ENABLED, "Models blocked by disabled API"),
    (ErrorKind.INVALID_KEY, "Models that rejected the key"),
    (ErrorKind.UNCLASSIFIED, "Models with other errors"),
]


def _summary_line(error: GenerationError) -> str:
    total = error.total_candidates
    overloaded = len(error.overloaded_models)
    quota = len(error.quota_exceeded_models)

    if error.kind is FailureKind.ALL_OVERLOADED:
        return f"All {total} available models are experiencing high traffic on Google's servers."
    if error.kind is FailureKind.ALL_QUOTA_EXCEEDED:
        return f"All {total} available models have exceeded their quota limits."
    if error.kind is FailureKind.MIXED:
        return f"{quota} model(s) hit quota limits and {overloaded} model(s) are overloaded."
    if error.kind is FailureKind.PARTIALLY_OVERLOADED:
        return f"{overloaded} model(s) are overloaded, and other models failed."
    if error.kind is FailureKind.PARTIALLY_QUOTA_EXCEEDED:
        return f"{quota} model(s) exceeded quota, and other models failed."
    if error.kind is FailureKind.ALL_FAILED:
        return f"Found {total} model(s) but none worked."
    return ""


def render_diagnostic(error: GenerationError) -> str:
    title, steps = _TEMPLATES[error.kind]
    lines = [title, ""]

    summary = _summary_line(error)
    if summary:
        lines += [summary, ""]

    lines += [f"{number}. {step}" for number, step in enumerate(steps, start=1)]

    model_lines = []
    for kind, label in _MODEL_LINES:
        models = error.models_with(kind)
        if models:
            model_lines.append(f"{label}: {', '.join(models)}")
    if model_lines:
        lines += [""] + model_lines

    if error.last_error and error.kind not in (FailureKind.ALL_OVERLOADED, FailureKind.ALL_QUOTA_EXCEEDED):
        lines += ["", f"Last error: {error.last_error}"]

    return "\n".join(lines)
