# tod_ai/memory/schema.py
"""Value types shared by the model router and its cache."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ModelCandidate(BaseModel):
    """An (API version, model name) pair that can serve generateContent."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    version: str
    model: str

    @property
    def label(self) -> str:
        return f"{self.version}:{self.model}"

    def __str__(self) -> str:
        return f"{self.version}/models/{self.model}"


class ConnectionResult(BaseModel):
    """Outcome of validating a credential from the setup screen."""

    model_config = ConfigDict(protected_namespaces=())

    success: bool
    model: Optional[str] = None
    version: Optional[str] = None
    message: Optional[str] = None
    reason: Optional[str] = None
    diagnostic: Optional[str] = None
    available_models: List[str] = []
