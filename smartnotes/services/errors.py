"""
Error taxonomy for the generation pipeline
"""
from __future__ import annotations

from typing import Optional


class GenerationError(Exception):
    """Base class for every failure raised by the generation services."""


class ProviderError(GenerationError):
    """Transport failure: connection error, non-2xx response or missing credential."""

    def __init__(self, message: str, status_code: Optional[int] = None, provider: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.provider = provider


# Both names appear in the wider codebase
TransportError = ProviderError


class EmptyCompletionError(GenerationError):
    """The provider answered but the completion carried no text."""


class JsonParseError(GenerationError):
    """Sanitized completion text is not valid JSON."""

    def __init__(self, message: str, candidate: str = ""):
        super().__init__(message)
        self.candidate = candidate


class JsonRepairFailure(JsonParseError):
    """The repair heuristic did not produce parseable JSON either."""


class MaterialNotFound(LookupError):
    def __init__(self, material_id: int):
        super().__init__(f"Material {material_id} not found")
        self.material_id = material_id
