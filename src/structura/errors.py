"""Exceptions raised by the structural analysis pipeline."""

from __future__ import annotations


class StructuralAnalysisError(Exception):
    """Base class for failures inside a structural analysis run."""


class CallGraphError(StructuralAnalysisError):
    """Raised when call-edge data cannot form a valid call graph."""

    def __init__(self, message: str, caller_id: str | None = None) -> None:
        super().__init__(message)
        self.caller_id = caller_id


class LayerConfigError(StructuralAnalysisError):
    """Raised when a layer configuration file is missing or malformed."""
