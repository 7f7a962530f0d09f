"""
VibeBuilder Kernel — Error taxonomy

Every failure the generation pipeline, the autosave state machine, or the
sandbox boundary can produce maps to exactly one of these types.
"""

from __future__ import annotations


class VibeError(Exception):
    """Base class for all kernel-level errors."""


class ConfigurationError(VibeError):
    """A required credential or setting is missing. Raised before any stage runs."""


class CapabilityError(VibeError):
    """The planning or coding backend failed. Fatal to the current turn."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage} failed: {message}")
        self.stage = stage
        self.message = message


class AssetResolutionError(VibeError):
    """A single image could not be synthesized. Recovered with a fallback resource."""

    def __init__(self, prompt: str, message: str):
        super().__init__(f"image synthesis failed for {prompt[:60]!r}: {message}")
        self.prompt = prompt
        self.message = message


class PersistenceError(VibeError):
    """A save could not be written. Surfaced through the save indicator only."""


class ProtocolViolation(VibeError):
    """A message from the sandbox did not match the selection envelope."""
