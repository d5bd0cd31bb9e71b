"""DIRAC — errors.py"""
from __future__ import annotations


class DiracError(Exception):
    label = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


class InputError(DiracError):
    """Malformed or empty invocation, unresolvable path."""
    label = "Input error"


class CommandExecutionError(DiracError):
    """Non-zero exit, timeout, signal termination, spawn failure."""
    label = "Command execution error"


class AIProcessingError(DiracError):
    """Transport failure or an error reported by the model service."""
    label = "AI processing error"
