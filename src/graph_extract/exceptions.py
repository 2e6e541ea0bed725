"""Exceptions raised by the extraction pipeline."""

from __future__ import annotations
from typing import Optional


class GraphExtractError(Exception):
    """Base exception for graph extraction."""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidConfiguration(GraphExtractError):
    """Bad segment bound or malformed prompt template."""


class PreconditionNotMet(GraphExtractError):
    """Missing input text, model client or model identifier at run start."""


class RunInProgress(GraphExtractError):
    """A run was requested while another one is still active."""


class ModelUnavailable(GraphExtractError):
    """The model endpoint could not be reached."""


class ModelError(GraphExtractError):
    """The model endpoint answered with an application-level failure."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
