"""Core types shared by every pipeline stage."""
from .exceptions import (
    FeeUnavailableError,
    PipelineError,
    RelayError,
    RelayTransportError,
    StaleOpportunityError,
    StartupError,
)

__all__ = [
    "PipelineError",
    "StartupError",
    "FeeUnavailableError",
    "StaleOpportunityError",
    "RelayError",
    "RelayTransportError",
]
