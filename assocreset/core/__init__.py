# assocreset/core/__init__.py
"""
Headless scan / estimate / reset engine.

Import ResetPipeline from assocreset.core.pipeline; this package only
re-exports the shared value types and errors.
"""

from .errors import AttributeAccessError, ConfigurationError, ErrorKind, ResetError
from .models import (
    CandidatePath,
    CategoryMetrics,
    ConfidenceLevel,
    OutcomeAction,
    OutcomeRecord,
    Report,
    SampleResult,
)

__all__ = [
    'AttributeAccessError',
    'CandidatePath',
    'CategoryMetrics',
    'ConfidenceLevel',
    'ConfigurationError',
    'ErrorKind',
    'OutcomeAction',
    'OutcomeRecord',
    'Report',
    'ResetError',
    'SampleResult',
]
