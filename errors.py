"""
errors.py

Error kinds surfaced to the user.  None of them is fatal; the UI
reports them and the action can be retried.
"""

from __future__ import annotations


class TrichoMarkError(Exception):
    """Base class for reportable application errors."""


class InputError(TrichoMarkError):
    """The image (or annotation file) could not be read or decoded."""


class ExternalServiceError(TrichoMarkError):
    """The AI detector request failed (network, credentials, quota...)."""


class EmptyResultWarning(TrichoMarkError, UserWarning):
    """The AI detector answered but returned no usable annotations."""


class ExportFailure(TrichoMarkError):
    """The report image could not be composed or written."""
