"""Command line interface (``python -m batch_import.cli``)."""

from .__main__ import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS, main

__all__ = [
    "main",
    "EXIT_SUCCESS",
    "EXIT_FATAL",
    "EXIT_PARTIAL_FAILURE",
]
