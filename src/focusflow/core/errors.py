# src/focusflow/core/errors.py

from __future__ import annotations


class FocusFlowError(Exception):
    """Base class for errors surfaced to the user (the stores themselves never raise)."""


class CommandError(FocusFlowError):
    """Bad console command arguments; the message is shown as-is."""
