"""Interactive prompt helpers for tapsync."""

from __future__ import annotations

import questionary


class InteractionAborted(Exception):
    """Raised when the interactive session is cancelled."""


def prompt_password(prompt: str) -> str:
    result = questionary.password(prompt).ask()
    if result is None:
        raise InteractionAborted()
    return result.strip()
