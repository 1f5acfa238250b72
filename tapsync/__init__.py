"""Keep Homebrew tap formulas in sync with GitHub releases."""

__version__ = "0.4.0"
