"""Local code-review viewer core for uncommitted git changes."""

__version__ = "0.3.0"
