"""Self-admitted technical debt lifecycle mining for Git repositories."""

__version__ = "0.1.0"
