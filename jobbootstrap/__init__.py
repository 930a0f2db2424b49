"""Shell, executable lookup, SSH key scanning and redaction helpers for CI jobs."""

__version__ = "0.1.0"

__all__ = [
    "batch",
    "logger",
    "lookpath",
    "redactor",
    "shell",
    "ssh",
]