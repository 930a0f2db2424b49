"""Escaping of text for ECHO statements in Windows batch files."""

_REPLACEMENTS = (
    ("%", "%%"),
    ("^", "^^"),
    ("^", "^^"),
    ("&", "^&"),
    ("<", "^<"),
    (">", "^>"),
    ("|", "^|"),
)


def batch_escape(text: str) -> str:
    """Escape ``text`` so it can follow an ``ECHO`` in a batch file."""
    for old, new in _REPLACEMENTS:
        text = text.replace(old, new)
    return text