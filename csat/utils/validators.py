import re

# Simple, pragmatic patterns
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

def clean_str(val, max_len: int = 255) -> str | None:
    """
    Collapse whitespace, trim, enforce max length. Returns None if empty after cleaning.
    """
    if val is None:
        return None
    s = re.sub(r"\s+", " ", str(val)).strip()
    if not s:
        return None
    return s[:max_len]

def clean_text(val) -> str | None:
    """Trim only; keeps line breaks in free-text answers. None if blank."""
    if val is None:
        return None
    s = str(val).strip()
    return s or None

def too_long(val: str | None, max_len: int) -> bool:
    return bool(val) and len(val) > max_len

def is_valid_email(val: str | None) -> bool:
    if not val:
        return True
    return bool(_EMAIL_RE.match(val))
