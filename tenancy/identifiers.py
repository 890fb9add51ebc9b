import re
from urllib.parse import unquote

_WHITESPACE = re.compile(r'\s+')


def _decode(text):
    # Decode until nothing changes so double-encoded keys normalize the same way
    while '%' in text:
        decoded = unquote(text)
        if decoded == text:
            break
        text = decoded
    return text


def normalize(raw):
    """URL-decode, trim and lower-case an identifier. Empty input gives None."""
    if raw is None:
        return None
    text = _decode(str(raw)).strip().lower()
    return text or None


def slugify_name(name):
    """Turn a display name into the URL segment used for it ("Grand Hotel" -> "grand-hotel")."""
    normalized = normalize(name)
    if normalized is None:
        return None
    return _WHITESPACE.sub('-', normalized)
