# filehub/core/strings.py
import re
import unicodedata

_UNSAFE = re.compile(r"[^A-Za-z0-9_\-]")


def filenamize(value: str) -> str:
    """Fold accents and drop everything but letters, digits, '-' and '_'."""
    folded = unicodedata.normalize("NFKD", value or "")
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch))
    return _UNSAFE.sub("", folded)
