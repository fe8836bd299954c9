"""Turn an uploaded note into draft text."""
from pathlib import Path

MAX_OUTPUT_BYTES = 100_000  # 100 KB
_TRUNCATION_NOTICE = "\n\n[Content truncated to 100 KB]"

SUPPORTED_SUFFIXES = (".md", ".markdown", ".txt")


def parse_note(data: bytes, filename: str) -> str:
    """Decode note bytes into text. Raises ValueError on unsupported format."""
    suffix = Path(filename).suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ValueError(
            f"Unsupported file format: {suffix or '(none)'}. Supported: .md / .markdown / .txt"
        )
    return _truncate(_strip_front_matter(_decode(data)))


def _decode(data: bytes) -> str:
    for enc in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            return data.decode(enc)
        except UnicodeDecodeError:
            continue
    return data.decode("utf-8", errors="replace")


def _strip_front_matter(text: str) -> str:
    """Drop a leading YAML front-matter block (``---`` ... ``---``)."""
    if not text.startswith("---\n"):
        return text
    end = text.find("\n---", 3)
    if end == -1:
        return text
    rest = text[end + 4:]
    return rest.lstrip("\n") if not rest or rest[0] == "\n" else text


def _truncate(text: str) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= MAX_OUTPUT_BYTES:
        return text
    truncated = encoded[:MAX_OUTPUT_BYTES].decode("utf-8", errors="ignore")
    return truncated + _TRUNCATION_NOTICE
