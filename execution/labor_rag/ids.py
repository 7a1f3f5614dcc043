"""
Vector ID Derivation

Every vector ID is a pure function of document identity, unit kind and
position, so re-ingesting the same document overwrites the same vectors.
The scheme matches the IDs already stored in the production index.
"""

import re
from pathlib import Path
from typing import Optional

_TRANSLIT = str.maketrans({
    "ą": "a", "č": "c", "ę": "e", "ė": "e", "į": "i",
    "š": "s", "ų": "u", "ū": "u", "ž": "z",
    "Ą": "A", "Č": "C", "Ę": "E", "Ė": "E", "Į": "I",
    "Š": "S", "Ų": "U", "Ū": "U", "Ž": "Z",
})

_UNSAFE = re.compile(r"[^a-zA-Z0-9_-]")
_ARTICLE_ID = re.compile(r"-str-(\d+)$")


def slugify(text: str) -> str:
    """ASCII-safe slug: Lithuanian letters transliterated, the rest replaced by '_'."""
    return _UNSAFE.sub("_", text.strip().translate(_TRANSLIT))


def document_slug_from_filename(filename: str) -> str:
    """'LAT_2024_Spalio.pdf' -> 'LAT_2024_Spalio'."""
    return slugify(Path(filename).stem)


def article_id(doc_slug: str, number: int) -> str:
    return f"{doc_slug}-str-{number}"


def chunk_prefix(doc_slug: str) -> str:
    return f"{doc_slug}-chunk-"


def chunk_id(doc_slug: str, index: int) -> str:
    return f"{chunk_prefix(doc_slug)}{index}"


def case_prefix(doc_slug: str) -> str:
    return f"{doc_slug}-case-"


def case_id(doc_slug: str, index: int) -> str:
    return f"{case_prefix(doc_slug)}{index}"


FAQ_PREFIX = "vdi-faq-"


def faq_id(index: int) -> str:
    return f"{FAQ_PREFIX}{index}"


def parse_article_number(vector_id: str) -> Optional[int]:
    """Inverse of article_id; None for non-article IDs."""
    match = _ARTICLE_ID.search(vector_id)
    return int(match.group(1)) if match else None
