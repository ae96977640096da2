"""Parsing of model answers about uploaded papers.

The analysis model is asked for a JSON object but does not always return
one. :func:`parse_analysis` tries the structured path first and falls back
to treating the whole answer as the paper text. Both paths return a
:class:`ParsedAnalysis`; the parser never raises.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..models.enums import AnalysisPath
from ..models.schemas import DocumentMetadata

# Outermost {...} span, tolerating prose or fences around the object
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass
class ParsedAnalysis:
    """Typed result of parsing one analysis answer."""

    path: AnalysisPath
    content: str
    title: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    abstract: Optional[str] = None
    keywords: List[str] = field(default_factory=list)

    @property
    def metadata(self) -> DocumentMetadata:
        return DocumentMetadata(
            authors=list(self.authors),
            abstract=self.abstract,
            keywords=list(self.keywords),
        )


def split_list(value: Any) -> List[str]:
    """Normalize a comma-separated string or a list into trimmed items."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [item for item in value if item is not None]
    else:
        return []
    return [str(item).strip() for item in items if str(item).strip()]


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return text.strip() or None


def parse_strict(raw: str) -> Optional[ParsedAnalysis]:
    """Structured path: decode the JSON object in ``raw``, or return None."""
    match = _JSON_OBJECT_RE.search(raw)
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except (ValueError, RecursionError):
        return None
    if not isinstance(data, dict):
        return None

    content = data.get("content")
    return ParsedAnalysis(
        path=AnalysisPath.STRICT,
        content=content if isinstance(content, str) and content else raw,
        title=_optional_text(data.get("title")),
        authors=split_list(data.get("authors")),
        abstract=_optional_text(data.get("abstract")),
        keywords=split_list(data.get("keywords")),
    )


def parse_fallback(raw: str) -> ParsedAnalysis:
    """Fallback path: the whole answer is the paper text, metadata is empty."""
    return ParsedAnalysis(path=AnalysisPath.FALLBACK, content=raw)


def parse_analysis(raw: str) -> ParsedAnalysis:
    """Parse an analysis answer, strict first, then fallback."""
    return parse_strict(raw) or parse_fallback(raw)
