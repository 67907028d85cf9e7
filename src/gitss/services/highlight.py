"""Keyword extraction and line previews for search hits."""

import re
from abc import ABC, abstractmethod
from typing import Optional

from gitss.services.search_types import TextPreview


def _terms_pattern(terms: list[str]) -> Optional[re.Pattern]:
    if not terms:
        return None
    alternatives = sorted({re.escape(t) for t in terms if t}, key=len, reverse=True)
    if not alternatives:
        return None
    return re.compile("|".join(alternatives), re.IGNORECASE)


def extract_hit_words(terms: list[str], contents: list[str]) -> list[str]:
    """
    Collect the text actually matched by query terms.

    Matching is case-insensitive; the returned words keep the case found in
    the content, in order of first appearance and without duplicates.
    """
    pattern = _terms_pattern(terms)
    if pattern is None:
        return []
    words: dict[str, None] = {}
    for content in contents:
        for match in pattern.finditer(content):
            words.setdefault(match.group(0), None)
    return list(words)


class PreviewGeneratorInterface(ABC):
    """Interface for producing preview snippets of a hit."""

    @abstractmethod
    def generate(self, content: str, terms: list[str]) -> list[TextPreview]:
        pass


class LinePreviewGenerator(PreviewGeneratorInterface):
    """Previews each line that contains a query term."""

    def __init__(self, max_previews: int = 3):
        self._max_previews = max_previews

    def generate(self, content: str, terms: list[str]) -> list[TextPreview]:
        pattern = _terms_pattern(terms)
        if pattern is None or not content:
            return []

        previews = []
        for line_number, line in enumerate(content.splitlines(), start=1):
            if pattern.search(line):
                previews.append(TextPreview(offset=line_number, content=line))
                if len(previews) >= self._max_previews:
                    break
        return previews
