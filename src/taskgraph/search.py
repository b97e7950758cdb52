"""Typo-tolerant task search.

Candidates are the chosen fields of each task (description and tags by default).
A substring hit always outranks a fuzzy-only hit; fuzzy hits are ordered by
normalized Levenshtein distance. Ties fall back to declaration order. In regex
mode only tasks whose fields match the pattern are returned.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from taskgraph.errors import InvalidOptionError
from taskgraph.tasks.model import Task

MAX_LIMIT = 100
CONTEXT_CHARS = 20
WORD_RE = re.compile(r"[\w-]+")

SEARCH_FIELDS = ("description", "phase", "type", "tags")
DEFAULT_FIELDS = ("description", "tags")


@dataclass
class SearchHit:
    task: Task
    exact: bool
    distance: float
    field: str
    matched: str
    context: str = ""

    @property
    def score(self) -> int:
        """Similarity percentage, 100 for substring and pattern matches."""
        return 100 if self.exact else round((1.0 - self.distance) * 100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "task": self.task.to_dict(),
            "exact": self.exact,
            "distance": round(self.distance, 4),
            "score": self.score,
            "field": self.field,
            "matched": self.matched,
            "context": self.context,
        }


def levenshtein(a: str, b: str) -> int:
    """Minimum number of single-character edits turning *a* into *b*."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def normalized_distance(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 0.0
    return levenshtein(a, b) / longest


def snippet(text: str, start: int, length: int, width: int = CONTEXT_CHARS) -> str:
    """*text* around ``text[start:start + length]`` with the match in ``**bold**``."""
    lo = max(0, start - width)
    hi = min(len(text), start + length + width)
    before = ("..." if lo > 0 else "") + text[lo:start]
    after = text[start + length:hi] + ("..." if hi < len(text) else "")
    return f"{before}**{text[start:start + length]}**{after}"


def resolve_fields(fields: list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    """Validate *fields*; ``all`` expands to every searchable field."""
    if not fields:
        return DEFAULT_FIELDS
    resolved: list[str] = []
    for name in fields:
        key = name.lower()
        if key == "all":
            return SEARCH_FIELDS
        if key not in SEARCH_FIELDS:
            raise InvalidOptionError(
                f"Invalid search field {name!r}. Valid values: {', '.join(SEARCH_FIELDS)}, all"
            )
        if key not in resolved:
            resolved.append(key)
    return tuple(resolved)


def _candidates(task: Task, fields: tuple[str, ...]) -> list[tuple[str, str]]:
    found: list[tuple[str, str]] = []
    for name in fields:
        if name == "tags":
            found.extend(("tags", tag) for tag in task.tags)
        else:
            found.append((name, getattr(task, name)))
    return [(name, text) for name, text in found if text]


def _best_fuzzy(
    query: str, candidates: list[tuple[str, str]], fold: bool
) -> tuple[float, str, str, int, int]:
    """Closest candidate: the whole string or any single word within it.

    Returns ``(distance, field, text, start, length)`` of the best span.
    """
    best: tuple[float, str, str, int, int] | None = None
    for name, text in candidates:
        source = text.lower() if fold else text
        spans = [(0, len(source))] + [(m.start(), m.end() - m.start()) for m in WORD_RE.finditer(source)]
        for start, length in spans:
            d = normalized_distance(query, source[start:start + length])
            if best is None or d < best[0]:
                best = (d, name, text, start, length)
    return best or (1.0, "", "", 0, 0)


def match_task(
    query: str,
    task: Task,
    fields: tuple[str, ...] = DEFAULT_FIELDS,
    case_sensitive: bool = False,
    pattern: re.Pattern[str] | None = None,
) -> SearchHit | None:
    """Score *task* against *query*; ``None`` when it has nothing to match."""
    candidates = _candidates(task, fields)
    if not candidates:
        return None

    if pattern is not None:
        for name, text in candidates:
            m = pattern.search(text)
            if m:
                return SearchHit(task=task, exact=True, distance=0.0, field=name,
                                 matched=m.group(0), context=snippet(text, m.start(), len(m.group(0))))
        return None

    q = query if case_sensitive else query.lower()
    for name, text in candidates:
        idx = (text if case_sensitive else text.lower()).find(q)
        if idx != -1:
            return SearchHit(task=task, exact=True, distance=0.0, field=name,
                             matched=text[idx:idx + len(query)],
                             context=snippet(text, idx, len(query)))

    distance, name, text, start, length = _best_fuzzy(q, candidates, fold=not case_sensitive)
    return SearchHit(task=task, exact=False, distance=distance, field=name,
                     matched=text[start:start + length],
                     context=snippet(text, start, length))


def search(
    tasks: list[Task],
    query: str,
    limit: int = 10,
    max_distance: float | None = None,
    fields: list[str] | tuple[str, ...] | None = None,
    case_sensitive: bool = False,
    regex: bool = False,
) -> list[SearchHit]:
    """Rank *tasks* against *query*; return at most *limit* hits (capped at 100).

    ``max_distance`` (0..1) drops fuzzy-only hits farther than it. ``fields``
    picks what is searched (``all`` for everything). With ``regex`` the query is
    a pattern and an invalid pattern raises ``InvalidOptionError``. Tasks with
    no searchable text never match.
    """
    searched = resolve_fields(fields)
    query = query.strip()
    limit = min(limit, MAX_LIMIT)
    if not query or limit <= 0:
        return []

    pattern = None
    if regex:
        try:
            pattern = re.compile(query, 0 if case_sensitive else re.IGNORECASE)
        except re.error as exc:
            raise InvalidOptionError(f"Invalid regular expression {query!r}: {exc}") from exc

    hits: list[SearchHit] = []
    for task in tasks:
        hit = match_task(query, task, searched, case_sensitive=case_sensitive, pattern=pattern)
        if hit is None:
            continue
        if not hit.exact and max_distance is not None and hit.distance > max_distance:
            continue
        hits.append(hit)

    hits.sort(key=lambda h: (not h.exact, h.distance, h.task.position))
    return hits[:limit]
