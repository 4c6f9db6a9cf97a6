"""Near-miss name suggestions for error messages."""

from collections.abc import Iterable
from difflib import SequenceMatcher

DEFAULT_MAX_RESULTS = 3
DEFAULT_THRESHOLD = 0.6


def similarity(a: str, b: str) -> float:
    """Normalized similarity in [0, 1], ignoring case."""
    return SequenceMatcher(None, a.lower(), b.lower()).ratio()


def suggest(
    target: str,
    candidates: Iterable[str],
    max_results: int = DEFAULT_MAX_RESULTS,
    threshold: float = DEFAULT_THRESHOLD,
) -> list[str]:
    """Return the candidates closest to ``target``.

    Candidates scoring below ``threshold`` are dropped. Results are ordered by
    descending similarity, ties keep the order the candidates were given in.
    """
    seen: set[str] = set()
    scored: list[tuple[float, int, str]] = []
    for position, candidate in enumerate(candidates):
        if candidate in seen or candidate == target:
            continue
        seen.add(candidate)
        score = similarity(target, candidate)
        if score >= threshold:
            scored.append((-score, position, candidate))

    scored.sort()
    return [candidate for _, _, candidate in scored[:max_results]]
