"""
Selection helpers for extraction candidates.

Ranking is deterministic: highest confidence first, ties broken by the
declaration order of the originating rule (earlier rules are authoritative).
"""

from typing import Iterable, List, Optional

from .candidates import Candidate

__all__ = ['candidate_sort_key', 'rank_candidates', 'select_best_candidate', 'select_top_candidates']


def candidate_sort_key(candidate: Candidate) -> tuple[float, int]:
    return (-candidate.confidence, candidate.rule_order)


def rank_candidates(candidates: Iterable[Candidate]) -> List[Candidate]:
    """
    Sort candidates best-first.

    Python's sort is stable, so candidates with equal confidence and equal
    rule order keep their input order.
    """
    return sorted(candidates, key=candidate_sort_key)


def select_top_candidates(
    candidates: Iterable[Candidate],
    top_n: int = 3
) -> List[Candidate]:
    """
    Select top N candidates.

    Args:
        candidates: Candidates to rank
        top_n: Number of candidates to return (default 3)

    Returns:
        Up to top_n candidates, best first

    Example:
        >>> top_5 = select_top_candidates(detected_dates, 5)
    """
    return rank_candidates(candidates)[:top_n]


def select_best_candidate(
    candidates: Iterable[Candidate],
    min_confidence: float = 0.0
) -> Optional[Candidate]:
    """
    Select best candidate from a single extraction pass.

    Args:
        candidates: Candidates to rank
        min_confidence: Only return the winner if it scores at least this

    Returns:
        Highest-confidence candidate, or None if there is none
    """
    ranked = rank_candidates(candidates)
    if not ranked:
        return None

    best = ranked[0]
    if best.confidence < min_confidence:
        return None

    return best
