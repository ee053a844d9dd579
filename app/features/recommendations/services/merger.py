"""
Hybrid merger: folds several strategies' candidate lists into one ranking.
"""

from collections.abc import Mapping, Sequence

from app.features.recommendations.domain.models import RecommendationReason, ScoredCandidate


def merge(
    candidate_lists: Mapping[RecommendationReason, Sequence[ScoredCandidate]],
    limit: int,
) -> list[ScoredCandidate]:
    """
    Union candidates by course id and rank them.

    A course keeps its best score across strategies. It is tagged HYBRID
    when two or more distinct strategies proposed it, otherwise it keeps its
    single originating reason. Ordering is score desc, then number of
    contributing strategies desc, then course id asc, so the result does not
    depend on the iteration order of ``candidate_lists``.
    """
    if limit <= 0:
        return []

    best_scores: dict[str, float] = {}
    contributors: dict[str, set[RecommendationReason]] = {}

    for reason, candidates in candidate_lists.items():
        for candidate in candidates:
            course_id = candidate.course_id
            if candidate.score > best_scores.get(course_id, float("-inf")):
                best_scores[course_id] = candidate.score
            contributors.setdefault(course_id, set()).add(reason)

    merged = []
    for course_id, score in best_scores.items():
        reasons = tuple(sorted(contributors[course_id], key=lambda r: r.value))
        reason = RecommendationReason.HYBRID if len(reasons) >= 2 else reasons[0]
        merged.append(
            ScoredCandidate(course_id=course_id, score=score, reason=reason, sources=reasons)
        )

    merged.sort(key=lambda c: (-c.score, -c.contributor_count, c.course_id))
    return merged[:limit]
