from app.features.recommendations.domain.models import RecommendationReason, ScoredCandidate
from app.features.recommendations.services.merger import merge

COLLAB = RecommendationReason.COLLABORATIVE
CONTENT = RecommendationReason.CONTENT
TRENDING = RecommendationReason.TRENDING


def _c(course_id: str, score: float, reason: RecommendationReason) -> ScoredCandidate:
    return ScoredCandidate(course_id=course_id, score=score, reason=reason, sources=(reason,))


def test_shared_course_is_tagged_hybrid_with_max_score():
    merged = merge(
        {
            COLLAB: [_c("c1", 0.9, COLLAB), _c("c2", 0.5, COLLAB)],
            CONTENT: [_c("c1", 0.6, CONTENT), _c("c3", 0.7, CONTENT)],
        },
        limit=10,
    )

    by_course = {c.course_id: c for c in merged}
    assert [c.course_id for c in merged].count("c1") == 1
    assert by_course["c1"].reason is RecommendationReason.HYBRID
    assert by_course["c1"].score == 0.9
    assert set(by_course["c1"].sources) == {COLLAB, CONTENT}
    assert by_course["c2"].reason is COLLAB
    assert by_course["c3"].reason is CONTENT


def test_merge_is_independent_of_input_order():
    a = [_c("c1", 0.8, COLLAB), _c("c2", 0.4, COLLAB)]
    b = [_c("c2", 0.4, CONTENT), _c("c3", 0.8, CONTENT)]

    assert merge({COLLAB: a, CONTENT: b}, 10) == merge({CONTENT: b, COLLAB: a}, 10)


def test_ties_prefer_more_contributors_then_lower_course_id():
    merged = merge(
        {
            COLLAB: [_c("b", 0.5, COLLAB), _c("z", 0.5, COLLAB)],
            CONTENT: [_c("z", 0.5, CONTENT), _c("a", 0.5, CONTENT)],
        },
        limit=10,
    )

    assert [c.course_id for c in merged] == ["z", "a", "b"]


def test_output_truncated_and_sorted_descending():
    merged = merge(
        {
            COLLAB: [_c(f"c{i}", i / 10, COLLAB) for i in range(1, 8)],
            TRENDING: [_c("t1", 0.95, TRENDING)],
        },
        limit=3,
    )

    assert [c.course_id for c in merged] == ["t1", "c7", "c6"]
    assert [c.score for c in merged] == sorted((c.score for c in merged), reverse=True)


def test_empty_inputs_merge_to_empty():
    assert merge({}, 5) == []
    assert merge({COLLAB: [], CONTENT: []}, 5) == []
    assert merge({COLLAB: [_c("c1", 0.5, COLLAB)]}, 0) == []
