from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from app.features.recommendations.domain.errors import InvalidArgumentError, NotFoundError
from app.features.recommendations.domain.models import (
    InteractionType,
    RecommendationCacheEntry,
    RecommendationReason,
)
from app.features.recommendations.services.interaction_log import (
    parse_interaction_type,
    resolve_weight,
)


@pytest.fixture
def known(catalog):
    catalog.add_user("u1")
    catalog.add_course("c1", department="CS")
    return catalog


def _cached_entry(user_id="u1"):
    now = datetime.now(UTC)
    return RecommendationCacheEntry(
        user_id=user_id,
        course_id="c9",
        score=0.5,
        reason=RecommendationReason.TRENDING,
        computed_at=now,
        expires_at=now + timedelta(hours=24),
    )


def test_parse_interaction_type_is_case_insensitive():
    assert parse_interaction_type("favorite") is InteractionType.FAVORITE
    assert parse_interaction_type(" Review ") is InteractionType.REVIEW


@pytest.mark.parametrize("value", [None, "", "LIKE"])
def test_parse_interaction_type_rejects_unknown(value):
    with pytest.raises(InvalidArgumentError):
        parse_interaction_type(value)


def test_resolve_weight_defaults_per_type():
    assert resolve_weight(InteractionType.VIEW, None) == 1.0
    assert resolve_weight(InteractionType.SEARCH, None) == 0.5
    assert resolve_weight(InteractionType.FAVORITE, None) == 2.0
    assert resolve_weight(InteractionType.REVIEW, None) == 3.0
    assert resolve_weight(InteractionType.VIEW, 0) == 0.0


@pytest.mark.parametrize("weight", [-1.0, float("nan"), float("inf"), "heavy"])
def test_resolve_weight_rejects_bad_values(weight):
    with pytest.raises(InvalidArgumentError):
        resolve_weight(InteractionType.VIEW, weight)


@pytest.mark.asyncio
async def test_record_appends_event_with_default_weight(interaction_log, interactions, known):
    event = await interaction_log.record("u1", "c1", "view")

    assert event.type is InteractionType.VIEW
    assert event.weight == 1.0
    assert interactions.events == [event]
    assert await interaction_log.count_for_user("u1") == 1


@pytest.mark.asyncio
async def test_record_keeps_explicit_weight(interaction_log, known):
    event = await interaction_log.record("u1", "c1", "SEARCH", weight=4.5)
    assert event.weight == 4.5


@pytest.mark.asyncio
async def test_invalid_input_writes_nothing(interaction_log, interactions, known):
    with pytest.raises(InvalidArgumentError):
        await interaction_log.record("u1", "", "VIEW")
    with pytest.raises(InvalidArgumentError):
        await interaction_log.record("u1", "c1", "CLICK")
    with pytest.raises(InvalidArgumentError):
        await interaction_log.record("u1", "c1", "VIEW", weight=-2)

    assert interactions.events == []


@pytest.mark.asyncio
async def test_unknown_user_or_course_is_not_found(interaction_log, interactions, known):
    with pytest.raises(NotFoundError):
        await interaction_log.record("ghost", "c1", "VIEW")
    with pytest.raises(NotFoundError):
        await interaction_log.record("u1", "missing", "VIEW")

    assert interactions.events == []


@pytest.mark.asyncio
async def test_significant_interaction_invalidates_cache(
    interaction_log, cache, cache_repository, known
):
    await cache.put([_cached_entry()])
    before = await cache.generation("u1")

    await interaction_log.record("u1", "c1", "REVIEW")

    assert await cache.get("u1") is None
    assert await cache.generation("u1") != before


@pytest.mark.asyncio
async def test_view_does_not_invalidate_cache(interaction_log, cache, known):
    await cache.put([_cached_entry()])

    await interaction_log.record("u1", "c1", "VIEW")
    await interaction_log.record("u1", "c1", "SEARCH")

    assert await cache.get("u1") is not None


@pytest.mark.asyncio
async def test_failed_invalidation_still_records(interaction_log, interactions, cache, known):
    cache.invalidate = AsyncMock(side_effect=RuntimeError("cache store down"))

    event = await interaction_log.record("u1", "c1", "FAVORITE")

    assert event.type is InteractionType.FAVORITE
    assert interactions.events == [event]
    cache.invalidate.assert_awaited_once_with("u1")
