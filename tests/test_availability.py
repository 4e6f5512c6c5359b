"""Tests for structured availability filters and platform hints."""

from __future__ import annotations

from app.models import CatalogEntry, FilterCriteria, StreamingProvider
from app.services.availability import (
    MIN_FILTERED_RESULTS,
    apply_availability_filters,
    apply_platform_hints,
    filter_offers_by_kind,
    matches_platform_hint,
)


def _entry(tmdb_id: int) -> CatalogEntry:
    return CatalogEntry(tmdb_id=tmdb_id, title=f"Title {tmdb_id}", media_type="movie")


def _offer(provider_id: int, kind: str = "flatrate", name: str | None = None) -> StreamingProvider:
    return StreamingProvider(
        provider_id=provider_id,
        provider_name=name or f"Provider {provider_id}",
        availability_type=kind,
    )


def test_no_criteria_returns_input_unchanged() -> None:
    entries = [_entry(1), _entry(2)]
    offers = {1: [_offer(8, "rent")]}

    outcome = apply_availability_filters(entries, offers, FilterCriteria())

    assert outcome.entries == entries
    assert outcome.offers_by_id == offers
    assert outcome.backfilled == 0


def test_platform_filter_blends_when_too_few_match() -> None:
    """Two strict matches are topped up to five from the original order."""

    entries = [_entry(index) for index in range(1, 7)]
    offers = {
        1: [_offer(8)],
        2: [_offer(337)],
        3: [_offer(8), _offer(337)],
        4: [_offer(119)],
        5: [_offer(2, "rent")],
        6: [_offer(119)],
    }

    outcome = apply_availability_filters(
        entries, offers, FilterCriteria(platforms=frozenset({8}))
    )

    assert [entry.tmdb_id for entry in outcome.entries] == [1, 3, 2, 4, 5]
    assert outcome.strict_count == 2
    assert outcome.backfilled == 3
    assert [offer.provider_id for offer in outcome.offers_by_id[3]] == [8]
    # Backfilled entries keep their real availability.
    assert outcome.offers_by_id[2] == offers[2]
    assert outcome.offers_by_id[4] == offers[4]
    assert outcome.offers_by_id[5] == offers[5]
    assert 6 not in outcome.offers_by_id


def test_platform_filter_keeps_exactly_the_matching_entries() -> None:
    entries = [_entry(index) for index in range(1, 7)]
    offers = {index: [_offer(8)] for index in range(1, 6)}
    offers[6] = [_offer(337)]

    outcome = apply_availability_filters(
        entries, offers, FilterCriteria(platforms=frozenset({8}))
    )

    assert [entry.tmdb_id for entry in outcome.entries] == [1, 2, 3, 4, 5]
    assert outcome.backfilled == 0


def test_subscription_filter_drops_the_single_rental() -> None:
    entries = [_entry(index) for index in range(1, 7)]
    offers = {index: [_offer(8)] for index in range(1, 6)}
    offers[6] = [_offer(2, "rent")]

    outcome = apply_availability_filters(
        entries,
        offers,
        FilterCriteria(include_flatrate=True, include_rent=False),
    )

    assert [entry.tmdb_id for entry in outcome.entries] == [1, 2, 3, 4, 5]
    assert 6 not in outcome.offers_by_id


def test_rent_only_entries_drop_unless_rent_is_requested() -> None:
    entries = [_entry(index) for index in range(1, 11)]
    offers = {
        index: [_offer(8)] if index <= 6 else [_offer(2, "rent")]
        for index in range(1, 11)
    }

    subscription_only = apply_availability_filters(
        entries, offers, FilterCriteria(include_flatrate=True)
    )
    with_rent = apply_availability_filters(
        entries, offers, FilterCriteria(include_flatrate=True, include_rent=True)
    )

    assert [entry.tmdb_id for entry in subscription_only.entries] == [1, 2, 3, 4, 5, 6]
    assert subscription_only.backfilled == 0
    assert len(with_rent.entries) == 10


def test_kind_filter_keeps_ads_unless_flatrate_disabled() -> None:
    criteria = FilterCriteria(include_buy=True)
    offers = {1: [_offer(300, "ads"), _offer(3, "buy"), _offer(2, "rent")]}

    kept = filter_offers_by_kind(offers, criteria)
    assert [offer.availability_type for offer in kept[1]] == ["ads", "buy"]

    no_subscription = filter_offers_by_kind(
        offers, FilterCriteria(include_flatrate=False, include_rent=True)
    )
    assert [offer.availability_type for offer in no_subscription[1]] == ["rent"]


def test_blend_stops_when_original_list_is_exhausted() -> None:
    entries = [_entry(1), _entry(2), _entry(3)]
    offers = {1: [_offer(8)], 2: [_offer(9)]}

    outcome = apply_availability_filters(
        entries, offers, FilterCriteria(platforms=frozenset({9}))
    )

    assert [entry.tmdb_id for entry in outcome.entries] == [2, 1, 3]
    assert 3 not in outcome.offers_by_id
    assert outcome.offers_by_id[1] == offers[1]


def test_platform_hints_applied_when_enough_results_remain() -> None:
    entries = [_entry(index) for index in range(1, 8)]
    offers = {
        index: [_offer(8, name="Netflix")] if index <= 5 else [_offer(337, name="Disney Plus")]
        for index in range(1, 8)
    }

    result = apply_platform_hints(entries, offers, ["netflix"])

    assert [entry.tmdb_id for entry in result] == [1, 2, 3, 4, 5]


def test_platform_hints_discarded_when_too_few_match() -> None:
    """Hints are all or nothing: no partial blend."""

    entries = [_entry(index) for index in range(1, 8)]
    offers = {
        1: [_offer(8, name="Netflix")],
        2: [_offer(8, name="Netflix")],
        3: [_offer(337, name="Disney Plus")],
    }

    result = apply_platform_hints(entries, offers, ["Netflix"])

    assert result == entries
    assert len(result) > MIN_FILTERED_RESULTS


def test_platform_hint_matching_is_fuzzy() -> None:
    offers = [_offer(9, name="Amazon Prime Video")]

    assert matches_platform_hint(offers, ["Prime Video"])
    assert matches_platform_hint(offers, ["amazon"])
    assert not matches_platform_hint(offers, ["Hulu"])
    assert not matches_platform_hint([], ["Netflix"])


def test_no_hints_returns_input() -> None:
    entries = [_entry(1)]

    assert apply_platform_hints(entries, {}, []) == entries
