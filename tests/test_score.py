"""
Unit tests for sub-scores, path selection and blending.
"""

import itertools

import pytest

from visibility.models import Path, PlaceDetails, SignalBreakdown, SiteSignals
from visibility.score import (
    blend,
    category_norm,
    clamp_score,
    gbp_score,
    rating_norm,
    review_volume_norm,
    round_half_up,
    select_path,
    site_score,
)


def _details(rating=4.6, reviews=80, categories=("roofing_contractor", "point_of_interest"), photos=True, hours=True):
    return PlaceDetails(place_id="p1", name="Acme Roofing", rating=rating, review_count=reviews,
                        categories=categories, has_photos=photos, has_hours=hours)


def _signals(seo, cta):
    s, c = SignalBreakdown(), SignalBreakdown()
    s.add("fixture", seo)
    c.add("fixture", cta)
    return SiteSignals(seo=s.finalize(), cta=c.finalize())


def test_rating_norm_clamps():
    assert rating_norm(4.6) == pytest.approx(0.92)
    assert rating_norm(-1) == 0.0
    assert rating_norm(7) == 1.0
    assert rating_norm(None) == 0.0


def test_gbp_non_decreasing_in_rating():
    scores = [gbp_score(_details(rating=r / 10)).score for r in range(0, 51)]
    assert scores == sorted(scores)


def test_review_volume_steps():
    assert review_volume_norm(0) == 0.0
    assert review_volume_norm(1) == review_volume_norm(4) == 0.25
    assert review_volume_norm(5) == review_volume_norm(19) == 0.40
    assert review_volume_norm(20) == review_volume_norm(49) == 0.60
    assert review_volume_norm(50) == review_volume_norm(99) == 0.80
    assert review_volume_norm(100) == review_volume_norm(249) == 0.90
    assert review_volume_norm(250) == review_volume_norm(10_000) == 1.0


def test_review_volume_monotonic():
    values = [review_volume_norm(n) for n in range(0, 400)]
    assert values == sorted(values)


def test_category_norm():
    categories = ("roofing_contractor", "point_of_interest", "establishment")
    assert category_norm("roofing", categories) == 1.0
    assert category_norm("Roofer", categories) == 1.0
    assert category_norm("plumber", categories) == 0.6
    assert category_norm(None, categories) == 0.8
    assert category_norm("electrical", ("electrician",)) == 1.0


def test_gbp_components_are_labeled():
    result = gbp_score(_details(), "roofing")
    assert set(result.components) == {"ratingQuality", "reviewVolume", "categoryMatch", "photos", "hours"}
    assert result.components["ratingQuality"] == 92
    assert result.components["photos"] == 100


def test_gbp_reference_profile_is_92():
    # 100 × (0.40×0.92 + 0.25×0.80 + 0.15×1 + 0.10×1 + 0.10×1) = 91.8 → 92
    assert gbp_score(_details(rating=4.6, reviews=80), "roofing").score == 92


def test_gbp_120_reviews_uses_the_100_bucket():
    # 100 × (0.368 + 0.25×0.90 + 0.35) = 94.3 → 94
    assert gbp_score(_details(rating=4.6, reviews=120), "roofing").score == 94


def test_site_score_mix():
    assert site_score(_signals(80, 70), is_https=True).score == 79
    assert site_score(_signals(80, 70), is_https=False).score == 70


def test_select_path_is_total_and_deterministic():
    seen = {}
    for place, site, forced in itertools.product([False, True], repeat=3):
        path = select_path(place, site, forced)
        assert path in set(Path)
        assert select_path(place, site, forced) == path
        seen[(place, site, forced)] = path
    assert seen[(True, True, False)] == Path.BLENDED_60_40
    assert seen[(True, False, False)] == Path.GBP_ONLY
    assert seen[(False, True, False)] == Path.SITE_ONLY
    assert seen[(False, False, False)] == Path.NEEDS_INPUT
    assert seen[(True, True, True)] == Path.SITE_ONLY_FORCED
    assert seen[(False, False, True)] == Path.NEEDS_INPUT


def test_blended_reference_score():
    gbp = gbp_score(_details(rating=4.6, reviews=80), "roofing")
    site = site_score(_signals(80, 70), is_https=True)
    result = blend(gbp, site)
    assert result.path == Path.BLENDED_60_40
    # round(0.6 × 92 + 0.4 × 79) = round(86.8) = 87
    assert result.final_score == 87


def test_needs_input_has_no_score():
    result = blend(None, None)
    assert result.path == Path.NEEDS_INPUT
    assert result.final_score is None


def test_forced_site_only_ignores_gbp():
    result = blend(gbp_score(_details()), site_score(_signals(50, 50), True), forced_site_only=True)
    assert result.path == Path.SITE_ONLY_FORCED
    assert result.gbp is None
    assert result.final_score == result.site.score


def test_final_score_always_int_in_range():
    for rating, reviews, seo, cta in itertools.product([0, 2.5, 5], [0, 30, 500], [0, 55, 100], [0, 45, 100]):
        gbp = gbp_score(_details(rating=rating, reviews=reviews, photos=False, hours=False))
        site = site_score(_signals(seo, cta), is_https=bool(seo % 2))
        for g, s in ((gbp, site), (gbp, None), (None, site)):
            final = blend(g, s).final_score
            assert isinstance(final, int)
            assert 0 <= final <= 100


def test_rounding_is_half_up():
    assert round_half_up(86.5) == 87
    assert round_half_up(2.5) == 3
    assert clamp_score(100.4) == 100
    assert clamp_score(-3) == 0
