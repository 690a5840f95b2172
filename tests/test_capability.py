"""Tests for process capability metrics."""

import numpy as np
import pytest

from stackup_analysis.capability import (
    QualityRating,
    analyze_capability,
    compute_capability,
    rate_index,
    sigma_band,
    yield_from_normal,
    yield_from_samples,
)
from stackup_analysis.errors import ValidationError
from stackup_analysis.models import SpecLimits


class TestIndices:
    def test_centered(self):
        c = compute_capability(0.0, 1.0, SpecLimits(-3.0, 3.0))
        assert c.cp == pytest.approx(1.0)
        assert c.cpk == pytest.approx(1.0)
        assert c.pp == pytest.approx(1.0)
        assert c.ppk == pytest.approx(1.0)
        assert c.sigma_level == pytest.approx(3.0)

    def test_shifted(self):
        c = compute_capability(1.0, 1.0, SpecLimits(-3.0, 3.0))
        assert c.cp == pytest.approx(1.0)
        assert c.cpk == pytest.approx(2.0 / 3.0)

    def test_upper_only(self):
        c = compute_capability(0.0, 1.0, SpecLimits(upper=6.0))
        assert c.cp is None
        assert c.cpk == pytest.approx(2.0)

    def test_lower_only(self):
        c = compute_capability(0.0, 1.0, SpecLimits(lower=-1.5))
        assert c.cp is None
        assert c.cpk == pytest.approx(0.5)

    def test_long_term_sigma(self):
        c = compute_capability(0.0, 1.0, SpecLimits(-3.0, 3.0), long_term_sigma=2.0)
        assert c.cp == pytest.approx(1.0)
        assert c.pp == pytest.approx(0.5)
        assert c.ppk == pytest.approx(0.5)

    @pytest.mark.parametrize("limits", [None, SpecLimits(), SpecLimits(target=1.0)])
    def test_no_limits(self, limits):
        c = compute_capability(0.0, 1.0, limits)
        assert c.to_dict() == {"cp": None, "cpk": None, "pp": None, "ppk": None}
        assert c.sigma_level is None

    def test_zero_sigma(self):
        c = compute_capability(0.0, 0.0, SpecLimits(-1.0, 1.0))
        assert c.cp is None and c.cpk is None

    @pytest.mark.parametrize("lower, upper, sigma", [
        (-1.0, 1.0, 0.2), (None, 1.0, 0.2), (-1.0, None, 0.2),
        (None, None, 0.2), (-1.0, 1.0, 0.0),
    ])
    def test_definedness(self, lower, upper, sigma):
        c = compute_capability(0.0, sigma, SpecLimits(lower, upper))
        assert (c.cp is not None) == (lower is not None and upper is not None and sigma > 0)
        assert (c.cpk is not None) == ((lower is not None or upper is not None) and sigma > 0)


class TestYield:
    def test_normal_three_sigma(self):
        assert yield_from_normal(0.0, 1.0, SpecLimits(-3.0, 3.0)) == pytest.approx(99.73, abs=0.01)

    def test_normal_one_sided(self):
        assert yield_from_normal(0.0, 1.0, SpecLimits(upper=0.0)) == pytest.approx(50.0)

    def test_normal_degenerate(self):
        assert yield_from_normal(0.0, 0.0, SpecLimits(-1.0, 1.0)) is None

    def test_samples(self):
        samples = np.array([1.0, 2.0, 3.0, 4.0])
        assert yield_from_samples(samples, SpecLimits(2.0, 3.0)) == pytest.approx(50.0)
        assert yield_from_samples(samples, SpecLimits(lower=1.5)) == pytest.approx(75.0)
        assert yield_from_samples(samples, SpecLimits()) is None


class TestRatings:
    @pytest.mark.parametrize("index, rating", [
        (2.0, QualityRating.EXCELLENT),
        (1.67, QualityRating.EXCELLENT),
        (1.4, QualityRating.GOOD),
        (1.0, QualityRating.ADEQUATE),
        (0.7, QualityRating.MARGINAL),
        (0.5, QualityRating.POOR),
        (None, QualityRating.POOR),
    ])
    def test_rate_index(self, index, rating):
        assert rate_index(index) == rating

    @pytest.mark.parametrize("yld, level", [
        (100.0, 6.0), (99.995, 5.0), (99.9, 4.0), (99.75, 3.0), (96.0, 2.0), (50.0, 1.0),
    ])
    def test_sigma_band(self, yld, level):
        assert sigma_band(yld) == level


class TestCapabilityStudy:
    def test_centered_normal(self):
        rng = np.random.default_rng(42)
        samples = rng.normal(loc=50.0, scale=1.0, size=10_000)
        pc = analyze_capability(samples, SpecLimits(47.0, 53.0, target=50.0))
        assert pc.indices.cp == pytest.approx(1.0, rel=0.1)
        assert pc.indices.cpk == pytest.approx(1.0, rel=0.1)
        assert pc.cpm == pytest.approx(pc.indices.cp, rel=0.05)
        assert pc.yield_percent > 99.0
        assert pc.ppm_total == pytest.approx((100.0 - pc.yield_percent) * 1e4)
        assert pc.defect_rate == pytest.approx(100.0 - pc.yield_percent)

    def test_shifted_process(self):
        rng = np.random.default_rng(42)
        samples = rng.normal(loc=51.0, scale=1.0, size=10_000)
        pc = analyze_capability(samples, SpecLimits(47.0, 53.0))
        assert pc.indices.cp > pc.indices.cpk
        assert pc.indices.cpk == pytest.approx(0.67, rel=0.15)
        assert pc.ppm_above > pc.ppm_below
        assert pc.cpm is None
        assert any("not well-centered" in r for r in pc.recommendations)

    def test_tight_process(self):
        rng = np.random.default_rng(42)
        samples = rng.normal(loc=50.0, scale=0.3, size=10_000)
        pc = analyze_capability(samples, SpecLimits(47.0, 53.0))
        assert pc.overall_rating == QualityRating.EXCELLENT
        assert pc.sigma_level == 6.0
        assert pc.ppm_total == 0.0

    def test_one_sided_rates_on_cpk(self):
        rng = np.random.default_rng(7)
        samples = rng.normal(loc=0.0, scale=1.0, size=5_000)
        pc = analyze_capability(samples, SpecLimits(upper=6.0))
        assert pc.indices.cp is None
        assert pc.overall_rating == pc.cpk_rating

    def test_too_few_samples(self):
        with pytest.raises(ValidationError):
            analyze_capability([1.0], SpecLimits(0.0, 2.0))

    def test_needs_a_limit(self):
        with pytest.raises(ValidationError):
            analyze_capability([1.0, 2.0], SpecLimits())

    def test_report_and_dict(self):
        rng = np.random.default_rng(1)
        pc = analyze_capability(rng.normal(size=500), SpecLimits(-3.0, 3.0))
        d = pc.to_dict()
        assert d["overall_rating"] == pc.overall_rating.value
        assert d["stats"]["n"] == 500
        text = pc.summary()
        assert "Process Capability" in text
        assert "Cpk:" in text
