"""Tests for clearance, transition and interference fit validation."""

import pytest

from stackup_analysis.errors import ValidationError
from stackup_analysis.examples import create_bearing_fit_example
from stackup_analysis.fits import validate_fit
from stackup_analysis.models import (
    Feature,
    FeatureCategory,
    FeatureType,
    Mate,
    MateType,
    index_features,
)


def _hole(nominal, tol):
    return Feature("Hole", nominal, tol, tol, id="hole",
                   feature_type=FeatureType.DIAMETER, category=FeatureCategory.INTERNAL)


def _shaft(nominal, tol):
    return Feature("Shaft", nominal, tol, tol, id="shaft",
                   feature_type=FeatureType.DIAMETER, category=FeatureCategory.EXTERNAL)


class TestDiameterFits:
    def test_bearing_clearance(self):
        deck = create_bearing_fit_example()
        v = validate_fit(deck.mates[0], deck.features)
        assert v.is_valid
        assert v.nominal_fit == pytest.approx(0.036)
        assert v.min_fit == pytest.approx(0.020)
        assert v.max_fit == pytest.approx(0.052)

    def test_interference(self):
        features = index_features([_hole(10.0, 0.005), _shaft(10.02, 0.005)])
        v = validate_fit(Mate("press", "hole", "shaft", MateType.INTERFERENCE), features)
        assert v.is_valid
        assert v.min_fit == pytest.approx(-0.030)
        assert v.max_fit == pytest.approx(-0.010)

    def test_interference_is_not_clearance(self):
        features = index_features([_hole(10.0, 0.005), _shaft(10.02, 0.005)])
        v = validate_fit(Mate("press", "hole", "shaft", MateType.CLEARANCE), features)
        assert not v.is_valid
        assert "positive minimum clearance" in v.error_message

    def test_transition(self):
        features = index_features([_hole(10.0, 0.01), _shaft(10.0, 0.01)])
        v = validate_fit(Mate("loc", "hole", "shaft", MateType.TRANSITION), features)
        assert v.is_valid
        assert v.min_fit == pytest.approx(-0.02)
        assert v.max_fit == pytest.approx(0.02)

    def test_clearance_is_not_transition(self):
        features = index_features([_hole(10.05, 0.01), _shaft(10.0, 0.01)])
        v = validate_fit(Mate("loose", "hole", "shaft", MateType.TRANSITION), features)
        assert not v.is_valid

    def test_order_independent(self):
        features = index_features([_hole(10.05, 0.01), _shaft(10.0, 0.01)])
        a = validate_fit(Mate("a", "hole", "shaft"), features)
        b = validate_fit(Mate("b", "shaft", "hole"), features)
        assert a == b

    def test_summary(self):
        deck = create_bearing_fit_example()
        text = validate_fit(deck.mates[0], deck.features).summary()
        assert text.startswith("clearance fit")
        assert "[OK]" in text


class TestOffsetFits:
    def test_length_pair_uses_offset(self):
        features = index_features([
            Feature("Slot", 5.0, 0.1, 0.1, id="slot"),
            Feature("Key", 4.9, 0.1, 0.1, id="key"),
        ])
        v = validate_fit(Mate("key", "slot", "key", offset=0.1), features)
        assert v.is_valid
        assert v.nominal_fit == v.min_fit == v.max_fit == 0.1

    def test_zero_offset_clearance_invalid(self):
        features = index_features([
            Feature("Slot", 5.0, 0.1, 0.1, id="slot"),
            Feature("Key", 4.9, 0.1, 0.1, id="key"),
        ])
        assert not validate_fit(Mate("key", "slot", "key"), features).is_valid


def test_unknown_feature():
    features = index_features([_hole(10.0, 0.01)])
    with pytest.raises(ValidationError, match="unknown feature"):
        validate_fit(Mate("m", "hole", "missing"), features)
