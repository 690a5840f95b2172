"""Clearance, transition and interference fit checks between two features."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from stackup_analysis.errors import ValidationError
from stackup_analysis.models import Feature, FeatureCategory, FeatureType, Mate, MateType


@dataclass(frozen=True)
class FitValidation:
    """Clearance figures for a mate; negative clearance is interference."""
    mate_type: MateType
    nominal_fit: float
    min_fit: float
    max_fit: float
    error_message: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error_message is None

    def summary(self) -> str:
        status = "OK" if self.is_valid else f"INVALID: {self.error_message}"
        return (
            f"{self.mate_type.value} fit  nominal={self.nominal_fit:+.6f}  "
            f"min={self.min_fit:+.6f}  max={self.max_fit:+.6f}  [{status}]"
        )


def _hole_and_shaft(a: Feature, b: Feature) -> tuple[Feature, Feature]:
    if a.category == FeatureCategory.EXTERNAL and b.category == FeatureCategory.INTERNAL:
        return b, a
    # same-category pairs treat the first feature as the hole
    return a, b


def validate_fit(mate: Mate, features: Mapping[str, Feature]) -> FitValidation:
    """Compute nominal, MMC (tightest) and LMC (loosest) clearance of a mate."""
    try:
        primary = features[mate.primary_id]
        secondary = features[mate.secondary_id]
    except KeyError as exc:
        raise ValidationError(f"mate {mate.name!r} references unknown feature {exc}") from None

    if primary.feature_type == FeatureType.DIAMETER and secondary.feature_type == FeatureType.DIAMETER:
        hole, shaft = _hole_and_shaft(primary, secondary)
        nominal = hole.nominal - shaft.nominal
        tightest = hole.mmc - shaft.mmc
        loosest = hole.lmc - shaft.lmc
    else:
        nominal = tightest = loosest = mate.offset

    error = None
    if mate.mate_type == MateType.CLEARANCE and tightest <= 0.0:
        error = "Clearance fit must have positive minimum clearance"
    elif mate.mate_type == MateType.INTERFERENCE and loosest >= 0.0:
        error = "Interference fit must have negative maximum clearance"
    elif mate.mate_type == MateType.TRANSITION and (tightest >= 0.0 or loosest <= 0.0):
        error = "Transition fit must have both positive and negative clearances"

    return FitValidation(
        mate_type=mate.mate_type,
        nominal_fit=nominal,
        min_fit=tightest,
        max_fit=loosest,
        error_message=error,
    )
