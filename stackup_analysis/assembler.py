"""Stackup assembly: resolve contributions and combine per-feature values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import numpy as np

from stackup_analysis.errors import ValidationError
from stackup_analysis.models import Contribution, Feature, Stackup


@dataclass(frozen=True)
class ResolvedContribution:
    """A contribution paired with the feature it references."""
    contribution: Contribution
    feature: Feature

    @property
    def weight(self) -> float:
        return self.contribution.weight


def resolve(stackup: Stackup, features: Mapping[str, Feature]) -> list[ResolvedContribution]:
    """Pair each contribution with its feature, in chain order.

    Raises:
        ValidationError: If the stackup is empty or references an unknown feature.
    """
    if not stackup.contributions:
        raise ValidationError(f"stackup {stackup.name!r} has no contributions")
    resolved = []
    for c in stackup.contributions:
        feature = features.get(c.feature_id)
        if feature is None:
            raise ValidationError(
                f"feature {c.feature_id!r} referenced by stackup {stackup.name!r} not found"
            )
        resolved.append(ResolvedContribution(c, feature))
    return resolved


def assemble(resolved: list[ResolvedContribution], values):
    """Signed, weighted sum of per-feature values.

    ``values`` holds one entry per contribution; each entry may be a scalar
    or an array of realizations, in which case an array is returned.
    """
    if len(values) != len(resolved):
        raise ValueError("need exactly one value per contribution")
    total = 0.0
    for rc, x in zip(resolved, values):
        total = total + rc.weight * np.asarray(x, dtype=float)
    if np.ndim(total) == 0:
        return float(total)
    return total


def nominal_output(resolved: list[ResolvedContribution]) -> float:
    """Assembly dimension with every feature at its nominal."""
    return assemble(resolved, [rc.feature.nominal for rc in resolved])
