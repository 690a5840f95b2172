"""Variance-decomposition sensitivity analysis.

Under the same independence assumption as RSS, each contribution's share
of the assembly variance is w_i^2 * sigma_i^2. Contributions are ranked by
that share and banded into high / medium / low impact.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from stackup_analysis.assembler import ResolvedContribution, resolve
from stackup_analysis.config import (
    HIGH_IMPACT_PERCENT,
    IMPROVEMENT_MIN_PERCENT,
    MEDIUM_IMPACT_PERCENT,
)
from stackup_analysis.distributions import derive_parameters, theoretical_variance
from stackup_analysis.errors import ValidationError
from stackup_analysis.models import Feature, Stackup

logger = logging.getLogger(__name__)


class ImpactLevel(Enum):
    HIGH = "high"       # > 50 % of variance
    MEDIUM = "medium"   # 25 - 50 %
    LOW = "low"         # < 25 %


def classify_impact(percentage: float) -> ImpactLevel:
    if percentage > HIGH_IMPACT_PERCENT:
        return ImpactLevel.HIGH
    if percentage >= MEDIUM_IMPACT_PERCENT:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


@dataclass(frozen=True)
class SensitivityEntry:
    """One contribution's share of the assembly variance.

    Attributes:
        rank: 1-based position by descending percentage.
        component_ref: Owning component of the feature.
        feature_ref: Feature identifier.
        feature_name: Feature name, for reports.
        weight: Effective contribution weight (direction x half-count).
        variance: w^2 * sigma^2 for this contribution.
        std_dev_contribution: sqrt(variance).
        percentage: Share of the total variance, in percent.
    """
    rank: int
    component_ref: str
    feature_ref: str
    feature_name: str
    weight: float
    variance: float
    std_dev_contribution: float
    percentage: float

    @property
    def impact(self) -> ImpactLevel:
        return classify_impact(self.percentage)

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "component_ref": self.component_ref,
            "feature_ref": self.feature_ref,
            "feature_name": self.feature_name,
            "weight": self.weight,
            "variance": self.variance,
            "std_dev_contribution": self.std_dev_contribution,
            "percentage": self.percentage,
            "impact": self.impact.value,
        }


@dataclass(frozen=True)
class Sensitivity:
    """Ranked variance decomposition of a stackup."""
    total_variance: float
    entries: tuple[SensitivityEntry, ...] = ()

    @property
    def total_std_dev(self) -> float:
        return math.sqrt(self.total_variance)

    @property
    def banding(self) -> dict[ImpactLevel, list[SensitivityEntry]]:
        bands = {level: [] for level in ImpactLevel}
        for e in self.entries:
            bands[e.impact].append(e)
        return bands

    def critical_features(self, threshold: float = HIGH_IMPACT_PERCENT) -> list[SensitivityEntry]:
        """Entries contributing at least ``threshold`` percent."""
        return [e for e in self.entries if e.percentage >= threshold]

    def cumulative_percentage(self, up_to_rank: int) -> float:
        """Combined share of the ``up_to_rank`` largest contributors."""
        return sum(e.percentage for e in self.entries[:up_to_rank])

    def suggest_improvements(self, target_reduction: float) -> list[ToleranceImprovement]:
        """Tolerance-tightening factors for each contributor above 10 %.

        Args:
            target_reduction: Desired variance reduction per contributor, in percent.
        """
        if not 0.0 <= target_reduction < 100.0:
            raise ValidationError("target_reduction must be in [0, 100)")
        out = []
        for e in self.entries:
            if e.percentage < IMPROVEMENT_MIN_PERCENT:
                continue
            reduction = target_reduction / 100.0 * e.variance
            out.append(ToleranceImprovement(
                feature_ref=e.feature_ref,
                feature_name=e.feature_name,
                current_percentage=e.percentage,
                tolerance_factor=math.sqrt(1.0 - target_reduction / 100.0),
                variance_reduction=reduction,
            ))
        return out

    def to_dict(self) -> dict:
        return {
            "total_variance": self.total_variance,
            "total_std_dev": self.total_std_dev,
            "entries": [e.to_dict() for e in self.entries],
        }


@dataclass(frozen=True)
class ToleranceImprovement:
    feature_ref: str
    feature_name: str
    current_percentage: float
    tolerance_factor: float   # multiply the current tolerance by this
    variance_reduction: float


def decompose(resolved: list[ResolvedContribution]) -> Sensitivity:
    """Variance decomposition over already-resolved contributions."""
    raw = []
    for rc in resolved:
        var_i = rc.weight ** 2 * theoretical_variance(derive_parameters(rc.feature))
        raw.append((rc, var_i))

    total = sum(v for _, v in raw)
    pcts = [(rc, v, 100.0 * v / total if total > 0.0 else 0.0) for rc, v in raw]
    # stable sort keeps chain order among ties
    pcts.sort(key=lambda t: t[2], reverse=True)

    entries = [
        SensitivityEntry(
            rank=i + 1,
            component_ref=rc.feature.component_id,
            feature_ref=rc.feature.id,
            feature_name=rc.feature.name,
            weight=rc.weight,
            variance=v,
            std_dev_contribution=math.sqrt(v),
            percentage=p,
        )
        for i, (rc, v, p) in enumerate(pcts)
    ]
    return Sensitivity(total_variance=total, entries=tuple(entries))


def run_sensitivity(stackup: Stackup, features: Mapping[str, Feature]) -> Sensitivity:
    """Rank the stackup's contributions by share of output variance."""
    resolved = resolve(stackup, features)
    logger.debug("Sensitivity on %r (%d contributions)", stackup.name, len(resolved))
    return decompose(resolved)


def sensitivity_chart(sensitivity: Sensitivity, width: int = 40) -> str:
    """ASCII bar chart of each contribution's percentage."""
    lines = ["Feature Contribution Chart", "=" * (width + 32)]
    top = max((e.percentage for e in sensitivity.entries), default=0.0)
    for e in sensitivity.entries:
        bar_len = int(e.percentage / top * width) if top > 0.0 else 0
        lines.append(
            f"[{e.impact.value[0].upper()}] {e.feature_name[:20]:20s} "
            f"|{'#' * bar_len:{width}s}| {e.percentage:6.2f}%"
        )
    return "\n".join(lines)


def sensitivity_report(sensitivity: Sensitivity, title: str = "") -> str:
    """Plain-text ranked sensitivity report."""
    lines = [
        f"=== Sensitivity Analysis{': ' + title if title else ''} ===",
        f"  Total variance:   {sensitivity.total_variance:.6e}",
        f"  Total std dev:    {sensitivity.total_std_dev:.6f}",
        "  Contributions (ranked by impact):",
    ]
    for e in sensitivity.entries:
        component = f" ({e.component_ref})" if e.component_ref else ""
        lines.append(
            f"    {e.rank:2d}. {e.feature_name:28s}{component}  "
            f"w={e.weight:+.2f}  sigma={e.std_dev_contribution:.6f}  "
            f"{e.percentage:6.2f}%  [{e.impact.value}]"
        )
    return "\n".join(lines)
