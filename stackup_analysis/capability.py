"""Process capability metrics against engineering specification limits.

Provides Cp, Cpk, Pp, Ppk from a (mean, sigma) pair, and a fuller
sample-based study adding Cpm, PPM, yield, sigma level and quality
ratings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np
from scipy.stats import norm

from stackup_analysis.config import (
    RATING_ADEQUATE,
    RATING_EXCELLENT,
    RATING_GOOD,
    RATING_MARGINAL,
)
from stackup_analysis.errors import ValidationError
from stackup_analysis.models import SpecLimits
from stackup_analysis.statistics import BasicStatistics, compute_statistics


@dataclass(frozen=True)
class CapabilityIndices:
    """Capability indices; a field is None where it is undefined."""
    cp: Optional[float] = None
    cpk: Optional[float] = None
    pp: Optional[float] = None
    ppk: Optional[float] = None

    @property
    def sigma_level(self) -> Optional[float]:
        return None if self.cpk is None else 3.0 * self.cpk

    def to_dict(self) -> dict:
        return {"cp": self.cp, "cpk": self.cpk, "pp": self.pp, "ppk": self.ppk}


def _spread_index(limits: SpecLimits, sigma: float) -> Optional[float]:
    if limits.lower is None or limits.upper is None:
        return None
    return (limits.upper - limits.lower) / (6.0 * sigma)


def _centering_index(limits: SpecLimits, mean: float, sigma: float) -> Optional[float]:
    sides = []
    if limits.upper is not None:
        sides.append((limits.upper - mean) / (3.0 * sigma))
    if limits.lower is not None:
        sides.append((mean - limits.lower) / (3.0 * sigma))
    return min(sides) if sides else None


def compute_capability(
    mean: float,
    sigma: float,
    limits: Optional[SpecLimits],
    long_term_sigma: Optional[float] = None,
) -> CapabilityIndices:
    """Compute Cp/Cpk (short-term sigma) and Pp/Ppk (long-term sigma).

    Cp and Pp need both limits; Cpk and Ppk use whichever sides are present.
    With no limits, or a zero sigma, every index is None. When only one
    sigma is known, ``long_term_sigma`` defaults to it.
    """
    if limits is None or limits.is_empty or sigma <= 0.0:
        return CapabilityIndices()
    lt_sigma = sigma if long_term_sigma is None else long_term_sigma
    has_lt = lt_sigma > 0.0
    return CapabilityIndices(
        cp=_spread_index(limits, sigma),
        cpk=_centering_index(limits, mean, sigma),
        pp=_spread_index(limits, lt_sigma) if has_lt else None,
        ppk=_centering_index(limits, mean, lt_sigma) if has_lt else None,
    )


def yield_from_normal(mean: float, sigma: float, limits: SpecLimits) -> Optional[float]:
    """Percentage of a Normal(mean, sigma) population inside the limits."""
    if limits.is_empty or sigma <= 0.0:
        return None
    upper = 1.0 if limits.upper is None else norm.cdf(limits.upper, loc=mean, scale=sigma)
    lower = 0.0 if limits.lower is None else norm.cdf(limits.lower, loc=mean, scale=sigma)
    return float((upper - lower) * 100.0)


def yield_from_samples(samples: np.ndarray, limits: SpecLimits) -> Optional[float]:
    """Percentage of samples inside the present limits (inclusive)."""
    samples = np.asarray(samples, dtype=float)
    if limits.is_empty or len(samples) == 0:
        return None
    inside = np.ones(len(samples), dtype=bool)
    if limits.upper is not None:
        inside &= samples <= limits.upper
    if limits.lower is not None:
        inside &= samples >= limits.lower
    return float(np.count_nonzero(inside) / len(samples) * 100.0)


# ---------------------------------------------------------------------------
# Sample-based capability study
# ---------------------------------------------------------------------------

class QualityRating(Enum):
    """Rating bands for a capability index."""
    EXCELLENT = "excellent"   # >= 1.67
    GOOD = "good"             # >= 1.33
    ADEQUATE = "adequate"     # >= 1.0
    MARGINAL = "marginal"     # >= 0.67
    POOR = "poor"

    @property
    def rank(self) -> int:
        return _RATING_ORDER.index(self)


_RATING_ORDER = [
    QualityRating.POOR, QualityRating.MARGINAL, QualityRating.ADEQUATE,
    QualityRating.GOOD, QualityRating.EXCELLENT,
]


def rate_index(index: Optional[float]) -> QualityRating:
    if index is None:
        return QualityRating.POOR
    if index >= RATING_EXCELLENT:
        return QualityRating.EXCELLENT
    if index >= RATING_GOOD:
        return QualityRating.GOOD
    if index >= RATING_ADEQUATE:
        return QualityRating.ADEQUATE
    if index >= RATING_MARGINAL:
        return QualityRating.MARGINAL
    return QualityRating.POOR


def sigma_band(yield_percent: float) -> float:
    """Discrete sigma level implied by an observed yield."""
    if yield_percent >= 99.99966:
        return 6.0
    if yield_percent >= 99.9937:
        return 5.0
    if yield_percent >= 99.87:
        return 4.0
    if yield_percent >= 99.73:
        return 3.0
    if yield_percent >= 95.45:
        return 2.0
    return 1.0


@dataclass
class ProcessCapability:
    """Capability study of a simulated or measured sample.

    Attributes:
        limits: Specification limits the study was run against.
        stats: Sample statistics.
        indices: Cp/Cpk/Pp/Ppk.
        cpm: Taguchi index (needs both limits and a target).
        yield_percent: Percentage of samples within the limits.
        ppm_above: Parts per million above the USL.
        ppm_below: Parts per million below the LSL.
        sigma_level: Discrete sigma band implied by the yield.
        cp_rating: Rating of Cp.
        cpk_rating: Rating of Cpk.
        overall_rating: The worse of the two ratings.
        recommendations: Plain-language next steps.
    """
    limits: SpecLimits
    stats: BasicStatistics
    indices: CapabilityIndices
    cpm: Optional[float] = None
    yield_percent: float = 100.0
    ppm_above: float = 0.0
    ppm_below: float = 0.0
    sigma_level: float = 0.0
    cp_rating: QualityRating = QualityRating.POOR
    cpk_rating: QualityRating = QualityRating.POOR
    overall_rating: QualityRating = QualityRating.POOR
    recommendations: list[str] = field(default_factory=list)

    @property
    def ppm_total(self) -> float:
        return self.ppm_above + self.ppm_below

    @property
    def defect_rate(self) -> float:
        """Percentage of samples outside the limits."""
        return 100.0 - self.yield_percent

    def to_dict(self) -> dict:
        return {
            "limits": self.limits.to_dict(),
            "stats": self.stats.to_dict(),
            "indices": self.indices.to_dict(),
            "cpm": self.cpm,
            "yield_percent": self.yield_percent,
            "ppm_above": self.ppm_above,
            "ppm_below": self.ppm_below,
            "ppm_total": self.ppm_total,
            "sigma_level": self.sigma_level,
            "cp_rating": self.cp_rating.value,
            "cpk_rating": self.cpk_rating.value,
            "overall_rating": self.overall_rating.value,
            "recommendations": list(self.recommendations),
        }

    def summary(self) -> str:
        def fmt(v: Optional[float]) -> str:
            return "n/a" if v is None else f"{v:.4f}"

        lsl = "none" if self.limits.lower is None else f"{self.limits.lower:.6f}"
        usl = "none" if self.limits.upper is None else f"{self.limits.upper:.6f}"
        lines = [
            "=== Process Capability ===",
            f"  Specification:  LSL={lsl}  USL={usl}",
            f"  Target:         {self.limits.target:.6f}" if self.limits.target is not None else "",
            f"  Sample mean:    {self.stats.mean:.6f}",
            f"  Sample std:     {self.stats.std_dev:.6f}",
            f"  Cp:             {fmt(self.indices.cp)}",
            f"  Cpk:            {fmt(self.indices.cpk)}",
            f"  Pp:             {fmt(self.indices.pp)}",
            f"  Ppk:            {fmt(self.indices.ppk)}",
            f"  Cpm:            {fmt(self.cpm)}",
            f"  Sigma level:    {self.sigma_level:.1f}",
            f"  Yield:          {self.yield_percent:.4f}%",
            f"  PPM total:      {self.ppm_total:.1f}",
            f"  Rating:         {self.overall_rating.value}",
            f"  N samples:      {self.stats.n}",
        ]
        for rec in self.recommendations:
            lines.append(f"  - {rec}")
        return "\n".join(line for line in lines if line)


def _recommendations(
    indices: CapabilityIndices,
    overall: QualityRating,
    sigma_level: float,
    ppm_total: float,
) -> list[str]:
    recs = {
        QualityRating.EXCELLENT: "Process is excellent. Consider cost optimization.",
        QualityRating.GOOD: "Process is good. Monitor for consistency.",
        QualityRating.ADEQUATE: "Process is adequate. Look for improvement opportunities.",
        QualityRating.MARGINAL: "Process needs improvement. Focus on variance reduction.",
        QualityRating.POOR: "Process requires immediate attention. Major improvements needed.",
    }
    out = [recs[overall]]
    if indices.cp is not None and indices.cpk is not None:
        if indices.cp > indices.cpk + 0.2:
            out.append("Process is not well-centered. Adjust process mean.")
        if indices.cp < RATING_GOOD:
            out.append("Process spread is too wide. Reduce process variation.")
    if sigma_level < 3.0:
        out.append("Sigma level is below 3. Implement process controls.")
    if ppm_total > 1000.0:
        out.append("Defect rate is high. Investigate root causes.")
    return out


def analyze_capability(samples, limits: SpecLimits) -> ProcessCapability:
    """Run a capability study of ``samples`` against ``limits``.

    Raises:
        ValidationError: With fewer than 2 samples or no limits at all.
    """
    samples = np.asarray(samples, dtype=float).ravel()
    n = len(samples)
    if n < 2:
        raise ValidationError("Need at least 2 samples for capability analysis")
    if limits.is_empty:
        raise ValidationError("capability analysis needs at least one specification limit")

    stats = compute_statistics(samples)
    indices = compute_capability(stats.mean, stats.std_dev, limits)

    cpm = None
    if limits.width is not None and limits.target is not None:
        tau = np.sqrt(stats.variance + (stats.mean - limits.target) ** 2)
        if tau > 0.0:
            cpm = float(limits.width / (6.0 * tau))

    n_above = int(np.sum(samples > limits.upper)) if limits.upper is not None else 0
    n_below = int(np.sum(samples < limits.lower)) if limits.lower is not None else 0
    ppm_above = n_above / n * 1_000_000
    ppm_below = n_below / n * 1_000_000
    yield_pct = yield_from_samples(samples, limits)
    level = sigma_band(yield_pct)

    cp_rating = rate_index(indices.cp)
    cpk_rating = rate_index(indices.cpk)
    overall = min(cp_rating, cpk_rating, key=lambda r: r.rank)
    if indices.cp is None:
        # one-sided limits: Cp is undefined, so rate on Cpk alone
        overall = cpk_rating

    return ProcessCapability(
        limits=limits,
        stats=stats,
        indices=indices,
        cpm=cpm,
        yield_percent=yield_pct,
        ppm_above=ppm_above,
        ppm_below=ppm_below,
        sigma_level=level,
        cp_rating=cp_rating,
        cpk_rating=cpk_rating,
        overall_rating=overall,
        recommendations=_recommendations(indices, overall, level, ppm_above + ppm_below),
    )
