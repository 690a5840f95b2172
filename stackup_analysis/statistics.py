"""Descriptive statistics over simulated assembly samples.

Provides basic moments, the fixed eleven-fractile percentile record,
quartile summaries and equal-width histogram binning.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

import numpy as np

from stackup_analysis.config import DEGENERATE_RANGE_EPS, PERCENTILE_LEVELS
from stackup_analysis.errors import ValidationError


@dataclass(frozen=True)
class BasicStatistics:
    """Moments of a finite sample (sample variance uses divisor n-1)."""
    n: int = 0
    mean: float = 0.0
    std_dev: float = 0.0
    variance: float = 0.0
    min: float = 0.0
    max: float = 0.0

    @property
    def range(self) -> float:
        return self.max - self.min

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class Percentiles:
    """The eleven fixed fractiles reported for every analysis."""
    p0_1: float = 0.0
    p1: float = 0.0
    p5: float = 0.0
    p10: float = 0.0
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    p99_9: float = 0.0

    @classmethod
    def from_values(cls, values) -> Percentiles:
        """Build from values ordered like ``PERCENTILE_LEVELS``."""
        values = [float(v) for v in values]
        if len(values) != len(PERCENTILE_LEVELS):
            raise ValueError(
                f"expected {len(PERCENTILE_LEVELS)} percentile values, got {len(values)}"
            )
        return cls(*values)

    @classmethod
    def constant(cls, value: float) -> Percentiles:
        return cls.from_values([value] * len(PERCENTILE_LEVELS))

    def values(self) -> list[float]:
        return [getattr(self, f.name) for f in fields(self)]

    def items(self) -> list[tuple[float, float]]:
        """(level in percent, value) pairs in ascending level order."""
        return list(zip(PERCENTILE_LEVELS, self.values()))

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class Quartiles:
    """Box-plot style summary of a distribution."""
    minimum: float
    q1: float
    median: float
    q3: float
    maximum: float
    p5: float
    p95: float

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1

    def to_dict(self) -> dict:
        d = {f.name: getattr(self, f.name) for f in fields(self)}
        d["iqr"] = self.iqr
        return d


@dataclass(frozen=True)
class HistogramBin:
    lower: float
    upper: float
    count: int

    def to_dict(self) -> dict:
        return {"lower": self.lower, "upper": self.upper, "count": self.count}


def compute_statistics(samples) -> BasicStatistics:
    """Compute n, mean, sample std-dev, variance, min and max.

    An empty sample yields all-zero statistics; a constant one has zero spread.
    """
    samples = np.asarray(samples, dtype=float).ravel()
    n = len(samples)
    if n == 0:
        return BasicStatistics()
    lo = float(np.min(samples))
    hi = float(np.max(samples))
    if lo == hi:
        # constant sample: report the exact value, not a rounded mean
        return BasicStatistics(n=n, mean=lo, std_dev=0.0, variance=0.0, min=lo, max=hi)
    variance = float(np.var(samples, ddof=1))
    return BasicStatistics(
        n=n,
        mean=float(np.mean(samples)),
        std_dev=float(np.sqrt(variance)),
        variance=variance,
        min=lo,
        max=hi,
    )


def compute_percentiles(samples) -> Percentiles:
    """Nearest-rank percentiles at the fixed fractile levels.

    The sample is sorted ascending and the value at index
    ``round(p/100 * (n-1))`` (halves rounded up, clamped to the sample) is
    taken for each level. An empty sample yields zeros.
    """
    samples = np.sort(np.asarray(samples, dtype=float).ravel())
    n = len(samples)
    if n == 0:
        return Percentiles()
    levels = np.asarray(PERCENTILE_LEVELS, dtype=float)
    idx = np.floor(levels / 100.0 * (n - 1) + 0.5).astype(int)
    idx = np.clip(idx, 0, n - 1)
    return Percentiles.from_values(samples[idx])


def quartiles_from(percentiles: Percentiles, minimum: float, maximum: float) -> Quartiles:
    return Quartiles(
        minimum=minimum,
        q1=percentiles.p25,
        median=percentiles.p50,
        q3=percentiles.p75,
        maximum=maximum,
        p5=percentiles.p5,
        p95=percentiles.p95,
    )


def build_histogram(samples, bins: int) -> list[HistogramBin]:
    """Bin samples into ``bins`` equal-width bins spanning [min, max].

    A sample whose spread is below ``DEGENERATE_RANGE_EPS`` collapses into a
    single bin holding every value.
    """
    if bins < 1:
        raise ValidationError(f"histogram bins must be >= 1, got {bins}")
    samples = np.asarray(samples, dtype=float).ravel()
    if len(samples) == 0:
        return []
    lo = float(np.min(samples))
    hi = float(np.max(samples))
    if hi - lo < DEGENERATE_RANGE_EPS:
        return [HistogramBin(lo, hi, len(samples))]
    counts, edges = np.histogram(samples, bins=bins, range=(lo, hi))
    return [
        HistogramBin(float(edges[i]), float(edges[i + 1]), int(counts[i]))
        for i in range(len(counts))
    ]


def empirical_interval(samples, confidence: float) -> tuple[float, float]:
    """Central interval holding ``confidence`` of the sample.

    Uses the same nearest-rank rule as ``compute_percentiles`` at the
    ``(1-c)/2`` and ``(1+c)/2`` quantiles.
    """
    if not 0.0 < confidence < 1.0:
        raise ValidationError(f"confidence level must be in (0, 1), got {confidence}")
    samples = np.sort(np.asarray(samples, dtype=float).ravel())
    n = len(samples)
    if n == 0:
        return (0.0, 0.0)
    tail = (1.0 - confidence) / 2.0
    idx = np.floor(np.array([tail, 1.0 - tail]) * (n - 1) + 0.5).astype(int)
    idx = np.clip(idx, 0, n - 1)
    return (float(samples[idx[0]]), float(samples[idx[1]]))
