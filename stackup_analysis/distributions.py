"""Distribution engine: parameter derivation, sampling, PDF and variance.

Each feature's tolerance band is mapped onto one of four distributions.
Every draw flows through the single generator owned by a
``DistributionEngine`` instance, so a run is reproducible from its seed.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from stackup_analysis.errors import NumericError, ValidationError
from stackup_analysis.models import Distribution, Feature
from stackup_analysis.statistics import (
    BasicStatistics,
    Percentiles,
    compute_percentiles,
    compute_statistics,
)

logger = logging.getLogger(__name__)

_SQRT_2PI = math.sqrt(2.0 * math.pi)


@dataclass(frozen=True)
class DistributionParameters:
    """Parameters derived from a feature's nominal and tolerance band.

    Attributes:
        kind: Distribution family.
        mean: Distribution mean (the feature nominal).
        std_dev: Standard deviation implied by the tolerance band.
        min_value: Lower tolerance limit.
        max_value: Upper tolerance limit.
        mode: Peak of a triangular distribution, None otherwise.
    """
    kind: Distribution
    mean: float
    std_dev: float
    min_value: float
    max_value: float
    mode: Optional[float] = None

    @property
    def is_degenerate(self) -> bool:
        """True for a zero-width tolerance band (a delta at the mean)."""
        return self.max_value - self.min_value == 0.0

    @property
    def log_mean(self) -> float:
        return math.log(self.mean)

    @property
    def log_std(self) -> float:
        # Coefficient-of-variation approximation of the log-space sigma.
        return abs(self.std_dev / self.mean)


def derive_parameters(feature: Feature) -> DistributionParameters:
    """Map a feature onto its distribution parameters.

    ========== =========== ==========================================
    Kind       std_dev     Notes
    ========== =========== ==========================================
    Normal     T / 6       ±3σ spans the full band (99.73 %)
    Uniform    T / √12     flat over [lower, upper]
    Triangular T / √24     peak at ``feature.mode`` or the nominal
    LogNormal  T / 6       requires a strictly positive lower limit
    ========== =========== ==========================================

    where T is the total tolerance band.
    """
    total = feature.total_tolerance
    lower = feature.lower_limit
    upper = feature.upper_limit
    mode = None

    if feature.distribution == Distribution.NORMAL:
        std_dev = total / 6.0
    elif feature.distribution == Distribution.UNIFORM:
        std_dev = total / math.sqrt(12.0)
    elif feature.distribution == Distribution.TRIANGULAR:
        std_dev = total / math.sqrt(24.0)
        mode = feature.nominal if feature.mode is None else feature.mode
        if not lower <= mode <= upper:
            raise NumericError(
                f"triangular mode {mode} of feature {feature.name!r} lies outside "
                f"[{lower}, {upper}]"
            )
    elif feature.distribution == Distribution.LOGNORMAL:
        if lower <= 0.0:
            raise ValidationError(
                f"lognormal feature {feature.name!r} requires a positive lower limit, "
                f"got {lower}"
            )
        std_dev = total / 6.0
    else:
        raise ValidationError(f"Unknown distribution: {feature.distribution}")

    return DistributionParameters(
        kind=feature.distribution,
        mean=feature.nominal,
        std_dev=std_dev,
        min_value=lower,
        max_value=upper,
        mode=mode,
    )


def theoretical_variance(params: DistributionParameters) -> float:
    """Variance of the distribution described by ``params``."""
    if params.kind == Distribution.LOGNORMAL:
        s2 = params.log_std ** 2
        return math.expm1(s2) * math.exp(2.0 * params.log_mean + s2)
    return params.std_dev ** 2


def draw(rng: np.random.Generator, params: DistributionParameters, size: int) -> np.ndarray:
    """Draw ``size`` values from ``params`` using ``rng``.

    A zero-width band returns the mean without consuming the generator.
    """
    if params.is_degenerate:
        return np.full(size, params.mean, dtype=float)
    try:
        if params.kind == Distribution.NORMAL:
            return rng.normal(loc=params.mean, scale=params.std_dev, size=size)
        if params.kind == Distribution.UNIFORM:
            return rng.uniform(low=params.min_value, high=params.max_value, size=size)
        if params.kind == Distribution.TRIANGULAR:
            return rng.triangular(
                left=params.min_value, mode=params.mode,
                right=params.max_value, size=size,
            )
        if params.kind == Distribution.LOGNORMAL:
            return rng.lognormal(mean=params.log_mean, sigma=params.log_std, size=size)
    except ValueError as exc:
        raise NumericError(f"cannot sample {params.kind.value} distribution: {exc}") from exc
    raise ValidationError(f"Unknown distribution: {params.kind}")


def pdf_value(params: DistributionParameters, x: float) -> float:
    """Probability density of ``params`` at ``x``."""
    if params.kind == Distribution.NORMAL:
        if params.std_dev <= 0.0:
            raise NumericError("normal density requires a positive standard deviation")
        z = (x - params.mean) / params.std_dev
        return math.exp(-0.5 * z * z) / (params.std_dev * _SQRT_2PI)

    if params.kind == Distribution.UNIFORM:
        width = params.max_value - params.min_value
        if width <= 0.0:
            raise NumericError("uniform density requires a non-zero tolerance band")
        if params.min_value <= x <= params.max_value:
            return 1.0 / width
        return 0.0

    if params.kind == Distribution.TRIANGULAR:
        a, b, c = params.min_value, params.max_value, params.mode
        if b - a <= 0.0:
            raise NumericError("triangular density requires a non-zero tolerance band")
        if x < a or x > b:
            return 0.0
        if x < c:
            return 2.0 * (x - a) / ((b - a) * (c - a))
        if x == c:
            return 2.0 / (b - a)
        return 2.0 * (b - x) / ((b - a) * (b - c))

    if params.kind == Distribution.LOGNORMAL:
        if x <= 0.0:
            return 0.0
        s = params.log_std
        if s <= 0.0:
            raise NumericError("lognormal density requires a positive standard deviation")
        z = (math.log(x) - params.log_mean) / s
        return math.exp(-0.5 * z * z) / (x * s * _SQRT_2PI)

    raise ValidationError(f"Unknown distribution: {params.kind}")


class DistributionEngine:
    """Seeded sampler and analytic oracle for feature distributions.

    Args:
        seed: Generator seed. When None, fresh entropy is drawn once here
            and kept in ``self.seed`` so the run can be replayed.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        if seed is None:
            seed = int(np.random.SeedSequence().entropy)
            logger.debug("Drew entropy seed %d", seed)
        elif isinstance(seed, bool) or not isinstance(seed, (int, np.integer)) or seed < 0:
            raise ValidationError(f"seed must be a non-negative integer, got {seed!r}")
        self.seed = int(seed)
        self.rng = np.random.default_rng(seed)

    def parameters(self, feature: Feature) -> DistributionParameters:
        return derive_parameters(feature)

    def sample(self, feature: Feature) -> float:
        """Draw a single value for ``feature``."""
        return float(draw(self.rng, derive_parameters(feature), 1)[0])

    def generate_samples(self, feature: Feature, n: int) -> np.ndarray:
        """Draw ``n`` independent values for ``feature``."""
        if n < 0:
            raise ValidationError(f"sample count must be non-negative, got {n}")
        return draw(self.rng, derive_parameters(feature), n)

    def pdf(self, feature: Feature, x: float) -> float:
        return pdf_value(derive_parameters(feature), x)

    def variance(self, feature: Feature) -> float:
        return theoretical_variance(derive_parameters(feature))

    def statistics(self, samples) -> BasicStatistics:
        return compute_statistics(samples)

    def percentiles(self, samples) -> Percentiles:
        return compute_percentiles(samples)
