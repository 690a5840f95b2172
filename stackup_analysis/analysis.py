"""Tolerance stackup analysis engine supporting WC, RSS, and Monte Carlo."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

import numpy as np
from scipy.stats import norm

from stackup_analysis.assembler import (
    ResolvedContribution,
    assemble,
    nominal_output,
    resolve,
)
from stackup_analysis.capability import (
    CapabilityIndices,
    compute_capability,
    yield_from_normal,
    yield_from_samples,
)
from stackup_analysis.config import (
    CANCEL_CHECK_INTERVAL,
    DEFAULT_CONFIDENCE_LEVEL,
    PERCENTILE_LEVELS,
    SIGMA_ENVELOPE,
    MonteCarloConfig,
)
from stackup_analysis.distributions import DistributionEngine, derive_parameters, draw
from stackup_analysis.errors import AnalysisCancelled, ValidationError
from stackup_analysis.models import Feature, SpecLimits, Stackup
from stackup_analysis.sensitivity import Sensitivity, decompose
from stackup_analysis.statistics import (
    HistogramBin,
    Percentiles,
    Quartiles,
    build_histogram,
    compute_percentiles,
    compute_statistics,
    empirical_interval,
    quartiles_from,
)

logger = logging.getLogger(__name__)


class AnalysisMethod(Enum):
    WORST_CASE = "worst_case"
    RSS = "rss"
    MONTE_CARLO = "monte_carlo"

    @property
    def label(self) -> str:
        return _METHOD_LABELS[self]


_METHOD_LABELS = {
    AnalysisMethod.WORST_CASE: "Worst-Case",
    AnalysisMethod.RSS: "RSS",
    AnalysisMethod.MONTE_CARLO: "Monte Carlo",
}


@dataclass(frozen=True)
class AnalysisResult:
    """Results from a tolerance stackup analysis.

    Attributes:
        method: Analysis method used.
        nominal_output: Assembly dimension with every feature at nominal.
        mean: Mean of the assembly dimension.
        std_dev: Standard deviation (0 for worst case).
        variance: std_dev squared.
        min: Lower bound: arithmetic for WC, mean - 3 sigma for RSS,
            smallest sample for Monte Carlo.
        max: Upper bound, defined like ``min``.
        plus_tolerance: Predicted upper tolerance relative to the mean.
        minus_tolerance: Predicted lower tolerance (positive value).
        percentiles: The eleven fixed fractiles.
        histogram: Equal-width bins of the samples (Monte Carlo only).
        samples: Raw assembly samples (Monte Carlo only).
        cp, cpk, pp, ppk: Capability indices, None where undefined.
        yield_percent: Share of the population inside the spec limits.
        confidence_level: Coverage of ``confidence_interval``.
        confidence_interval: Central interval at ``confidence_level``.
        sensitivity: Variance decomposition, when requested.
        spec_limits: Limits the capability figures refer to.
        n_samples: Number of Monte Carlo samples drawn.
        seed: Generator seed used by a Monte Carlo run.
    """
    method: AnalysisMethod
    nominal_output: float
    mean: float
    std_dev: float
    variance: float
    min: float
    max: float
    plus_tolerance: float
    minus_tolerance: float
    percentiles: Percentiles
    histogram: tuple[HistogramBin, ...] = ()
    samples: Optional[np.ndarray] = field(default=None, compare=False, repr=False)
    cp: Optional[float] = None
    cpk: Optional[float] = None
    pp: Optional[float] = None
    ppk: Optional[float] = None
    yield_percent: Optional[float] = None
    confidence_level: Optional[float] = None
    confidence_interval: Optional[tuple[float, float]] = None
    sensitivity: Optional[Sensitivity] = None
    spec_limits: Optional[SpecLimits] = None
    n_samples: int = 0
    seed: Optional[int] = None

    @property
    def tolerance_range(self) -> float:
        """Total predicted tolerance band (plus + minus)."""
        return self.plus_tolerance + self.minus_tolerance

    @property
    def sigma_level(self) -> Optional[float]:
        return None if self.cpk is None else 3.0 * self.cpk

    @property
    def quartiles(self) -> Quartiles:
        return quartiles_from(self.percentiles, self.min, self.max)

    def to_dict(self, include_samples: bool = False) -> dict:
        d = {
            "method": self.method.value,
            "nominal_output": self.nominal_output,
            "mean": self.mean,
            "std_dev": self.std_dev,
            "variance": self.variance,
            "min": self.min,
            "max": self.max,
            "plus_tolerance": self.plus_tolerance,
            "minus_tolerance": self.minus_tolerance,
            "percentiles": self.percentiles.to_dict(),
            "quartiles": self.quartiles.to_dict(),
            "histogram": [b.to_dict() for b in self.histogram],
            "cp": self.cp,
            "cpk": self.cpk,
            "pp": self.pp,
            "ppk": self.ppk,
            "sigma_level": self.sigma_level,
            "yield_percent": self.yield_percent,
            "confidence_level": self.confidence_level,
            "confidence_interval": (
                list(self.confidence_interval) if self.confidence_interval else None
            ),
            "sensitivity": self.sensitivity.to_dict() if self.sensitivity else None,
            "spec_limits": self.spec_limits.to_dict() if self.spec_limits else None,
            "n_samples": self.n_samples,
            "seed": self.seed,
        }
        if include_samples and self.samples is not None:
            d["samples"] = self.samples.tolist()
        return d

    def summary(self) -> str:
        lines = [
            f"=== {self.method.label} Analysis ===",
            f"  Nominal output:   {self.nominal_output:+.6f}",
            f"  Mean:             {self.mean:+.6f}",
            f"  Range:            [{self.min:+.6f}, {self.max:+.6f}]",
            f"  Upper tolerance:  +{self.plus_tolerance:.6f}",
            f"  Lower tolerance:  -{self.minus_tolerance:.6f}",
        ]
        if self.method != AnalysisMethod.WORST_CASE:
            lines.append(f"  Std dev:          {self.std_dev:.6f}")
        if self.n_samples:
            lines.append(f"  Samples:          {self.n_samples} (seed {self.seed})")
        if self.confidence_interval is not None:
            lo, hi = self.confidence_interval
            lines.append(
                f"  {self.confidence_level * 100:.1f}% interval:   [{lo:+.6f}, {hi:+.6f}]"
            )
        for name in ("cp", "cpk", "pp", "ppk"):
            value = getattr(self, name)
            if value is not None:
                lines.append(f"  {name.capitalize() + ':':18s}{value:.4f}")
        if self.yield_percent is not None:
            lines.append(f"  Est. yield:       {self.yield_percent:.4f}%")
        if self.sensitivity is not None and self.sensitivity.entries:
            lines.append("  Sensitivity (share of variance):")
            for e in self.sensitivity.entries:
                lines.append(f"    {e.feature_name:30s}  {e.percentage:6.2f}%")
        return "\n".join(lines)


def _capability_fields(indices: CapabilityIndices) -> dict:
    return {"cp": indices.cp, "cpk": indices.cpk, "pp": indices.pp, "ppk": indices.ppk}


def _check_confidence(confidence_level: float) -> None:
    if not 0.0 < confidence_level < 1.0:
        raise ValidationError(
            f"confidence level must be in (0, 1), got {confidence_level}"
        )


# ---------------------------------------------------------------------------
# Worst-Case analysis
# ---------------------------------------------------------------------------

def run_worst_case(stackup: Stackup, features: Mapping[str, Feature]) -> AnalysisResult:
    """Perform worst-case (arithmetic limit) stackup analysis.

    Every feature is assumed to sit at whichever tolerance limit pushes the
    assembly furthest, simultaneously. A negative weight swaps which of a
    feature's tolerances lands on the plus side.
    """
    resolved = resolve(stackup, features)
    logger.debug("Worst-case on %r (%d contributions)", stackup.name, len(resolved))

    nominal = nominal_output(resolved)
    total_plus = 0.0
    total_minus = 0.0
    for rc in resolved:
        w = rc.weight
        if w >= 0:
            total_plus += w * rc.feature.plus_tol
            total_minus += w * rc.feature.minus_tol
        else:
            total_plus += -w * rc.feature.minus_tol
            total_minus += -w * rc.feature.plus_tol

    result = AnalysisResult(
        method=AnalysisMethod.WORST_CASE,
        nominal_output=nominal,
        mean=nominal,
        std_dev=0.0,
        variance=0.0,
        min=nominal - total_minus,
        max=nominal + total_plus,
        plus_tolerance=total_plus,
        minus_tolerance=total_minus,
        percentiles=Percentiles.constant(nominal),
        confidence_interval=(nominal - total_minus, nominal + total_plus),
        confidence_level=1.0,
        spec_limits=stackup.spec_limits,
    )
    logger.info("Worst-case %r: [%g, %g]", stackup.name, result.min, result.max)
    return result


# ---------------------------------------------------------------------------
# RSS (Root Sum of Squares) analysis
# ---------------------------------------------------------------------------

def run_rss(
    stackup: Stackup,
    features: Mapping[str, Feature],
    include_sensitivity: bool = True,
    confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
) -> AnalysisResult:
    """Perform RSS statistical stackup analysis.

    Contributions are treated as independent, so the assembly variance is
    the weighted sum of each feature's theoretical variance. Bounds and the
    predicted tolerance are the ±3 sigma envelope around the nominal, and
    percentiles follow the Normal quantile function.
    """
    _check_confidence(confidence_level)
    resolved = resolve(stackup, features)
    logger.debug("RSS on %r (%d contributions)", stackup.name, len(resolved))

    sensitivity = decompose(resolved)
    variance = sensitivity.total_variance
    sigma = math.sqrt(variance)
    mean = nominal_output(resolved)
    envelope = SIGMA_ENVELOPE * sigma

    if sigma > 0.0:
        z = norm.ppf(np.asarray(PERCENTILE_LEVELS) / 100.0)
        percentiles = Percentiles.from_values(mean + z * sigma)
        half_width = float(norm.ppf(0.5 + confidence_level / 2.0)) * sigma
    else:
        percentiles = Percentiles.constant(mean)
        half_width = 0.0

    limits = stackup.spec_limits
    indices = compute_capability(mean, sigma, limits)
    yield_pct = yield_from_normal(mean, sigma, limits) if limits is not None else None

    result = AnalysisResult(
        method=AnalysisMethod.RSS,
        nominal_output=mean,
        mean=mean,
        std_dev=sigma,
        variance=variance,
        min=mean - envelope,
        max=mean + envelope,
        plus_tolerance=envelope,
        minus_tolerance=envelope,
        percentiles=percentiles,
        yield_percent=yield_pct,
        confidence_level=confidence_level,
        confidence_interval=(mean - half_width, mean + half_width),
        sensitivity=sensitivity if include_sensitivity else None,
        spec_limits=limits,
        **_capability_fields(indices),
    )
    logger.info("RSS %r: mean=%g sigma=%g", stackup.name, mean, sigma)
    return result


# ---------------------------------------------------------------------------
# Monte Carlo analysis
# ---------------------------------------------------------------------------

def simulate(
    resolved: list[ResolvedContribution],
    engine: DistributionEngine,
    n_samples: int,
    cancel=None,
) -> np.ndarray:
    """Draw ``n_samples`` assembly realizations with ``engine``.

    Samples are drawn in fixed-size blocks; ``cancel`` is polled before
    each block.

    Raises:
        AnalysisCancelled: If ``cancel()`` returns True before the run ends.
    """
    if n_samples < 1:
        raise ValidationError(f"n_samples must be >= 1, got {n_samples}")
    params = [derive_parameters(rc.feature) for rc in resolved]

    out = np.empty(n_samples, dtype=float)
    for start in range(0, n_samples, CANCEL_CHECK_INTERVAL):
        if cancel is not None and cancel():
            logger.warning(
                "Monte Carlo cancelled after %d of %d samples", start, n_samples,
            )
            raise AnalysisCancelled(start, n_samples)
        size = min(CANCEL_CHECK_INTERVAL, n_samples - start)
        values = [draw(engine.rng, p, size) for p in params]
        out[start:start + size] = assemble(resolved, values)
    return out


def run_monte_carlo(
    stackup: Stackup,
    features: Mapping[str, Feature],
    config: Optional[MonteCarloConfig] = None,
) -> AnalysisResult:
    """Perform Monte Carlo stackup analysis.

    Each feature is sampled from its distribution, the samples are combined
    through the stackup weights, and statistics, percentiles, a histogram,
    capability and (optionally) sensitivity are derived from the result.
    The predicted tolerance is the ±3 sigma envelope of the sample, matching
    the RSS convention.
    """
    if config is None:
        config = MonteCarloConfig()
    if config.n_samples < 1:
        raise ValidationError(f"n_samples must be >= 1, got {config.n_samples}")
    if config.histogram_bins < 1:
        raise ValidationError(f"histogram_bins must be >= 1, got {config.histogram_bins}")
    _check_confidence(config.confidence_level)

    resolved = resolve(stackup, features)
    engine = DistributionEngine(config.seed)
    logger.debug(
        "Monte Carlo on %r (%d contributions, %d samples, seed %d)",
        stackup.name, len(resolved), config.n_samples, engine.seed,
    )
    samples = simulate(resolved, engine, config.n_samples, cancel=config.cancel)
    samples.flags.writeable = False

    stats = compute_statistics(samples)
    envelope = SIGMA_ENVELOPE * stats.std_dev
    limits = stackup.spec_limits
    indices = compute_capability(stats.mean, stats.std_dev, limits)
    yield_pct = yield_from_samples(samples, limits) if limits is not None else None

    result = AnalysisResult(
        method=AnalysisMethod.MONTE_CARLO,
        nominal_output=nominal_output(resolved),
        mean=stats.mean,
        std_dev=stats.std_dev,
        variance=stats.variance,
        min=stats.min,
        max=stats.max,
        plus_tolerance=envelope,
        minus_tolerance=envelope,
        percentiles=compute_percentiles(samples),
        histogram=tuple(build_histogram(samples, config.histogram_bins)),
        samples=samples,
        yield_percent=yield_pct,
        confidence_level=config.confidence_level,
        confidence_interval=empirical_interval(samples, config.confidence_level),
        sensitivity=decompose(resolved) if config.include_sensitivity else None,
        spec_limits=limits,
        n_samples=config.n_samples,
        seed=engine.seed,
        **_capability_fields(indices),
    )
    logger.info(
        "Monte Carlo %r: mean=%g sigma=%g over %d samples",
        stackup.name, stats.mean, stats.std_dev, config.n_samples,
    )
    return result


# ---------------------------------------------------------------------------
# Convenience dispatcher
# ---------------------------------------------------------------------------

_METHOD_ALIASES = {
    "wc": AnalysisMethod.WORST_CASE,
    "worst-case": AnalysisMethod.WORST_CASE,
    "worst_case": AnalysisMethod.WORST_CASE,
    "rss": AnalysisMethod.RSS,
    "mc": AnalysisMethod.MONTE_CARLO,
    "monte-carlo": AnalysisMethod.MONTE_CARLO,
    "monte_carlo": AnalysisMethod.MONTE_CARLO,
}


def parse_method(name: str) -> AnalysisMethod:
    try:
        return _METHOD_ALIASES[name.lower().strip()]
    except KeyError:
        raise ValidationError(f"Unknown analysis method: {name!r}") from None


def analyze_stackup(
    stackup: Stackup,
    features: Mapping[str, Feature],
    methods: Optional[list[str]] = None,
    mc_config: Optional[MonteCarloConfig] = None,
) -> dict[AnalysisMethod, AnalysisResult]:
    """Run one or more analysis methods on a stackup.

    Args:
        stackup: The stackup to analyze.
        features: Feature lookup keyed by feature id.
        methods: Method names ("wc", "rss", "mc"). Defaults to all three.
        mc_config: Monte Carlo settings; also supplies the RSS confidence
            level and sensitivity switch.

    Returns:
        Dict mapping method to AnalysisResult, in the order requested.
    """
    if methods is None:
        methods = ["wc", "rss", "mc"]
    if mc_config is None:
        mc_config = MonteCarloConfig()

    results: dict[AnalysisMethod, AnalysisResult] = {}
    for m in methods:
        method = parse_method(m)
        if method == AnalysisMethod.WORST_CASE:
            results[method] = run_worst_case(stackup, features)
        elif method == AnalysisMethod.RSS:
            results[method] = run_rss(
                stackup, features,
                include_sensitivity=mc_config.include_sensitivity,
                confidence_level=mc_config.confidence_level,
            )
        else:
            results[method] = run_monte_carlo(stackup, features, mc_config)
    return results
