"""Engine defaults and Monte Carlo run configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from stackup_analysis.errors import ValidationError

# Simulation parameters
DEFAULT_SAMPLES = 10_000
DEFAULT_HISTOGRAM_BINS = 30
DEFAULT_CONFIDENCE_LEVEL = 0.95
CANCEL_CHECK_INTERVAL = 1_000  # samples drawn between cancellation checks

# Statistical conventions
SIGMA_ENVELOPE = 3.0  # predicted tolerance = ±3σ for RSS and Monte Carlo
PERCENTILE_LEVELS = (0.1, 1.0, 5.0, 10.0, 25.0, 50.0, 75.0, 90.0, 95.0, 99.0, 99.9)
DEGENERATE_RANGE_EPS = 1e-12

# Sensitivity banding (percent of total variance)
HIGH_IMPACT_PERCENT = 50.0
MEDIUM_IMPACT_PERCENT = 25.0
IMPROVEMENT_MIN_PERCENT = 10.0

# Capability rating thresholds
RATING_EXCELLENT = 1.67
RATING_GOOD = 1.33
RATING_ADEQUATE = 1.0
RATING_MARGINAL = 0.67


@dataclass
class MonteCarloConfig:
    """Settings for a single Monte Carlo run.

    Attributes:
        n_samples: Number of assembly realizations to draw.
        seed: Generator seed. ``None`` draws fresh OS entropy.
        histogram_bins: Number of equal-width histogram bins.
        confidence_level: Two-sided coverage of the reported interval.
        include_sensitivity: Attach the variance decomposition to the result.
        cancel: Zero-argument callable polled between sample blocks; the
            run aborts with ``AnalysisCancelled`` once it returns True.
    """
    n_samples: int = DEFAULT_SAMPLES
    seed: Optional[int] = None
    histogram_bins: int = DEFAULT_HISTOGRAM_BINS
    confidence_level: float = DEFAULT_CONFIDENCE_LEVEL
    include_sensitivity: bool = True
    cancel: Optional[Callable[[], bool]] = None

    def to_dict(self) -> dict:
        return {
            "n_samples": self.n_samples,
            "seed": self.seed,
            "histogram_bins": self.histogram_bins,
            "confidence_level": self.confidence_level,
            "include_sensitivity": self.include_sensitivity,
        }

    @classmethod
    def from_dict(cls, d: dict) -> MonteCarloConfig:
        if not isinstance(d, dict):
            raise ValidationError(f"monte_carlo settings must be an object, got {type(d).__name__}")
        seed = d.get("seed")
        try:
            return cls(
                n_samples=int(d.get("n_samples", DEFAULT_SAMPLES)),
                seed=None if seed is None else int(seed),
                histogram_bins=int(d.get("histogram_bins", DEFAULT_HISTOGRAM_BINS)),
                confidence_level=float(d.get("confidence_level", DEFAULT_CONFIDENCE_LEVEL)),
                include_sensitivity=bool(d.get("include_sensitivity", True)),
            )
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"invalid monte_carlo settings: {exc}") from exc
