"""Tolerance Stackup Analysis Engine.

Supports Worst-Case, RSS, and Monte Carlo analysis of one-dimensional
stackups built from toleranced features, with:
- Normal, Uniform, Triangular and LogNormal feature distributions
- Variance-decomposition sensitivity with impact banding
- Process capability metrics (Cp/Cpk/Pp/Ppk/Cpm/PPM) and yield
- Clearance, transition and interference fit checks
- Plain-text, JSON and CSV reporting
"""

from stackup_analysis.errors import (
    AnalysisCancelled, NumericError, StackupError, ValidationError,
)
from stackup_analysis.config import MonteCarloConfig
from stackup_analysis.models import (
    Contribution, Deck, Distribution, Feature, FeatureCategory, FeatureType,
    Mate, MateType, SpecLimits, Stackup, index_features,
)
from stackup_analysis.distributions import DistributionEngine, DistributionParameters
from stackup_analysis.statistics import (
    BasicStatistics, HistogramBin, Percentiles, Quartiles,
)
from stackup_analysis.analysis import (
    AnalysisMethod, AnalysisResult, analyze_stackup,
    run_monte_carlo, run_rss, run_worst_case,
)
from stackup_analysis.sensitivity import (
    ImpactLevel, Sensitivity, SensitivityEntry, run_sensitivity,
)
from stackup_analysis.capability import (
    CapabilityIndices, ProcessCapability, QualityRating,
    analyze_capability, compute_capability,
)
from stackup_analysis.fits import FitValidation, validate_fit
from stackup_analysis.reporting import (
    ReportConfig, generate_text_report, result_to_json, save_report,
    save_samples_csv,
)

__all__ = [
    # Errors
    "StackupError", "ValidationError", "NumericError", "AnalysisCancelled",
    # Core models
    "Feature", "FeatureType", "FeatureCategory", "Distribution",
    "Contribution", "SpecLimits", "Stackup", "Mate", "MateType", "Deck",
    "index_features", "MonteCarloConfig",
    # Distributions & statistics
    "DistributionEngine", "DistributionParameters",
    "BasicStatistics", "HistogramBin", "Percentiles", "Quartiles",
    # Analysis
    "AnalysisMethod", "AnalysisResult", "analyze_stackup",
    "run_worst_case", "run_rss", "run_monte_carlo",
    # Sensitivity
    "ImpactLevel", "Sensitivity", "SensitivityEntry", "run_sensitivity",
    # Capability
    "CapabilityIndices", "ProcessCapability", "QualityRating",
    "analyze_capability", "compute_capability",
    # Fits
    "FitValidation", "validate_fit",
    # Reporting
    "ReportConfig", "generate_text_report", "result_to_json",
    "save_report", "save_samples_csv",
]
__version__ = "0.1.0"
