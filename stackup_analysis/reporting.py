"""Report generation for stackup analysis results.

Produces plain-text reports, JSON result exports and CSV dumps of Monte
Carlo samples.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional

import numpy as np

from stackup_analysis.analysis import AnalysisMethod, AnalysisResult
from stackup_analysis.capability import ProcessCapability
from stackup_analysis.sensitivity import Sensitivity, sensitivity_chart, sensitivity_report

logger = logging.getLogger(__name__)

RULE = "=" * 70


@dataclass
class ReportConfig:
    """Configuration for report generation.

    Attributes:
        title: Report title.
        project: Project name.
        author: Author name.
        revision: Document revision.
        date: Report date (defaults to now).
        include_sensitivity: Include the sensitivity section.
        include_chart: Include the ASCII contribution chart.
    """
    title: str = "Tolerance Stackup Report"
    project: str = ""
    author: str = ""
    revision: str = "A"
    date: str = ""
    include_sensitivity: bool = True
    include_chart: bool = True


def generate_text_report(
    config: ReportConfig,
    results: Mapping[AnalysisMethod, AnalysisResult],
    sensitivity: Optional[Sensitivity] = None,
    capability: Optional[ProcessCapability] = None,
) -> str:
    """Generate a plain-text stackup analysis report.

    Args:
        config: Report configuration.
        results: Method -> result, as returned by ``analyze_stackup``.
        sensitivity: Decomposition to report. When omitted, the first
            result carrying one is used.
        capability: Optional sample-based capability study.

    Returns:
        Report text.
    """
    lines = [
        RULE,
        config.title.center(70),
        RULE,
        f"Project:  {config.project}",
        f"Author:   {config.author}",
        f"Revision: {config.revision}",
        f"Date:     {config.date or datetime.now().strftime('%Y-%m-%d %H:%M')}",
        RULE,
        "",
    ]

    for result in results.values():
        lines.append(result.summary())
        lines.append("")

    if sensitivity is None:
        sensitivity = next(
            (r.sensitivity for r in results.values() if r.sensitivity is not None), None,
        )
    if config.include_sensitivity and sensitivity is not None:
        lines.append(sensitivity_report(sensitivity))
        lines.append("")
        if config.include_chart:
            lines.append(sensitivity_chart(sensitivity))
            lines.append("")

    if capability is not None:
        lines.append(capability.summary())
        lines.append("")

    lines.append(RULE)
    lines.append("END OF REPORT")
    return "\n".join(lines)


def result_to_json(result: AnalysisResult, include_samples: bool = False) -> str:
    """Serialize one analysis result to a JSON document."""
    return json.dumps(result.to_dict(include_samples=include_samples), indent=2)


def results_to_json(
    results: Mapping[AnalysisMethod, AnalysisResult],
    include_samples: bool = False,
) -> str:
    """Serialize several results, keyed by method name."""
    return json.dumps(
        {m.value: r.to_dict(include_samples=include_samples) for m, r in results.items()},
        indent=2,
    )


def save_report(text: str, path: str) -> None:
    """Save report text to a file."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    logger.info("Report written to %s", path)


def save_samples_csv(path: str, samples) -> None:
    """Write Monte Carlo samples as ``sample_number,dimension_value`` rows.

    Sample numbers start at 1; values carry 12 decimals.
    """
    samples = np.asarray(samples, dtype=float).ravel()
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["sample_number", "dimension_value"])
        for i, value in enumerate(samples, start=1):
            writer.writerow([i, f"{value:.12f}"])
    logger.info("Wrote %d samples to %s", len(samples), path)
