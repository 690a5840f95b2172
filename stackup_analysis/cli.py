"""Command-line interface for tolerance stackup analysis."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from stackup_analysis.analysis import AnalysisMethod, analyze_stackup
from stackup_analysis.capability import analyze_capability
from stackup_analysis.config import MonteCarloConfig
from stackup_analysis.errors import StackupError
from stackup_analysis.fits import validate_fit
from stackup_analysis.models import Deck
from stackup_analysis.reporting import (
    ReportConfig,
    generate_text_report,
    results_to_json,
    save_report,
    save_samples_csv,
)
from stackup_analysis.sensitivity import run_sensitivity, sensitivity_chart, sensitivity_report

logger = logging.getLogger(__name__)


def _mc_config(deck: Deck, args: argparse.Namespace) -> MonteCarloConfig:
    """Deck settings, overridden by whatever was given on the command line."""
    config = MonteCarloConfig.from_dict(deck.monte_carlo)
    if args.samples is not None:
        config.n_samples = args.samples
    if args.seed is not None:
        config.seed = args.seed
    if args.bins is not None:
        config.histogram_bins = args.bins
    if args.confidence is not None:
        config.confidence_level = args.confidence
    return config


def cmd_analyze(args: argparse.Namespace) -> int:
    """Run analysis on a JSON deck."""
    deck = Deck.load(args.deck)
    methods = args.methods.split(",") if args.methods else None
    config = _mc_config(deck, args)

    results = analyze_stackup(deck.stackup, deck.features, methods=methods, mc_config=config)
    mc = results.get(AnalysisMethod.MONTE_CARLO)

    capability = None
    limits = deck.stackup.spec_limits
    if mc is not None and limits is not None and not limits.is_empty and mc.n_samples >= 2:
        capability = analyze_capability(mc.samples, limits)

    report = generate_text_report(
        ReportConfig(title=deck.stackup.name or "Tolerance Stackup Report", project=args.deck),
        results,
        capability=capability,
    )
    print(report)

    if args.report:
        save_report(report, args.report)
    if args.json:
        save_report(results_to_json(results), args.json)
        print(f"Results written to {args.json}")
    if args.csv:
        if mc is None:
            logger.warning("--csv ignored: Monte Carlo was not run")
        else:
            save_samples_csv(args.csv, mc.samples)
            print(f"Samples written to {args.csv}")
    return 0


def cmd_sensitivity(args: argparse.Namespace) -> int:
    """Print the ranked variance decomposition of a deck."""
    deck = Deck.load(args.deck)
    sens = run_sensitivity(deck.stackup, deck.features)
    print(sensitivity_report(sens, title=deck.stackup.name))
    print()
    print(sensitivity_chart(sens))

    if args.target_reduction is not None:
        print()
        print(f"Tolerance changes for a {args.target_reduction:.0f}% variance reduction:")
        for s in sens.suggest_improvements(args.target_reduction):
            print(
                f"  {s.feature_name:28s}  currently {s.current_percentage:6.2f}%  "
                f"scale tolerance by {s.tolerance_factor:.3f}"
            )
    return 0


def cmd_fit(args: argparse.Namespace) -> int:
    """Validate every mate in a deck; exit status 1 if any fit is invalid."""
    deck = Deck.load(args.deck)
    if not deck.mates:
        print("Deck defines no mates.")
        return 0
    ok = True
    for mate in deck.mates:
        validation = validate_fit(mate, deck.features)
        print(f"{mate.name}: {validation.summary()}")
        ok = ok and validation.is_valid
    return 0 if ok else 1


def cmd_create_example(args: argparse.Namespace) -> int:
    """Create an example deck file."""
    from stackup_analysis.examples import EXAMPLES

    deck = EXAMPLES[args.example]()
    path = args.output or f"{args.example}_example.json"
    deck.save(path)
    print(f"Created example deck: {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log verbosity (-v info, -vv debug)")

    parser = argparse.ArgumentParser(
        prog="stackup",
        description="Tolerance Stackup Analysis Tool",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- analyze ---
    p_analyze = subparsers.add_parser("analyze", parents=[common],
                                      help="Analyze a stackup deck from a JSON file")
    p_analyze.add_argument("deck", help="Path to deck JSON file")
    p_analyze.add_argument("-m", "--methods", default=None,
                           help="Comma-separated methods: wc,rss,mc (default: all)")
    p_analyze.add_argument("--samples", type=int, default=None,
                           help="Number of Monte Carlo samples (default: deck or 10000)")
    p_analyze.add_argument("--seed", type=int, default=None,
                           help="Random seed for Monte Carlo")
    p_analyze.add_argument("--bins", type=int, default=None,
                           help="Histogram bins (default: deck or 30)")
    p_analyze.add_argument("--confidence", type=float, default=None,
                           help="Confidence level for the reported interval (default: 0.95)")
    p_analyze.add_argument("--json", default=None, help="Write results as JSON to this path")
    p_analyze.add_argument("--csv", default=None, help="Write Monte Carlo samples as CSV")
    p_analyze.add_argument("--report", default=None, help="Save the text report to this path")
    p_analyze.set_defaults(func=cmd_analyze)

    # --- sensitivity ---
    p_sens = subparsers.add_parser("sensitivity", parents=[common],
                                   help="Rank contributions by share of variance")
    p_sens.add_argument("deck", help="Path to deck JSON file")
    p_sens.add_argument("--target-reduction", type=float, default=None,
                        help="Suggest tolerance changes for this variance reduction (percent)")
    p_sens.set_defaults(func=cmd_sensitivity)

    # --- fit ---
    p_fit = subparsers.add_parser("fit", parents=[common], help="Validate the deck's mates")
    p_fit.add_argument("deck", help="Path to deck JSON file")
    p_fit.set_defaults(func=cmd_fit)

    # --- example ---
    p_example = subparsers.add_parser("example", parents=[common],
                                      help="Create an example deck file")
    p_example.add_argument("example", choices=["shaft", "bearing", "simple"],
                           help="Which example to create")
    p_example.add_argument("-o", "--output", default=None,
                           help="Output file path")
    p_example.set_defaults(func=cmd_create_example)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        return args.func(args)
    except (StackupError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
