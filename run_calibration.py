#!/usr/bin/env python3
"""
run_calibration.py — Run the myth detector calibration benchmark.

Usage:
    python run_calibration.py                      # Full run
    python run_calibration.py --corpus-dir path/   # Custom corpus location
    python run_calibration.py --json               # Output JSON only (for CI)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from calibration.corpus_parser import parse_all_corpora
from calibration.benchmark import run_benchmark, format_report, save_report


def main():
    parser = argparse.ArgumentParser(description="CreditGuard Myth Calibration Runner")
    parser.add_argument(
        "--corpus-dir",
        default="calibration/corpus",
        help="Path to corpus directory (default: calibration/corpus)",
    )
    parser.add_argument(
        "--output-dir",
        default="calibration/reports",
        help="Directory for output reports (default: calibration/reports)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON only (for CI/automation)",
    )
    args = parser.parse_args()

    corpus_dir = Path(args.corpus_dir)
    if not corpus_dir.exists():
        print(f"Error: Corpus directory not found: {corpus_dir}")
        sys.exit(1)

    samples = parse_all_corpora(corpus_dir)
    if not samples:
        print(f"Error: No samples found in {corpus_dir}")
        print("Add tagged questions to calibration/corpus/myth_corpus.txt")
        sys.exit(1)

    if not args.json:
        print(f"Loaded {len(samples)} samples from {corpus_dir}")

    result = run_benchmark(corpus_dir=corpus_dir)

    if args.json:
        _, json_path = save_report(result, args.output_dir)
        print(json_path.read_text())
    else:
        print(format_report(result))
        report_path, json_path = save_report(result, args.output_dir)
        print(f"\nReport saved to: {report_path}")
        print(f"JSON saved to:   {json_path}")

    # Exit code for CI
    if result.overall_f1 < 0.5 and result.myth_samples > 5:
        print("\n⚠️  F1 below 0.5 — calibration failing")
        sys.exit(2)

    sys.exit(0)


if __name__ == "__main__":
    main()
