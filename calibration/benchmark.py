"""
Benchmark Runner — Precision/Recall/F1 per Myth

Runs the calibration corpus through the myth detector and compares
detector output against human labels. Produces:

  1. Per-myth precision, recall, F1
  2. Overall detection accuracy
  3. Clean-question false alarm rate
  4. Specific misses and false alarms for manual review

This is the tool that tells you whether a new keyword, phrase or
regex made the detector noisier.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from creditguard.myths import MythDetector, myth_detector
from calibration.corpus_parser import parse_all_corpora


@dataclass
class MythMetrics:
    """Precision/recall metrics for a single myth."""
    myth_id: str
    true_positives: int = 0   # Detector flagged, human tagged
    false_positives: int = 0  # Detector flagged, human didn't tag
    false_negatives: int = 0  # Human tagged, detector missed
    true_negatives: int = 0   # Neither flagged

    @property
    def precision(self) -> float:
        denom = self.true_positives + self.false_positives
        return self.true_positives / denom if denom > 0 else 0.0

    @property
    def recall(self) -> float:
        denom = self.true_positives + self.false_negatives
        return self.true_positives / denom if denom > 0 else 0.0

    @property
    def f1(self) -> float:
        p, r = self.precision, self.recall
        return 2 * p * r / (p + r) if (p + r) > 0 else 0.0

    @property
    def support(self) -> int:
        """Number of human-labeled positives for this myth."""
        return self.true_positives + self.false_negatives


@dataclass
class BenchmarkResult:
    """Full benchmark output."""
    total_samples: int
    clean_samples: int
    myth_samples: int
    myth_metrics: dict[str, MythMetrics]
    overall_accuracy: float      # (TP + TN) / total across all myths
    overall_precision: float     # Macro-averaged
    overall_recall: float        # Macro-averaged
    overall_f1: float            # Macro-averaged
    clean_false_alarm_rate: float  # Clean questions with any detection
    false_positives: list[dict]
    false_negatives: list[dict]
    unknown_tags: list[str]


def run_benchmark(
    corpus_dir: str | Path = "calibration/corpus",
    detector: Optional[MythDetector] = None,
) -> BenchmarkResult:
    """
    Run the full calibration benchmark.

    1. Parse all corpus files
    2. Run each question through the detector at its labeled depth
    3. Compare detected myth ids against human labels
    4. Compute metrics

    Args:
        corpus_dir: Path to directory containing corpus .txt files.
        detector: Detector to evaluate. Defaults to the shared instance.

    Returns:
        BenchmarkResult with full metrics.
    """
    detector = detector or myth_detector
    samples = parse_all_corpora(corpus_dir)

    if not samples:
        raise ValueError(f"No samples found in {corpus_dir}")

    metrics: dict[str, MythMetrics] = {
        m.id: MythMetrics(myth_id=m.id) for m in detector.get_all_myths()
    }

    false_positives_detail = []
    false_negatives_detail = []
    unknown: list[str] = []
    clean_alarms = 0

    for sample in samples:
        result = detector.detect(sample.text, sample.depth)
        detected = set(result.ids)
        sample.detected_ids = result.ids

        expected = {t for t in sample.tags if t in metrics}
        unknown.extend(t for t in sample.unknown_tags if t not in unknown)

        if sample.is_clean and detected:
            clean_alarms += 1

        for myth_id, mm in metrics.items():
            got = myth_id in detected
            want = myth_id in expected

            if got and want:
                mm.true_positives += 1
            elif got:
                mm.false_positives += 1
                false_positives_detail.append({
                    "myth_id": myth_id,
                    "text": sample.text[:200],
                    "source": sample.source,
                    "notes": sample.notes,
                    "human_tags": sample.tags,
                })
            elif want:
                mm.false_negatives += 1
                false_negatives_detail.append({
                    "myth_id": myth_id,
                    "text": sample.text[:200],
                    "depth": sample.depth.value,
                    "source": sample.source,
                    "notes": sample.notes,
                })
            else:
                mm.true_negatives += 1

    # Macro-average over myths with support > 0
    active = [m for m in metrics.values() if m.support > 0]
    if active:
        overall_precision = sum(m.precision for m in active) / len(active)
        overall_recall = sum(m.recall for m in active) / len(active)
        overall_f1 = sum(m.f1 for m in active) / len(active)
    else:
        overall_precision = overall_recall = overall_f1 = 0.0

    total_decisions = sum(
        m.true_positives + m.false_positives + m.false_negatives + m.true_negatives
        for m in metrics.values()
    )
    total_correct = sum(m.true_positives + m.true_negatives for m in metrics.values())
    overall_accuracy = total_correct / total_decisions if total_decisions > 0 else 0.0

    clean_count = sum(1 for s in samples if s.is_clean)

    return BenchmarkResult(
        total_samples=len(samples),
        clean_samples=clean_count,
        myth_samples=len(samples) - clean_count,
        myth_metrics=metrics,
        overall_accuracy=round(overall_accuracy, 4),
        overall_precision=round(overall_precision, 4),
        overall_recall=round(overall_recall, 4),
        overall_f1=round(overall_f1, 4),
        clean_false_alarm_rate=round(clean_alarms / clean_count, 4) if clean_count else 0.0,
        false_positives=false_positives_detail,
        false_negatives=false_negatives_detail,
        unknown_tags=unknown,
    )


def format_report(result: BenchmarkResult) -> str:
    """Format benchmark results as a human-readable report."""
    lines = [
        "=" * 60,
        "CREDITGUARD MYTH CALIBRATION REPORT",
        "=" * 60,
        "",
        f"Samples: {result.total_samples} "
        f"({result.clean_samples} clean, {result.myth_samples} with myths)",
        "",
        "--- OVERALL METRICS ---",
        f"Accuracy:  {result.overall_accuracy:.1%}",
        f"Precision: {result.overall_precision:.1%}",
        f"Recall:    {result.overall_recall:.1%}",
        f"F1 Score:  {result.overall_f1:.1%}",
        f"Clean questions flagged: {result.clean_false_alarm_rate:.1%}",
        "",
        "--- PER-MYTH BREAKDOWN ---",
        f"{'Myth':<36} {'Prec':>6} {'Recall':>6} {'F1':>6} {'TP':>4} {'FP':>4} {'FN':>4} {'Support':>7}",
        "-" * 80,
    ]

    sorted_myths = sorted(
        result.myth_metrics.values(),
        key=lambda m: (-m.support, -m.f1),
    )

    for m in sorted_myths:
        if m.support > 0 or m.false_positives > 0:
            lines.append(
                f"{m.myth_id:<36} {m.precision:>5.0%} {m.recall:>6.0%} "
                f"{m.f1:>5.0%} {m.true_positives:>4} {m.false_positives:>4} "
                f"{m.false_negatives:>4} {m.support:>7}"
            )

    if result.false_negatives:
        lines.extend(["", "--- MISSES (Detector missed a labeled myth) ---"])
        for fn in result.false_negatives[:10]:
            lines.append(f"  [{fn['myth_id']}] {fn['text'][:80]}")
            if fn.get("notes"):
                lines.append(f"    Notes: {fn['notes']}")

    if result.false_positives:
        lines.extend(["", "--- FALSE ALARMS (Detector flagged an unlabeled myth) ---"])
        for fp in result.false_positives[:10]:
            lines.append(f"  [{fp['myth_id']}] {fp['text'][:80]}")

    if result.unknown_tags:
        lines.extend(["", f"Unknown tags (not in catalog): {', '.join(result.unknown_tags)}"])

    lines.extend(["", "=" * 60])
    return "\n".join(lines)


def save_report(result: BenchmarkResult, output_dir: str | Path = "calibration/reports"):
    """Save benchmark results as both human-readable report and JSON."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    report_path = output_dir / "calibration_report.txt"
    report_path.write_text(format_report(result), encoding="utf-8")

    json_data = {
        "total_samples": result.total_samples,
        "clean_samples": result.clean_samples,
        "myth_samples": result.myth_samples,
        "overall": {
            "accuracy": result.overall_accuracy,
            "precision": result.overall_precision,
            "recall": result.overall_recall,
            "f1": result.overall_f1,
            "clean_false_alarm_rate": result.clean_false_alarm_rate,
        },
        "per_myth": {
            myth_id: {
                "precision": m.precision,
                "recall": m.recall,
                "f1": m.f1,
                "tp": m.true_positives,
                "fp": m.false_positives,
                "fn": m.false_negatives,
                "support": m.support,
            }
            for myth_id, m in result.myth_metrics.items()
            if m.support > 0 or m.false_positives > 0
        },
        "false_positives": result.false_positives,
        "false_negatives": result.false_negatives,
        "unknown_tags": result.unknown_tags,
    }
    json_path = output_dir / "calibration_report.json"
    json_path.write_text(json.dumps(json_data, indent=2), encoding="utf-8")

    return report_path, json_path
