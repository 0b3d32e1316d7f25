"""
Corpus Parser — Reads Tagged Myth Calibration Samples

Parses the simple text format used for calibration corpus files.
Each sample is a user question preceded by metadata tags,
separated by '---' delimiters.

Format:
    ---
    tags: zero-utilization, close-old-cards
    depth: beginner
    source: support inbox, 2024-03
    notes: Two myths in one question

    Should I keep 0% utilization and close my oldest card
    to help my score?

    ---

Tags are myth ids from the catalog, or "clean" for a question that
contains no misconception.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from creditguard.myths import MYTH_CATALOG
from creditguard.schemas.answer import AnswerDepth, coerce_depth

KNOWN_MYTH_IDS: frozenset[str] = frozenset(m.id for m in MYTH_CATALOG)


@dataclass
class CalibrationSample:
    """A single labeled question from the calibration corpus."""
    text: str
    tags: list[str]               # Human-labeled myth ids (or ["clean"])
    depth: AnswerDepth            # Depth the question is evaluated at
    source: str                   # Where the question came from
    notes: str                    # Annotator notes
    is_clean: bool                # True if tagged as "clean" (no myth)

    # Populated after detector evaluation
    detected_ids: Optional[list[str]] = None

    @property
    def unknown_tags(self) -> list[str]:
        return [t for t in self.tags if t != "clean" and t not in KNOWN_MYTH_IDS]


def parse_corpus(filepath: str | Path) -> list[CalibrationSample]:
    """
    Parse a calibration corpus file into a list of samples.

    Args:
        filepath: Path to the corpus text file.

    Returns:
        List of CalibrationSample objects.
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Corpus file not found: {filepath}")

    content = filepath.read_text(encoding="utf-8")

    # Split on lines that are just --- (with optional whitespace)
    blocks = re.split(r"(?:^|\n)\s*---\s*(?:\n|$)", content)

    samples = []
    for block in blocks:
        block = block.strip()
        if not block:
            continue

        sample = _parse_block(block)
        if sample:
            samples.append(sample)

    return samples


def _parse_block(block: str) -> Optional[CalibrationSample]:
    """Parse a single sample block."""
    metadata = {}
    text_lines = []
    in_text = False

    for line in block.split("\n"):
        stripped = line.strip()
        if stripped.startswith("#"):
            continue  # Skip comments

        if not in_text:
            match = re.match(r"^(tags|depth|source|notes)\s*:\s*(.+)$", stripped, re.IGNORECASE)
            if match:
                metadata[match.group(1).lower()] = match.group(2).strip()
            elif stripped:
                # First non-metadata, non-empty line starts the text
                in_text = True
                text_lines.append(line)
        else:
            text_lines.append(line)

    text = "\n".join(text_lines).strip()
    if not text:
        return None

    raw_tags = metadata.get("tags", "clean")
    tags = [t.strip().lower() for t in raw_tags.split(",") if t.strip()]
    if not tags:
        tags = ["clean"]

    return CalibrationSample(
        text=text,
        tags=tags,
        depth=coerce_depth(metadata.get("depth", "beginner").lower()),
        source=metadata.get("source", "unknown"),
        notes=metadata.get("notes", ""),
        is_clean="clean" in tags,
    )


def parse_all_corpora(corpus_dir: str | Path) -> list[CalibrationSample]:
    """Parse all .txt corpus files in a directory."""
    corpus_dir = Path(corpus_dir)
    samples = []
    for filepath in sorted(corpus_dir.glob("*.txt")):
        samples.extend(parse_corpus(filepath))
    return samples
