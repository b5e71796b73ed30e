"""Evaluation genomes for Sternhalma.

A genome is a flat mapping of the 15 tunable numbers used by the evaluator
and the move penalties: five term weights, five scoring constants, four
penalty constants and the end-game threshold. Each gene has a fixed
``[min, max]`` range that mutation and loading always clamp to.

Personalities are expressed as small overrides of the default genome, and
the ``evolved`` difficulty reads a genome persisted by the trainer. Genome
files use camelCase gene names so they stay interchangeable with other
clients of the same format.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from sternhalma import config
from sternhalma.models import Difficulty, Personality

logger = logging.getLogger(__name__)

Genome = dict[str, float]


# Ordered gene names. Order is stable and used for vectorised mutation.
GENOME_KEYS: list[str] = [
    # Evaluation term weights
    "progress",
    "goal_distance",
    "center_control",
    "blocking",
    "jump_potential",
    # Scoring constants
    "straggler_divisor",
    "center_piece_value",
    "blocking_base_value",
    "jump_potential_multiplier",
    "jump_potential_cap",
    # Penalty constants
    "regression_multiplier",
    "goal_leave_penalty",
    "repetition_penalty",
    "cycle_penalty",
    "endgame_threshold",
]

GENE_RANGES: dict[str, tuple[float, float]] = {
    "progress": (0.5, 10.0),
    "goal_distance": (0.5, 10.0),
    "center_control": (0.0, 5.0),
    "blocking": (0.0, 8.0),
    "jump_potential": (0.0, 5.0),
    "straggler_divisor": (1.0, 20.0),
    "center_piece_value": (0.5, 10.0),
    "blocking_base_value": (1.0, 15.0),
    "jump_potential_multiplier": (0.5, 5.0),
    "jump_potential_cap": (10.0, 80.0),
    "regression_multiplier": (1.0, 15.0),
    "goal_leave_penalty": (10.0, 120.0),
    "repetition_penalty": (20.0, 150.0),
    "cycle_penalty": (10.0, 100.0),
    "endgame_threshold": (4.0, 9.0),
}

DEFAULT_GENOME: Genome = {
    "progress": 3.0,
    "goal_distance": 2.5,
    "center_control": 1.0,
    "blocking": 1.0,
    "jump_potential": 0.5,
    "straggler_divisor": 5.0,
    "center_piece_value": 3.0,
    "blocking_base_value": 5.0,
    "jump_potential_multiplier": 2.0,
    "jump_potential_cap": 40.0,
    "regression_multiplier": 5.0,
    "goal_leave_penalty": 60.0,
    "repetition_penalty": 80.0,
    "cycle_penalty": 50.0,
    "endgame_threshold": 7.0,
}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


GENE_JSON_NAMES: dict[str, str] = {key: _camel(key) for key in GENOME_KEYS}
_JSON_TO_GENE: dict[str, str] = {v: k for k, v in GENE_JSON_NAMES.items()}


def clamp_gene(key: str, value: float) -> float:
    low, high = GENE_RANGES[key]
    return max(low, min(high, float(value)))


def _with_overrides(base: Mapping[str, float], **overrides: float) -> Genome:
    """Return a copy of ``base`` with the given genes replaced."""
    genome = dict(base)
    for key, value in overrides.items():
        if key not in GENE_RANGES:
            raise KeyError(f"Unknown gene: {key}")
        genome[key] = value
    return genome


# --- Personality profiles ---------------------------------------------------
#
# Only the five term weights differ between personalities; scoring and
# penalty constants stay at the default genome's values.

GENERALIST_GENOME: Genome = _with_overrides(
    DEFAULT_GENOME,
    progress=3.0,
    goal_distance=3.5,
    center_control=1.0,
    blocking=1.0,
    jump_potential=0.5,
)

DEFENSIVE_GENOME: Genome = _with_overrides(
    DEFAULT_GENOME,
    progress=2.0,
    goal_distance=3.0,
    center_control=0.5,
    blocking=4.0,
    jump_potential=0.5,
)

AGGRESSIVE_GENOME: Genome = _with_overrides(
    DEFAULT_GENOME,
    progress=2.5,
    goal_distance=4.0,
    center_control=1.5,
    blocking=0.0,
    jump_potential=3.0,
)

PERSONALITY_GENOMES: dict[Personality, Genome] = {
    Personality.GENERALIST: GENERALIST_GENOME,
    Personality.DEFENSIVE: DEFENSIVE_GENOME,
    Personality.AGGRESSIVE: AGGRESSIVE_GENOME,
}


def personality_genome(personality: Personality | str) -> Genome:
    return PERSONALITY_GENOMES[Personality(personality)]


# --- Serialisation ----------------------------------------------------------


def genome_to_json(genome: Mapping[str, float]) -> dict[str, float]:
    return {GENE_JSON_NAMES[k]: float(genome[k]) for k in GENOME_KEYS}


def genome_from_json(payload: Mapping[str, object]) -> Genome:
    """Parse a camelCase (or snake_case) genome, clamping every gene.

    Genes missing from ``payload`` take their default value.

    Raises:
        ValueError: if a gene value is not numeric.
    """
    genome = dict(DEFAULT_GENOME)
    for name, value in payload.items():
        key = _JSON_TO_GENE.get(name, name)
        if key not in GENE_RANGES:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Gene {name} must be numeric, got {value!r}")
        genome[key] = clamp_gene(key, value)
    return genome


def save_evolved_genome(genome: Mapping[str, float], path: str | os.PathLike | None = None) -> Path:
    """Persist ``genome`` for the evolved difficulty. Writes atomically."""
    target = Path(path) if path is not None else config.EVOLVED_GENOME_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_suffix(target.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(genome_to_json(genome), f, indent=2, sort_keys=True)
    os.replace(tmp, target)
    logger.info(f"Saved evolved genome to {target}")
    return target


def load_evolved_genome(path: str | os.PathLike | None = None) -> Genome | None:
    """Load the persisted evolved genome, or None when absent or unreadable."""
    source = Path(path) if path is not None else config.EVOLVED_GENOME_PATH
    if not source.exists():
        return None
    try:
        with open(source, encoding="utf-8") as f:
            payload = json.load(f)
        if not isinstance(payload, dict):
            raise ValueError("genome file must contain a JSON object")
        return genome_from_json(payload)
    except (OSError, ValueError) as exc:
        logger.warning(f"Ignoring unreadable evolved genome at {source}: {exc}")
        return None


def clear_evolved_genome(path: str | os.PathLike | None = None) -> None:
    target = Path(path) if path is not None else config.EVOLVED_GENOME_PATH
    target.unlink(missing_ok=True)


def genome_for(difficulty: Difficulty | str, personality: Personality | str) -> Genome:
    """Genome used by an AI seat.

    The evolved difficulty uses the persisted genome and falls back to the
    personality's genome when none is available.
    """
    if Difficulty(difficulty) is Difficulty.EVOLVED:
        evolved = load_evolved_genome()
        if evolved is not None:
            return evolved
    return dict(personality_genome(personality))
