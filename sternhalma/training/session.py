"""
Checkpointable training state.

A ``TrainingSession`` is everything needed to continue a run: the config,
the population, the generation index, the round-robin cursor
(``matchup_index``, ``game_within_matchup``) and the breeding generator's
state. It is written as JSON after
every game and at every generation boundary, always via a temporary file
and ``os.replace`` so a crash never leaves a half-written checkpoint.

Layout of a run directory::

    <run_dir>/session.json                       latest session
    <run_dir>/checkpoints/checkpoint_gen007.json latest session within gen 7
    <run_dir>/best_genome.json                   best genome so far
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from sternhalma.errors import CheckpointError
from sternhalma.models import TrainingConfig
from sternhalma.training.evolution import Individual

logger = logging.getLogger(__name__)

SESSION_FILENAME = "session.json"
CHECKPOINT_DIRNAME = "checkpoints"
BEST_GENOME_FILENAME = "best_genome.json"


class GenerationResult(BaseModel):
    generation: int
    best_fitness: float = Field(alias="bestFitness")
    avg_fitness: float = Field(alias="avgFitness")
    std_fitness: float = Field(0.0, alias="stdFitness")
    best_genome: Dict[str, float] = Field(alias="bestGenome")

    class Config:
        populate_by_name = True


class TrainingSession(BaseModel):
    """Resumable state of one evolutionary run."""
    config: TrainingConfig
    current_generation: int = Field(0, alias="currentGeneration")
    population: List[Individual]
    best_genome: Optional[Dict[str, float]] = Field(None, alias="bestGenome")
    generation_history: List[GenerationResult] = Field(
        default_factory=list, alias="generationHistory"
    )
    games_completed: int = Field(0, alias="gamesCompleted")
    total_games_to_play: int = Field(0, alias="totalGamesToPlay")
    matchup_index: int = Field(0, alias="matchupIndex")
    game_within_matchup: int = Field(0, alias="gameWithinMatchup")
    seed: Optional[int] = None
    rng_state: Optional[Dict[str, Any]] = Field(None, alias="rngState")

    class Config:
        populate_by_name = True

    @property
    def is_complete(self) -> bool:
        return self.current_generation >= self.config.generations

    @property
    def at_generation_start(self) -> bool:
        return self.matchup_index == 0 and self.game_within_matchup == 0


def checkpoint_path(run_dir: Path, generation: int) -> Path:
    return Path(run_dir) / CHECKPOINT_DIRNAME / f"checkpoint_gen{generation:03d}.json"


def _write_json_atomic(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    os.replace(tmp, path)


def save_checkpoint(session: TrainingSession, run_dir: Path) -> Path:
    """Write ``session`` as the generation checkpoint and the latest session.

    Raises:
        CheckpointError: if the files cannot be written.
    """
    payload = session.model_dump(mode="json", by_alias=True)
    path = checkpoint_path(run_dir, session.current_generation)
    try:
        _write_json_atomic(path, payload)
        _write_json_atomic(Path(run_dir) / SESSION_FILENAME, payload)
    except OSError as exc:
        raise CheckpointError(
            "Failed to write training checkpoint", context={"path": str(path), "error": str(exc)}
        ) from exc
    logger.debug(
        f"Checkpoint gen={session.current_generation} "
        f"matchup={session.matchup_index} game={session.game_within_matchup} -> {path}"
    )
    return path


def load_checkpoint(path: Path) -> TrainingSession:
    """Read a session or checkpoint file.

    Raises:
        CheckpointError: if the file is missing or not a valid session.
    """
    try:
        with open(path, encoding="utf-8") as f:
            return TrainingSession.model_validate(json.load(f))
    except (OSError, ValueError, ValidationError) as exc:
        raise CheckpointError(
            "Failed to read training checkpoint", context={"path": str(path), "error": str(exc)}
        ) from exc


def find_latest_session(run_dir: Path) -> Optional[Path]:
    """Latest session file of a run, falling back to the newest checkpoint."""
    run_dir = Path(run_dir)
    session = run_dir / SESSION_FILENAME
    if session.exists():
        return session
    checkpoints = sorted((run_dir / CHECKPOINT_DIRNAME).glob("checkpoint_gen*.json"))
    return checkpoints[-1] if checkpoints else None
