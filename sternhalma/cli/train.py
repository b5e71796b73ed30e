#!/usr/bin/env python3
"""Run or resume the evolutionary genome trainer.

Examples:
    sternhalma-train --population-size 12 --generations 10 --seed 7
    sternhalma-train --resume runs/training
    sternhalma-train --run-dir runs/exp1 --export
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from sternhalma import config
from sternhalma.errors import SternhalmaError
from sternhalma.models import TrainingConfig
from sternhalma.training.trainer import EvolutionTrainer

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    defaults = TrainingConfig()
    parser = argparse.ArgumentParser(description="Evolve Sternhalma evaluation genomes by self-play.")
    parser.add_argument(
        "--run-dir",
        type=Path,
        default=config.CHECKPOINT_DIR,
        help=f"Directory for checkpoints and the best genome (default: {config.CHECKPOINT_DIR}).",
    )
    parser.add_argument(
        "--resume",
        type=Path,
        default=None,
        help="Resume from a run directory or checkpoint file (default: start a new run).",
    )
    parser.add_argument(
        "--population-size",
        type=int,
        default=defaults.population_size,
        help=f"Genomes per generation (default: {defaults.population_size}).",
    )
    parser.add_argument(
        "--generations",
        type=int,
        default=defaults.generations,
        help=f"Number of generations (default: {defaults.generations}).",
    )
    parser.add_argument(
        "--games-per-matchup",
        type=int,
        default=defaults.games_per_matchup,
        help=f"Games per pairing, seats alternate (default: {defaults.games_per_matchup}).",
    )
    parser.add_argument(
        "--mutation-rate",
        type=float,
        default=defaults.mutation_rate,
        help=f"Per-gene mutation probability (default: {defaults.mutation_rate}).",
    )
    parser.add_argument(
        "--mutation-strength",
        type=float,
        default=defaults.mutation_strength,
        help=f"Relative gaussian mutation scale (default: {defaults.mutation_strength}).",
    )
    parser.add_argument(
        "--elite-count",
        type=int,
        default=defaults.elite_count,
        help=f"Genomes copied unchanged into the next generation (default: {defaults.elite_count}).",
    )
    parser.add_argument(
        "--tournament-size",
        type=int,
        default=defaults.tournament_size,
        help=f"Tournament selection size (default: {defaults.tournament_size}).",
    )
    parser.add_argument(
        "--max-moves",
        type=int,
        default=defaults.max_moves_per_game,
        help=f"Move cap per game before a draw (default: {defaults.max_moves_per_game}).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for selection and mutation (default: random).",
    )
    parser.add_argument(
        "--export",
        action="store_true",
        help=f"Publish the best genome to {config.EVOLVED_GENOME_PATH} after each generation.",
    )
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {config.LOG_LEVEL}).",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    export_path = config.EVOLVED_GENOME_PATH if args.export else None

    try:
        if args.resume is not None:
            trainer = EvolutionTrainer.from_checkpoint(args.resume, export_path=export_path)
        else:
            training_config = TrainingConfig(
                population_size=args.population_size,
                generations=args.generations,
                games_per_matchup=args.games_per_matchup,
                mutation_rate=args.mutation_rate,
                mutation_strength=args.mutation_strength,
                elite_count=args.elite_count,
                tournament_size=args.tournament_size,
                max_moves_per_game=args.max_moves,
            )
            trainer = EvolutionTrainer(
                training_config, args.run_dir, seed=args.seed, export_path=export_path
            )
    except (SternhalmaError, ValidationError) as exc:
        logger.error(f"Cannot start training: {exc}")
        return 1

    def _on_sigint(signum, frame):
        logger.warning("Interrupt received, stopping after the current checkpoint")
        trainer.abort()

    signal.signal(signal.SIGINT, _on_sigint)

    try:
        session = trainer.run()
    except SternhalmaError as exc:
        logger.error(f"Training failed: {exc}")
        return 1

    if session.best_genome is not None:
        logger.info(f"Best genome: {session.best_genome}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
