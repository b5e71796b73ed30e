"""
Resumable evolutionary trainer.

``EvolutionTrainer`` walks the round-robin schedule one game at a time and
checkpoints after each game, so an interrupted run resumes at the same
game instead of replaying the generation. Generation boundaries store the
already-evolved next population, so resuming at a boundary continues with
exactly the genomes that would have played.

The loop is cooperative: ``pause()`` suspends it between games,
``abort()`` stops it. A game that is in flight when abort is requested is
discarded; the last checkpoint stays the resume point.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Mapping, Optional

import numpy as np

from sternhalma.ai.genome import save_evolved_genome
from sternhalma.errors import CheckpointError
from sternhalma.metrics import TRAINING_BEST_FITNESS, TRAINING_GAMES, TRAINING_GENERATIONS
from sternhalma.models import TrainingConfig
from sternhalma.training import headless
from sternhalma.training.evolution import (
    create_initial_population,
    evolve_generation,
    games_per_generation,
    matchup_schedule,
    rank,
    record_result,
    reset_fitness,
    seat_order,
)
from sternhalma.training.session import (
    BEST_GENOME_FILENAME,
    GenerationResult,
    TrainingSession,
    find_latest_session,
    load_checkpoint,
    save_checkpoint,
)

logger = logging.getLogger(__name__)

PAUSE_POLL_SECONDS = 0.1


class EvolutionTrainer:
    """Self-play genetic search over evaluation genomes.

    Args:
        config: Training hyper-parameters.
        run_dir: Directory for checkpoints and the best genome.
        seed: Seed for the numpy generator driving selection and mutation.
        export_path: Where to publish the best genome for the evolved
            difficulty after each generation; None to skip.
        on_progress: Called with the session after every recorded game.
    """

    def __init__(
        self,
        config: TrainingConfig,
        run_dir: Path,
        seed: Optional[int] = None,
        export_path: Optional[Path] = None,
        on_progress: Optional[Callable[[TrainingSession], None]] = None,
    ) -> None:
        self.config = config
        self.run_dir = Path(run_dir)
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.export_path = export_path
        self.on_progress = on_progress
        self.session: Optional[TrainingSession] = None
        self._running = threading.Event()
        self._running.set()
        self._abort = threading.Event()

    # =========================================================================
    # Control
    # =========================================================================

    def pause(self) -> None:
        self._running.clear()
        logger.info("Training paused")

    def resume_play(self) -> None:
        self._running.set()
        logger.info("Training resumed")

    def abort(self) -> None:
        self._abort.set()
        self._running.set()

    @property
    def is_paused(self) -> bool:
        return not self._running.is_set()

    @property
    def is_aborted(self) -> bool:
        return self._abort.is_set()

    def _wait_if_paused(self) -> bool:
        """Block while paused. Returns False once aborted."""
        while not self._running.wait(timeout=PAUSE_POLL_SECONDS):
            if self._abort.is_set():
                return False
        return not self._abort.is_set()

    # =========================================================================
    # Session setup
    # =========================================================================

    def start_new(self) -> TrainingSession:
        population = create_initial_population(self.config.population_size, self.rng)
        self.session = TrainingSession(
            config=self.config,
            population=population,
            total_games_to_play=games_per_generation(self.config),
            seed=self.seed,
        )
        self._checkpoint(self.session)
        logger.info(
            f"Started training run in {self.run_dir}: population={self.config.population_size}, "
            f"generations={self.config.generations}, "
            f"games/generation={self.session.total_games_to_play}"
        )
        return self.session

    @classmethod
    def from_checkpoint(
        cls,
        path: Path,
        run_dir: Optional[Path] = None,
        export_path: Optional[Path] = None,
        on_progress: Optional[Callable[[TrainingSession], None]] = None,
    ) -> "EvolutionTrainer":
        """Trainer continuing the session stored at ``path`` (file or run dir)."""
        path = Path(path)
        if path.is_dir():
            run_dir = run_dir or path
            found = find_latest_session(path)
            if found is None:
                raise CheckpointError("No checkpoint found", context={"run_dir": str(path)})
            path = found
        session = load_checkpoint(path)
        if run_dir is None:
            run_dir = path.parent.parent if path.parent.name == "checkpoints" else path.parent
        trainer = cls(
            session.config, run_dir, seed=session.seed, export_path=export_path, on_progress=on_progress
        )
        if session.rng_state is not None:
            trainer.rng.bit_generator.state = session.rng_state
        else:
            trainer.rng = np.random.default_rng(
                None if session.seed is None
                else [session.seed, session.current_generation, session.games_completed]
            )
        trainer.session = session
        logger.info(
            f"Resuming training at generation {session.current_generation}, "
            f"matchup {session.matchup_index}, game {session.game_within_matchup}"
        )
        return trainer

    # =========================================================================
    # Main loop
    # =========================================================================

    def _checkpoint(self, session: TrainingSession) -> None:
        session.rng_state = self.rng.bit_generator.state
        save_checkpoint(session, self.run_dir)

    def play_game(self, first: Mapping[str, float], second: Mapping[str, float]) -> Optional[int]:
        result = headless.run_headless_game(
            first,
            second,
            max_moves=self.config.max_moves_per_game,
            depth=self.config.search_depth,
            move_limit=self.config.move_limit,
        )
        return result.winner

    def run(self) -> TrainingSession:
        """Play until every generation is done or the run is aborted."""
        session = self.session if self.session is not None else self.start_new()
        schedule = matchup_schedule(len(session.population))

        while not session.is_complete:
            if session.at_generation_start:
                reset_fitness(session.population)
                session.games_completed = 0
                session.total_games_to_play = len(schedule) * self.config.games_per_matchup

            while session.matchup_index < len(schedule):
                if not self._wait_if_paused():
                    logger.info("Training aborted; last checkpoint kept")
                    return session
                first, second = seat_order(
                    schedule[session.matchup_index], session.game_within_matchup
                )
                winner = self.play_game(
                    session.population[first].genome, session.population[second].genome
                )
                if self._abort.is_set():
                    logger.info("Training aborted; in-flight game discarded")
                    return session

                record_result(session.population, first, second, winner)
                TRAINING_GAMES.labels(outcome="draw" if winner is None else "decisive").inc()
                session.games_completed += 1
                session.game_within_matchup += 1
                if session.game_within_matchup >= self.config.games_per_matchup:
                    session.matchup_index += 1
                    session.game_within_matchup = 0
                self._checkpoint(session)
                if self.on_progress is not None:
                    self.on_progress(session)

            self._finish_generation(session)

        logger.info(f"Training complete after {session.current_generation} generations")
        return session

    def _finish_generation(self, session: TrainingSession) -> None:
        fitnesses = np.array([ind.fitness for ind in session.population], dtype=float)
        best = rank(session.population)[0]
        result = GenerationResult(
            generation=session.current_generation,
            best_fitness=float(np.max(fitnesses)),
            avg_fitness=float(np.mean(fitnesses)),
            std_fitness=float(np.std(fitnesses)),
            best_genome=dict(best.genome),
        )
        session.generation_history.append(result)
        session.best_genome = dict(best.genome)

        save_evolved_genome(best.genome, self.run_dir / BEST_GENOME_FILENAME)
        if self.export_path is not None:
            save_evolved_genome(best.genome, self.export_path)

        TRAINING_GENERATIONS.inc()
        TRAINING_BEST_FITNESS.set(result.best_fitness)
        logger.info(
            f"Generation {session.current_generation}: best={result.best_fitness:.1f}, "
            f"mean={result.avg_fitness:.2f}, std={result.std_fitness:.2f}"
        )

        if session.current_generation + 1 < self.config.generations:
            session.population = evolve_generation(session.population, self.config, self.rng)
        session.current_generation += 1
        session.matchup_index = 0
        session.game_within_matchup = 0
        session.games_completed = 0
        self._checkpoint(session)
