"""Tests for checkpointed sessions and the resumable trainer.

Game play is stubbed out with ``monkeypatch`` so these tests exercise the
bookkeeping, not the search.
"""

import json

import pytest

from sternhalma.ai.genome import DEFAULT_GENOME, load_evolved_genome
from sternhalma.errors import CheckpointError
from sternhalma.models import TrainingConfig
from sternhalma.training import headless
from sternhalma.training.evolution import Individual
from sternhalma.training.session import (
    BEST_GENOME_FILENAME,
    SESSION_FILENAME,
    TrainingSession,
    checkpoint_path,
    find_latest_session,
    load_checkpoint,
    save_checkpoint,
)
from sternhalma.training.trainer import EvolutionTrainer

SMALL = TrainingConfig(population_size=3, generations=2, games_per_matchup=2, elite_count=1)


def _first_mover_wins(self, first, second):
    return 0


@pytest.fixture
def stub_games(monkeypatch):
    monkeypatch.setattr(EvolutionTrainer, "play_game", _first_mover_wins)


class TestSession:
    def _session(self):
        return TrainingSession(
            config=SMALL,
            population=[Individual(genome=dict(DEFAULT_GENOME), fitness=3.0, wins=1)],
            matchup_index=2,
            game_within_matchup=1,
            games_completed=5,
        )

    def test_checkpoint_round_trip(self, tmp_path):
        session = self._session()
        path = save_checkpoint(session, tmp_path)
        assert path == checkpoint_path(tmp_path, 0)
        assert path.name == "checkpoint_gen000.json"

        loaded = load_checkpoint(path)
        assert loaded == session
        assert load_checkpoint(tmp_path / SESSION_FILENAME) == session

    def test_checkpoint_uses_camel_case(self, tmp_path):
        save_checkpoint(self._session(), tmp_path)
        data = json.loads((tmp_path / SESSION_FILENAME).read_text())
        assert data["matchupIndex"] == 2
        assert data["gameWithinMatchup"] == 1
        assert data["config"]["populationSize"] == 3

    def test_corrupt_checkpoint(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{")
        with pytest.raises(CheckpointError):
            load_checkpoint(path)

    def test_find_latest(self, tmp_path):
        assert find_latest_session(tmp_path) is None
        save_checkpoint(self._session(), tmp_path)
        assert find_latest_session(tmp_path) == tmp_path / SESSION_FILENAME


class TestTrainer:
    def test_full_run(self, tmp_path, stub_games):
        trainer = EvolutionTrainer(SMALL, tmp_path, seed=1, export_path=tmp_path / "export.json")
        session = trainer.run()

        assert session.is_complete
        assert session.current_generation == 2
        assert len(session.generation_history) == 2
        assert len(session.population) == 3
        first = session.generation_history[0]
        # Six games per generation, three points each.
        assert first.avg_fitness == pytest.approx(6.0)
        assert (tmp_path / BEST_GENOME_FILENAME).exists()
        assert load_evolved_genome(tmp_path / "export.json") == session.best_genome
        assert checkpoint_path(tmp_path, 2).exists()

    def test_checkpoint_after_every_game(self, tmp_path, stub_games):
        seen = []
        trainer = EvolutionTrainer(
            SMALL, tmp_path, seed=1,
            on_progress=lambda s: seen.append(load_checkpoint(tmp_path / SESSION_FILENAME).games_completed),
        )
        trainer.run()
        assert seen == [1, 2, 3, 4, 5, 6] * 2

    def test_abort_and_resume_continue_same_game(self, tmp_path, stub_games):
        trainer = EvolutionTrainer(SMALL, tmp_path, seed=1)

        def stop_after_three(session):
            if session.games_completed == 3:
                trainer.abort()

        trainer.on_progress = stop_after_three
        partial = trainer.run()
        assert not partial.is_complete
        saved = load_checkpoint(tmp_path / SESSION_FILENAME)
        assert (saved.matchup_index, saved.game_within_matchup) == (1, 1)
        assert saved.games_completed == 3
        fitness_before = [ind.fitness for ind in saved.population]

        resumed = EvolutionTrainer.from_checkpoint(tmp_path)
        assert [ind.fitness for ind in resumed.session.population] == fitness_before
        session = resumed.run()
        assert session.is_complete
        assert session.generation_history[0].avg_fitness == pytest.approx(6.0)

    def test_resume_breeds_like_an_uninterrupted_run(self, tmp_path, stub_games):
        straight = EvolutionTrainer(SMALL, tmp_path / "straight", seed=7).run()

        trainer = EvolutionTrainer(SMALL, tmp_path / "split", seed=7)

        def stop_mid_generation(session):
            if session.current_generation == 0 and session.games_completed == 4:
                trainer.abort()

        trainer.on_progress = stop_mid_generation
        trainer.run()
        saved = load_checkpoint(tmp_path / "split" / SESSION_FILENAME)
        assert saved.rng_state is not None

        resumed = EvolutionTrainer.from_checkpoint(tmp_path / "split").run()
        assert [ind.genome for ind in resumed.population] == [ind.genome for ind in straight.population]
        assert resumed.best_genome == straight.best_genome

    def test_abort_discards_in_flight_game(self, tmp_path):
        trainer = EvolutionTrainer(SMALL, tmp_path, seed=1)
        played = []

        def play(first, second):
            played.append(1)
            if len(played) == 2:
                trainer.abort()
            return 0

        trainer.play_game = play
        trainer.run()
        saved = load_checkpoint(tmp_path / SESSION_FILENAME)
        assert saved.games_completed == 1
        assert sum(ind.games_played for ind in saved.population) == 2

    def test_default_play_uses_headless_games(self, tmp_path, monkeypatch):
        calls = {}

        def fake_game(genome1, genome2, max_moves, depth, move_limit):
            calls.update(max_moves=max_moves, depth=depth, move_limit=move_limit)
            return headless.GameResult(None, max_moves, 0, 0)

        monkeypatch.setattr(headless, "run_headless_game", fake_game)
        trainer = EvolutionTrainer(SMALL, tmp_path)
        assert trainer.play_game(DEFAULT_GENOME, DEFAULT_GENOME) is None
        assert calls == {"max_moves": 500, "depth": 2, "move_limit": 12}

    def test_pause_blocks_until_resumed(self, tmp_path):
        trainer = EvolutionTrainer(SMALL, tmp_path)
        trainer.pause()
        assert trainer.is_paused
        trainer.abort()
        assert not trainer._wait_if_paused()
        assert trainer.is_aborted

    def test_missing_checkpoint(self, tmp_path):
        with pytest.raises(CheckpointError):
            EvolutionTrainer.from_checkpoint(tmp_path)


class TestHeadless:
    def test_short_game_hits_move_cap(self):
        result = headless.run_headless_game(DEFAULT_GENOME, DEFAULT_GENOME, max_moves=2, depth=1, move_limit=3)
        assert result.winner is None
        assert result.total_moves == 2
        assert (result.player1_moves, result.player2_moves) == (1, 1)
