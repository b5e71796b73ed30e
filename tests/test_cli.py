"""Tests for the command-line entry points."""

import json
import signal

import pytest

from sternhalma.cli import suggest, train
from sternhalma.game.moves import is_valid_move
from sternhalma.game.types import Move
from sternhalma.training.session import BEST_GENOME_FILENAME, SESSION_FILENAME
from sternhalma.training.trainer import EvolutionTrainer


class TestSuggest:
    def test_prints_move(self, tmp_path, capsys, two_player_game):
        path = tmp_path / "state.json"
        path.write_text(json.dumps(two_player_game.to_dict()))

        assert suggest.main([str(path), "--difficulty", "easy"]) == 0
        move = Move.from_dict(json.loads(capsys.readouterr().out))
        assert is_valid_move(two_player_game, move, 0)

    def test_missing_file(self, tmp_path):
        assert suggest.main([str(tmp_path / "missing.json")]) == 1

    def test_malformed_state(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"currentPlayer": 0}))
        assert suggest.main([str(path)]) == 1

    def test_bad_difficulty_exits(self, tmp_path):
        with pytest.raises(SystemExit):
            suggest.main([str(tmp_path / "state.json"), "--difficulty", "godlike"])


@pytest.fixture
def quick_training(monkeypatch):
    monkeypatch.setattr(EvolutionTrainer, "play_game", lambda self, first, second: 0)
    monkeypatch.setattr(signal, "signal", lambda signum, handler: None)


class TestTrain:
    ARGS = [
        "--population-size", "3",
        "--generations", "2",
        "--games-per-matchup", "1",
        "--elite-count", "1",
        "--seed", "5",
        "--log-level", "WARNING",
    ]

    def test_new_run(self, tmp_path, quick_training):
        run_dir = tmp_path / "run"
        assert train.main(["--run-dir", str(run_dir), *self.ARGS]) == 0
        assert (run_dir / SESSION_FILENAME).exists()
        assert (run_dir / BEST_GENOME_FILENAME).exists()

    def test_export(self, tmp_path, quick_training, isolated_paths):
        run_dir = tmp_path / "run"
        assert train.main(["--run-dir", str(run_dir), "--export", *self.ARGS]) == 0
        assert (isolated_paths / "evolved_genome.json").exists()

    def test_resume_finished_run(self, tmp_path, quick_training):
        run_dir = tmp_path / "run"
        train.main(["--run-dir", str(run_dir), *self.ARGS])
        assert train.main(["--resume", str(run_dir)]) == 0

    def test_resume_without_checkpoint(self, tmp_path, quick_training):
        assert train.main(["--resume", str(tmp_path / "nothing")]) == 1

    def test_invalid_config(self, tmp_path, quick_training):
        assert train.main(["--run-dir", str(tmp_path), "--population-size", "1"]) == 1
