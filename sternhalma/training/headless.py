"""Headless genome-versus-genome games on the standard two-player board."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Mapping, Optional

from sternhalma.ai.search import find_best_move_with_genome
from sternhalma.game.factory import create_game
from sternhalma.game.state import apply_move

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameResult:
    """Outcome of one headless game. ``winner`` is 0, 1 or None (move cap)."""

    winner: Optional[int]
    total_moves: int
    player1_moves: int
    player2_moves: int


def run_headless_game(
    genome1: Mapping[str, float],
    genome2: Mapping[str, float],
    max_moves: int = 500,
    depth: int = 2,
    move_limit: int = 12,
    rng: Optional[random.Random] = None,
) -> GameResult:
    """Play ``genome1`` (first mover) against ``genome2`` until someone finishes.

    The game stops at the first finisher, when the side to move has no
    move, or after ``max_moves`` moves (a draw).
    """
    state = create_game(2)
    first, second = state.active_players
    genomes = {first: genome1, second: genome2}
    moves = {first: 0, second: 0}

    total = 0
    while state.winner is None and total < max_moves:
        mover = state.current_player
        move = find_best_move_with_genome(state, genomes[mover], depth, move_limit, rng)
        if move is None:
            break
        state = apply_move(state, move)
        moves[mover] += 1
        total += 1

    winner = None
    if state.finished_players:
        winner = 0 if state.finished_players[0].player == first else 1
    logger.debug(f"Headless game finished: winner={winner}, moves={total}")
    return GameResult(winner, total, moves[first], moves[second])
