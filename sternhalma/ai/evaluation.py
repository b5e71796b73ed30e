"""
Static position evaluation.

A position is scored for one player as a weighted sum of six terms:

- progress: pieces already home, 10 per piece
- distance progress: calibrated 0-100 progress (path cost based on custom boards)
- straggler: minus the squared distance of the furthest piece over a divisor
- center control: pieces near the board center (standard board only)
- blocking: own pieces sitting on opponents' goal cells
- jump potential: available jump moves, capped

Term weights and scoring constants come from a genome. Personalities are
just preset genomes (see ``sternhalma.ai.genome``). Close to the end of the
game, tactical terms are switched off and the progress terms doubled.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Mapping, Optional

from sternhalma.ai.distance_oracle import compute_path_based_progress, get_worst_assignment_cost
from sternhalma.ai.genome import DEFAULT_GENOME
from sternhalma.game.board import CENTER_RADIUS, PIECES_PER_PLAYER
from sternhalma.game.coordinates import ORIGIN, centroid, coord_to_key, distance
from sternhalma.game.factory import get_player_pieces
from sternhalma.game.moves import get_all_valid_moves
from sternhalma.game.progress import compute_player_progress
from sternhalma.game.state import (
    count_pieces_in_goal,
    get_goal_positions_for_state,
    get_home_positions_for_state,
)
from sternhalma.game.types import GameState

# Upper bound of the uniform noise added to easy-difficulty evaluations.
EASY_NOISE = 8.0

# Once this many pieces are home the straggler term targets free goal cells.
LATE_ENDGAME_PIECES = PIECES_PER_PLAYER - 1
LATE_ENDGAME_STRAGGLER_DIVISOR = 3.0

STRAGGLER_WEIGHT = 1.5
ENDGAME_STRAGGLER_WEIGHT = 3.0
POST_WINNER_DISTANCE_BOOST = 1.5
LEADER_GOAL_PIECES = 5


@dataclass(frozen=True, slots=True)
class EvaluationTerms:
    """Unweighted term values of one position."""

    in_goal: int
    progress: float
    distance_progress: float
    straggler: float
    center_control: float
    blocking: float
    jump_potential: float


def _is_standard(state: GameState) -> bool:
    return not state.is_custom_layout


def _straggler_score(state: GameState, player: int, pieces, goals, in_goal: int, divisor: float) -> float:
    if _is_standard(state):
        goal_center = centroid(goals)
        worst = max((distance(p, goal_center) for p in pieces), default=0.0)
    else:
        worst = float(get_worst_assignment_cost(state, pieces, goals))
    score = -(worst * worst) / divisor

    if in_goal >= LATE_ENDGAME_PIECES:
        # Aim the last pieces at goal cells they can actually take.
        open_goals = []
        for g in goals:
            cell = state.board.get(coord_to_key(g))
            if cell is None or cell.is_empty or (cell.is_piece and cell.player != player):
                open_goals.append(g)
        goal_keys = {coord_to_key(g) for g in goals}
        outside = [p for p in pieces if coord_to_key(p) not in goal_keys]
        if open_goals and outside:
            worst = max(min(distance(p, g) for g in open_goals) for p in outside)
            score = -(worst * worst) / LATE_ENDGAME_STRAGGLER_DIVISOR
    return score


def compute_terms(state: GameState, player: int, genome: Mapping[str, float]) -> EvaluationTerms:
    pieces = get_player_pieces(state, player)
    goals = get_goal_positions_for_state(state, player)
    in_goal = count_pieces_in_goal(state, player)

    if _is_standard(state):
        distance_progress = compute_player_progress(state, player)
    else:
        distance_progress = compute_path_based_progress(
            state, pieces, goals, get_home_positions_for_state(state, player)
        )

    straggler = _straggler_score(state, player, pieces, goals, in_goal, genome["straggler_divisor"])

    center = 0.0
    if _is_standard(state):
        near = sum(1 for p in pieces if distance(p, ORIGIN) <= CENTER_RADIUS)
        center = near * genome["center_piece_value"]

    blocking = 0.0
    if genome["blocking"] > 0:
        own = {coord_to_key(p) for p in pieces}
        for opponent in state.active_players:
            if opponent == player:
                continue
            leader_weight = 2 if count_pieces_in_goal(state, opponent) > LEADER_GOAL_PIECES else 1
            for goal in get_goal_positions_for_state(state, opponent):
                if coord_to_key(goal) in own:
                    blocking += genome["blocking_base_value"] * leader_weight

    jump_potential = 0.0
    if genome["jump_potential"] > 0:
        jumps = sum(1 for m in get_all_valid_moves(state, player) if m.is_jump)
        jump_potential = min(jumps * genome["jump_potential_multiplier"], genome["jump_potential_cap"])

    return EvaluationTerms(
        in_goal=in_goal,
        progress=in_goal * 10.0,
        distance_progress=distance_progress,
        straggler=straggler,
        center_control=center,
        blocking=blocking,
        jump_potential=jump_potential,
    )


def is_endgame(state: GameState, in_goal: int, genome: Mapping[str, float]) -> bool:
    return in_goal >= genome["endgame_threshold"] or state.winner is not None


def evaluate_position(
    state: GameState,
    player: int,
    genome: Optional[Mapping[str, float]] = None,
    *,
    noise: bool = False,
    rng: Optional[random.Random] = None,
) -> float:
    """Score ``state`` from ``player``'s point of view. Higher is better.

    Args:
        state: Position to score.
        player: Player whose prospects are evaluated.
        genome: Term weights and scoring constants; the default genome if None.
        noise: Add uniform noise in ``[0, EASY_NOISE)`` (easy difficulty).
        rng: Random source for the noise.
    """
    genome = genome if genome is not None else DEFAULT_GENOME
    terms = compute_terms(state, player, genome)

    if is_endgame(state, terms.in_goal, genome):
        w_progress = genome["progress"] * 2
        w_distance = genome["goal_distance"] * 2
        w_straggler = ENDGAME_STRAGGLER_WEIGHT
        w_center = w_blocking = w_jump = 0.0
    else:
        w_progress = genome["progress"]
        w_distance = genome["goal_distance"]
        w_straggler = STRAGGLER_WEIGHT
        w_center = genome["center_control"]
        w_blocking = genome["blocking"]
        w_jump = genome["jump_potential"]

    if state.winner is not None:
        w_distance *= POST_WINNER_DISTANCE_BOOST

    score = (
        w_progress * terms.progress
        + w_distance * terms.distance_progress
        + w_straggler * terms.straggler
        + w_center * terms.center_control
        + w_blocking * terms.blocking
        + w_jump * terms.jump_potential
    )

    if noise:
        score += (rng or random).uniform(0, EASY_NOISE)
    return score
