"""
Learned evaluation modifiers derived from finished games.

Each finished game is reduced to per-player metrics (move mix, distance
gained, jump chain lengths, goal-entry milestones) and a quality score.
Winning games, weighted by quality, are turned into multiplicative
modifiers in ``[0.5, 1.5]`` for five positional factors. Non-easy search
blends the weighted factors into its evaluation once at least one game has
been analysed.

The store is a single JSON file (``STERNHALMA_LEARNING_DATA``). A missing
or unreadable file means "no learning yet".
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
from pydantic import BaseModel, Field, ValidationError

from sternhalma import config
from sternhalma.game.coordinates import DIRECTIONS, CubeCoord, centroid, coord_to_key, distance
from sternhalma.game.factory import get_player_pieces
from sternhalma.game.state import get_goal_positions_for_state
from sternhalma.game.types import CellKind, GameState, Move

logger = logging.getLogger(__name__)

MAX_RECENT_GAMES = 100
HALF_GOAL = 5
WEIGHTS_CACHE_TTL_SECONDS = 60.0


# =============================================================================
# Models
# =============================================================================


class PlayerGameMetrics(BaseModel):
    total_moves: int = Field(0, alias="totalMoves")
    jump_moves: int = Field(0, alias="jumpMoves")
    step_moves: int = Field(0, alias="stepMoves")
    swap_moves: int = Field(0, alias="swapMoves")
    avg_distance_gained_per_move: float = Field(0.0, alias="avgDistanceGainedPerMove")
    avg_jump_chain_length: float = Field(0.0, alias="avgJumpChainLength")
    max_jump_chain_length: int = Field(0, alias="maxJumpChainLength")
    moves_to_first_goal_entry: Optional[int] = Field(None, alias="movesToFirstGoalEntry")
    moves_to_half_goal_filled: Optional[int] = Field(None, alias="movesToHalfGoalFilled")
    avg_piece_cohesion: float = Field(0.5, alias="avgPieceCohesion")
    is_winner: bool = Field(False, alias="isWinner")

    class Config:
        populate_by_name = True


class GamePatterns(BaseModel):
    game_id: str = Field(alias="gameId")
    timestamp: int
    is_custom_layout: bool = Field(False, alias="isCustomLayout")
    player_count: int = Field(alias="playerCount")
    winner: Optional[int] = None
    player_metrics: Dict[int, PlayerGameMetrics] = Field(default_factory=dict, alias="playerMetrics")
    total_moves: int = Field(alias="totalMoves")
    winner_move_count: int = Field(alias="winnerMoveCount")

    class Config:
        populate_by_name = True


class GameSummary(BaseModel):
    game_id: str = Field(alias="gameId")
    timestamp: int
    player_count: int = Field(alias="playerCount")
    winner: Optional[int] = None
    total_moves: int = Field(alias="totalMoves")
    winner_move_count: int = Field(alias="winnerMoveCount")
    patterns: GamePatterns
    quality_score: float = Field(alias="qualityScore")

    class Config:
        populate_by_name = True


class LearnedWeights(BaseModel):
    version: int = 1
    last_updated: int = Field(0, alias="lastUpdated")
    games_analyzed: int = Field(0, alias="gamesAnalyzed")

    distance_weight: float = Field(1.0, alias="distanceWeight")
    cohesion_weight: float = Field(1.0, alias="cohesionWeight")
    mobility_weight: float = Field(1.0, alias="mobilityWeight")
    advancement_balance: float = Field(1.0, alias="advancementBalance")
    jump_preference: float = Field(1.0, alias="jumpPreference")
    goal_occupation_weight: float = Field(1.0, alias="goalOccupationWeight")

    avg_winning_move_count: float = Field(50.0, alias="avgWinningMoveCount")
    optimal_jump_chain_length: float = Field(3.0, alias="optimalJumpChainLength")
    optimal_cohesion_level: float = Field(0.5, alias="optimalCohesionLevel")

    class Config:
        populate_by_name = True


class LearningStats(BaseModel):
    total_games_analyzed: int = Field(0, alias="totalGamesAnalyzed")
    total_wins_analyzed: int = Field(0, alias="totalWinsAnalyzed")
    avg_moves_to_win: float = Field(50.0, alias="avgMovesToWin")
    avg_moves_to_win_by_player_count: Dict[int, float] = Field(
        default_factory=dict, alias="avgMovesToWinByPlayerCount"
    )
    wins_by_player_count: Dict[int, int] = Field(default_factory=dict, alias="winsByPlayerCount")

    class Config:
        populate_by_name = True


class LearningData(BaseModel):
    version: int = 1
    weights: LearnedWeights = Field(default_factory=LearnedWeights)
    recent_games: List[GameSummary] = Field(default_factory=list, alias="recentGames")
    stats: LearningStats = Field(default_factory=LearningStats)

    class Config:
        populate_by_name = True


# =============================================================================
# Pattern extraction
# =============================================================================


def _estimate_cohesion(moves: List[Move]) -> float:
    # Jumps need neighbours, so the jump share stands in for clustering.
    if len(moves) < 2:
        return 0.5
    jump_ratio = sum(1 for m in moves if m.is_jump) / len(moves)
    return min(1.0, jump_ratio * 1.5)


def extract_player_metrics(state: GameState, player: int, is_winner: bool) -> PlayerGameMetrics:
    goals = get_goal_positions_for_state(state, player)
    goal_center = centroid(goals)
    goal_keys = {coord_to_key(g) for g in goals}
    moves = [m for m in state.move_history if m.player == player]

    jump_moves = step_moves = swap_moves = 0
    chain_total = 0
    chain_max = 0
    gained = 0.0
    for move in moves:
        if move.is_swap:
            swap_moves += 1
        elif move.is_jump:
            jump_moves += 1
            chain = len(move.jump_path) if move.jump_path else 1
            chain_total += chain
            chain_max = max(chain_max, chain)
        else:
            step_moves += 1
        gained += distance(move.from_pos, goal_center) - distance(move.to, goal_center)

    first_entry: Optional[int] = None
    half_filled: Optional[int] = None
    in_goal = 0
    for index, move in enumerate(moves, start=1):
        if move.to_key in goal_keys:
            if first_entry is None:
                first_entry = index
            in_goal += 1
            if in_goal >= HALF_GOAL and half_filled is None:
                half_filled = index
        if move.from_key in goal_keys:
            in_goal -= 1

    return PlayerGameMetrics(
        total_moves=len(moves),
        jump_moves=jump_moves,
        step_moves=step_moves,
        swap_moves=swap_moves,
        avg_distance_gained_per_move=gained / len(moves) if moves else 0.0,
        avg_jump_chain_length=chain_total / jump_moves if jump_moves else 0.0,
        max_jump_chain_length=chain_max,
        moves_to_first_goal_entry=first_entry,
        moves_to_half_goal_filled=half_filled,
        avg_piece_cohesion=_estimate_cohesion(moves),
        is_winner=is_winner,
    )


def extract_game_patterns(final_state: GameState, game_id: str) -> GamePatterns:
    winner = final_state.winner
    metrics = {
        p: extract_player_metrics(final_state, p, p == winner)
        for p in final_state.active_players
    }
    if winner is not None:
        winner_moves = metrics[winner].total_moves if winner in metrics else 0
    else:
        winner_moves = len(final_state.move_history)
    return GamePatterns(
        game_id=game_id,
        timestamp=int(time.time() * 1000),
        is_custom_layout=bool(final_state.is_custom_layout),
        player_count=final_state.player_count,
        winner=winner,
        player_metrics=metrics,
        total_moves=len(final_state.move_history),
        winner_move_count=winner_moves,
    )


def calculate_game_quality(patterns: GamePatterns) -> float:
    """Learning value of a game in ``[0.1, 1]``; drawn games score 0.1.

    Half comes from the winner's move efficiency (30 moves is excellent,
    100 is poor), a quarter from jump share and a quarter from distance
    gained per move.
    """
    if patterns.winner is None:
        return 0.1
    metrics = patterns.player_metrics.get(patterns.winner)
    if metrics is None:
        return 0.1

    move_efficiency = max(0.0, min(1.0, (100 - metrics.total_moves) / 70))
    jump_utilization = metrics.jump_moves / metrics.total_moves if metrics.total_moves > 0 else 0.0
    distance_efficiency = min(1.0, metrics.avg_distance_gained_per_move / 2)
    quality = move_efficiency * 0.5 + jump_utilization * 0.25 + distance_efficiency * 0.25
    return max(0.1, min(1.0, quality))


def create_game_summary(patterns: GamePatterns) -> GameSummary:
    return GameSummary(
        game_id=patterns.game_id,
        timestamp=patterns.timestamp,
        player_count=patterns.player_count,
        winner=patterns.winner,
        total_moves=patterns.total_moves,
        winner_move_count=patterns.winner_move_count,
        patterns=patterns,
        quality_score=calculate_game_quality(patterns),
    )


# =============================================================================
# Weight derivation
# =============================================================================


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def compute_weights_from_games(games: List[GameSummary]) -> LearnedWeights:
    """Quality-weighted modifiers from the winners of ``games``."""
    total_weight = 0.0
    distance_gain = jump_ratio = chain_length = cohesion = move_count = 0.0
    winning = 0
    for game in games:
        if game.winner is None:
            continue
        metrics = game.patterns.player_metrics.get(game.winner)
        if metrics is None:
            continue
        winning += 1
        weight = game.quality_score
        total_weight += weight
        distance_gain += metrics.avg_distance_gained_per_move * weight
        jump_ratio += metrics.jump_moves / max(1, metrics.total_moves) * weight
        chain_length += metrics.avg_jump_chain_length * weight
        cohesion += metrics.avg_piece_cohesion * weight
        move_count += metrics.total_moves * weight

    if total_weight == 0:
        return LearnedWeights()

    distance_gain /= total_weight
    jump_ratio /= total_weight
    chain_length /= total_weight
    cohesion /= total_weight
    move_count /= total_weight

    if move_count < 40:
        advancement = 1.2
    elif move_count < 60:
        advancement = 1.0
    else:
        advancement = 0.9

    return LearnedWeights(
        last_updated=int(time.time() * 1000),
        games_analyzed=winning,
        distance_weight=_clamp(0.8 + distance_gain / 2 * 0.4, 0.5, 1.5),
        cohesion_weight=_clamp(0.8 + cohesion * 0.4, 0.5, 1.5),
        mobility_weight=_clamp(1.2 - cohesion * 0.4, 0.5, 1.5),
        advancement_balance=_clamp(advancement, 0.7, 1.3),
        jump_preference=_clamp(0.8 + jump_ratio * 0.4, 0.5, 1.5),
        goal_occupation_weight=1.0,
        avg_winning_move_count=move_count,
        optimal_jump_chain_length=chain_length,
        optimal_cohesion_level=cohesion,
    )


# =============================================================================
# Persistence
# =============================================================================


class LearningStore:
    """JSON-backed learning data with a short-lived weights cache."""

    def __init__(self, path: str | os.PathLike | None = None) -> None:
        self.path = Path(path) if path is not None else config.LEARNING_DATA_PATH
        self._cached_weights: Optional[LearnedWeights] = None
        self._cached_at = 0.0

    def load(self) -> LearningData:
        if not self.path.exists():
            return LearningData()
        try:
            with open(self.path, encoding="utf-8") as f:
                return LearningData.model_validate(json.load(f))
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning(f"Ignoring unreadable learning data at {self.path}: {exc}")
            return LearningData()

    def save(self, data: LearningData) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data.model_dump(mode="json", by_alias=True), f, indent=2)
        os.replace(tmp, self.path)
        self.clear_cache()

    def learn_from_game(self, final_state: GameState, game_id: str) -> GameSummary:
        """Fold a finished game into the store and recompute the weights."""
        summary = create_game_summary(extract_game_patterns(final_state, game_id))
        data = self.load()
        data.recent_games.insert(0, summary)
        del data.recent_games[MAX_RECENT_GAMES:]

        stats = data.stats
        stats.total_games_analyzed += 1
        if summary.winner is not None:
            stats.total_wins_analyzed += 1
            stats.avg_moves_to_win += (
                summary.winner_move_count - stats.avg_moves_to_win
            ) / stats.total_wins_analyzed
            pc = summary.player_count
            old = stats.avg_moves_to_win_by_player_count.get(pc, float(summary.winner_move_count))
            pc_games = stats.wins_by_player_count.get(pc, 0) + 1
            stats.wins_by_player_count[pc] = pc_games
            stats.avg_moves_to_win_by_player_count[pc] = (
                old + (summary.winner_move_count - old) / pc_games
            )

        data.weights = compute_weights_from_games(data.recent_games)
        data.weights.games_analyzed = stats.total_games_analyzed
        self.save(data)
        logger.info(
            f"Learned from game {game_id}: quality={summary.quality_score:.2f}, "
            f"games analysed={stats.total_games_analyzed}"
        )
        return summary

    def get_weights(self) -> LearnedWeights:
        now = time.monotonic()
        if self._cached_weights is None or now - self._cached_at > WEIGHTS_CACHE_TTL_SECONDS:
            self._cached_weights = self.load().weights
            self._cached_at = now
        return self._cached_weights

    def clear_cache(self) -> None:
        self._cached_weights = None
        self._cached_at = 0.0

    def clear(self) -> None:
        self.save(LearningData())


_default_store: Optional[LearningStore] = None


def get_learning_store() -> LearningStore:
    global _default_store
    if _default_store is None:
        _default_store = LearningStore()
    return _default_store


# =============================================================================
# Evaluation factors
# =============================================================================


@dataclass(frozen=True, slots=True)
class EvaluationFactors:
    distance: float
    cohesion: float
    mobility: float
    goal_occupation: float
    advancement_balance: float


def _cohesion_score(pieces: List[CubeCoord]) -> float:
    if len(pieces) <= 1:
        return 0.0
    total = 0
    close = 0
    for i in range(len(pieces)):
        for j in range(i + 1, len(pieces)):
            total += 1
            if distance(pieces[i], pieces[j]) <= 3:
                close += 1
    return close / total * 10


def _mobility_score(state: GameState, pieces: List[CubeCoord]) -> float:
    score = 0.0
    for piece in pieces:
        for d in DIRECTIONS:
            cell = state.board.get(coord_to_key(piece + d))
            if cell is None:
                continue
            if cell.kind is CellKind.EMPTY:
                score += 1
            elif cell.kind is CellKind.PIECE:
                score += 0.5
    return score


def compute_evaluation_factors(state: GameState, player: int) -> EvaluationFactors:
    pieces = get_player_pieces(state, player)
    goals = get_goal_positions_for_state(state, player)
    goal_center = centroid(goals)
    goal_keys = {coord_to_key(g) for g in goals}

    distances = np.array([distance(p, goal_center) for p in pieces], dtype=float)
    avg_distance = float(distances.mean()) if len(pieces) else 0.0
    balance = -float(distances.std()) if len(pieces) > 1 else 0.0
    in_goal = sum(1 for p in pieces if coord_to_key(p) in goal_keys)

    return EvaluationFactors(
        distance=-avg_distance,
        cohesion=_cohesion_score(pieces),
        mobility=_mobility_score(state, pieces),
        goal_occupation=in_goal * 10.0,
        advancement_balance=balance,
    )


def learned_score(state: GameState, player: int, weights: LearnedWeights) -> float:
    """Weighted sum of the evaluation factors; 0 before any game was analysed."""
    if weights.games_analyzed == 0:
        return 0.0
    factors = compute_evaluation_factors(state, player)
    return (
        factors.distance * weights.distance_weight
        + factors.cohesion * weights.cohesion_weight
        + factors.mobility * weights.mobility_weight
        + factors.goal_occupation * weights.goal_occupation_weight
        + factors.advancement_balance * weights.advancement_balance
    )
