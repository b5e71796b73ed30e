"""
Adversarial search for Sternhalma.

Two-player games use minimax with alpha-beta pruning. Games with three or
more active players use a max^n approximation: the searching player
maximizes its own evaluation and every other player is assumed to minimize
it. Depth and the per-node move cap come from the difficulty.

At every node the legal moves are pruned to the best ``move_limit`` by a
1-ply lookahead (evaluation minus penalties). Vetoed moves are dropped when
any alternative exists.

Once the searching player has seven or more pieces home, non-easy players
hand the decision to the rule-based end-game solver.
"""

from __future__ import annotations

import logging
import math
import random
import time
from typing import Dict, List, Mapping, Optional

from sternhalma import config as app_config
from sternhalma.ai.base import BaseAI
from sternhalma.ai.endgame import find_endgame_move, is_late_endgame
from sternhalma.ai.evaluation import compute_terms, evaluate_position
from sternhalma.ai.genome import genome_for
from sternhalma.ai.learning import LearnedWeights, get_learning_store, learned_score
from sternhalma.ai.penalties import VETO_SCORE, total_penalty
from sternhalma.game.moves import get_all_valid_moves
from sternhalma.game.state import apply_move
from sternhalma.game.types import GameState, Move
from sternhalma.metrics import AI_MOVE_LATENCY, AI_MOVE_REQUESTS, AI_SEARCH_NODES
from sternhalma.models import AI_DEPTH, AI_MOVE_LIMIT, AIConfig, Difficulty, Personality

logger = logging.getLogger(__name__)

# Share of the learned positional score added to the evaluation.
LEARNED_BLEND = 0.1

EASY_CANDIDATES = 3


class SearchAI(BaseAI):
    """Genome-driven minimax / max^n player.

    Args:
        player: Seat the AI moves for.
        config: Difficulty and personality.
        genome: Evaluation genome; resolved from the config when None.
        depth: Search depth; from the difficulty table when None.
        move_limit: Per-node move cap; from the difficulty table when None.
        learned_weights: Learned modifiers to blend in; None disables blending.
        use_endgame_solver: Let the end-game solver choose in the late end game.
        rng: Random source; a seeded per-instance RNG when None.
    """

    def __init__(
        self,
        player: int,
        config: AIConfig,
        *,
        genome: Optional[Mapping[str, float]] = None,
        depth: Optional[int] = None,
        move_limit: Optional[int] = None,
        learned_weights: Optional[LearnedWeights] = None,
        use_endgame_solver: bool = True,
        rng: Optional[random.Random] = None,
        rng_seed: Optional[int] = None,
    ) -> None:
        super().__init__(player, config, rng_seed=rng_seed)
        if rng is not None:
            self.rng = rng
        self.genome = dict(genome) if genome is not None else genome_for(
            config.difficulty, config.personality
        )
        self.depth = depth if depth is not None else AI_DEPTH[config.difficulty]
        self.move_limit = move_limit if move_limit is not None else AI_MOVE_LIMIT[config.difficulty]
        self.is_easy = config.difficulty is Difficulty.EASY
        self.learned_weights = (
            learned_weights
            if learned_weights is not None and learned_weights.games_analyzed > 0 and not self.is_easy
            else None
        )
        self.use_endgame_solver = use_endgame_solver and not self.is_easy
        self.nodes_visited = 0

    # =========================================================================
    # Evaluation and penalties
    # =========================================================================

    def score_for(self, state: GameState, player: int) -> float:
        self.nodes_visited += 1
        score = evaluate_position(state, player, self.genome, noise=self.is_easy, rng=self.rng)
        if self.learned_weights is not None:
            score += LEARNED_BLEND * learned_score(state, player, self.learned_weights)
        return score

    def evaluate_position(self, state: GameState) -> float:
        return self.score_for(state, self.player)

    def get_evaluation_breakdown(self, state: GameState) -> Dict[str, float]:
        terms = compute_terms(state, self.player, self.genome)
        return {
            "progress": terms.progress,
            "distance_progress": terms.distance_progress,
            "straggler": terms.straggler,
            "center_control": terms.center_control,
            "blocking": terms.blocking,
            "jump_potential": terms.jump_potential,
            "total": self.evaluate_position(state),
        }

    def penalty(self, state: GameState, move: Move, player: int) -> float:
        return total_penalty(state, move, player, self.genome)

    # =========================================================================
    # Move ordering
    # =========================================================================

    def _viable(self, state: GameState, moves: List[Move], player: int) -> List[Move]:
        viable = [m for m in moves if not math.isinf(self.penalty(state, m, player))]
        return viable if viable else moves

    def top_moves_from(self, state: GameState, moves: List[Move], player: int, limit: int) -> List[Move]:
        """Best ``limit`` of ``moves`` by 1-ply evaluation minus penalty."""
        if len(moves) <= limit:
            return moves
        scored = []
        for move in moves:
            penalty = self.penalty(state, move, player)
            if math.isinf(penalty):
                penalty = VETO_SCORE
            scored.append((self.score_for(apply_move(state, move), player) - penalty, move))
        scored.sort(key=lambda s: s[0], reverse=True)
        return [move for _, move in scored[:limit]]

    def get_top_moves(self, state: GameState, player: int, limit: int) -> List[Move]:
        moves = get_all_valid_moves(state, player)
        return self.top_moves_from(state, self._viable(state, moves, player), player, limit)

    # =========================================================================
    # Search
    # =========================================================================

    def minimax(self, state: GameState, depth: int, alpha: float, beta: float) -> float:
        if depth == 0:
            return self.evaluate_position(state)
        current = state.current_player
        moves = self.get_top_moves(state, current, self.move_limit)
        if not moves:
            return self.evaluate_position(state)

        if current == self.player:
            best = -math.inf
            for move in moves:
                value = self.minimax(apply_move(state, move), depth - 1, alpha, beta)
                best = max(best, value)
                alpha = max(alpha, value)
                if beta <= alpha:
                    break
            return best

        worst = math.inf
        for move in moves:
            value = self.minimax(apply_move(state, move), depth - 1, alpha, beta)
            worst = min(worst, value)
            beta = min(beta, value)
            if beta <= alpha:
                break
        return worst

    def maxn(self, state: GameState, depth: int) -> float:
        """Max^n approximation: other players minimize this AI's score."""
        if depth == 0:
            return self.evaluate_position(state)
        current = state.current_player
        moves = self.get_top_moves(state, current, self.move_limit)
        if not moves:
            return self.evaluate_position(state)

        values = (self.maxn(apply_move(state, move), depth - 1) for move in moves)
        return max(values) if current == self.player else min(values)

    def search(self, state: GameState, depth: int) -> float:
        if len(state.active_players) == 2:
            return self.minimax(state, depth, -math.inf, math.inf)
        return self.maxn(state, depth)

    def select_move(self, state: GameState) -> Optional[Move]:
        player = self.player
        all_moves = get_all_valid_moves(state, player)
        if not all_moves:
            return None

        if self.use_endgame_solver and is_late_endgame(state, player):
            return find_endgame_move(state, player, self.rng)

        candidates = self.top_moves_from(
            state, self._viable(state, all_moves, player), player, self.move_limit
        )
        if not candidates:
            return all_moves[0]

        if self.is_easy:
            return self.rng.choice(candidates[:EASY_CANDIDATES])

        best_move = candidates[0]
        best_score = -math.inf
        for move in candidates:
            penalty = self.penalty(state, move, player)
            if math.isinf(penalty):
                continue
            score = self.search(apply_move(state, move), self.depth - 1) - penalty
            if score > best_score:
                best_score = score
                best_move = move

        logger.debug(
            f"{self!r} chose {best_move.from_key}->{best_move.to_key} "
            f"score={best_score:.2f} nodes={self.nodes_visited}"
        )
        return best_move


def _learned_weights_for(difficulty: Difficulty) -> Optional[LearnedWeights]:
    if difficulty is Difficulty.EASY or not app_config.LEARNING_ENABLED:
        return None
    return get_learning_store().get_weights()


def find_best_move(
    state: GameState,
    difficulty: Difficulty | str = Difficulty.MEDIUM,
    personality: Personality | str = Personality.GENERALIST,
    rng: Optional[random.Random] = None,
) -> Optional[Move]:
    """Recommended move for ``state.current_player``, or None if it has none."""
    difficulty = Difficulty(difficulty)
    ai = SearchAI(
        state.current_player,
        AIConfig(difficulty=difficulty, personality=Personality(personality)),
        learned_weights=_learned_weights_for(difficulty),
        rng=rng if rng is not None else random.Random(),
    )
    start = time.perf_counter()
    move = ai.select_move(state)
    AI_MOVE_LATENCY.labels(difficulty=difficulty.value).observe(time.perf_counter() - start)
    AI_SEARCH_NODES.labels(difficulty=difficulty.value).inc(ai.nodes_visited)
    AI_MOVE_REQUESTS.labels(
        difficulty=difficulty.value, outcome="move" if move is not None else "no_move"
    ).inc()
    return move


def find_best_move_with_genome(
    state: GameState,
    genome: Mapping[str, float],
    depth: int = 2,
    move_limit: int = 12,
    rng: Optional[random.Random] = None,
) -> Optional[Move]:
    """Training-time search: fixed genome, no learning blend, no end-game solver."""
    ai = SearchAI(
        state.current_player,
        AIConfig(difficulty=Difficulty.HARD),
        genome=genome,
        depth=depth,
        move_limit=move_limit,
        use_endgame_solver=False,
        rng=rng,
    )
    return ai.select_move(state)
