"""
Base AI player class for Sternhalma.
Abstract base class that search-based players inherit from.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sternhalma.game.moves import get_all_valid_moves
from sternhalma.game.types import GameState, Move
from sternhalma.models import AIConfig, Difficulty


def derive_seed(config: AIConfig, player: int) -> int:
    """Deterministic fallback seed mixing difficulty and seat.

    Used only when no explicit seed is given, so that repeated runs of the
    same seat behave reproducibly.
    """
    level = list(Difficulty).index(config.difficulty) + 1
    base = (level * 1_000_003) ^ (player * 97_911)
    return int(base & 0xFFFFFFFF)


class BaseAI(ABC):
    """Abstract base class for all AI players"""

    def __init__(self, player: int, config: AIConfig, rng_seed: Optional[int] = None):
        """
        Initialize AI player

        Args:
            player: Seat index (0-5) this AI moves for
            config: Difficulty and personality
            rng_seed: Seed for the per-instance RNG; derived from config if None
        """
        self.player = player
        self.config = config
        self.rng_seed = int(rng_seed) if rng_seed is not None else derive_seed(config, player)
        self.rng: random.Random = random.Random(self.rng_seed)

    @abstractmethod
    def select_move(self, state: GameState) -> Optional[Move]:
        """
        Select the best move for the current game state

        Returns:
            Selected move or None if no valid moves
        """

    @abstractmethod
    def evaluate_position(self, state: GameState) -> float:
        """
        Evaluate a position from this AI's perspective

        Returns:
            Evaluation score (higher = better for this AI)
        """

    def get_evaluation_breakdown(self, state: GameState) -> Dict[str, float]:
        return {"total": self.evaluate_position(state)}

    def get_valid_moves(self, state: GameState) -> List[Move]:
        return get_all_valid_moves(state, self.player)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}"
            f"(player={self.player}, "
            f"difficulty={self.config.difficulty.value}, "
            f"personality={self.config.personality.value})"
        )
