"""
Out-of-process AI move computation.

Search is CPU bound, so callers with an interactive loop submit it to a
process pool instead of running it inline. Only flat data crosses the
boundary: the state goes in as ``GameState.to_dict()`` and the chosen move
comes back as ``Move.to_dict()`` (or None).
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ProcessPoolExecutor
from typing import Dict, Optional

from sternhalma import config
from sternhalma.errors import AIWorkerError, InvalidStateError
from sternhalma.game.types import GameState, Move
from sternhalma.models import Difficulty, Personality

logger = logging.getLogger(__name__)

# Global process pool (lazy initialized)
_process_pool: Optional[ProcessPoolExecutor] = None


def get_process_pool() -> ProcessPoolExecutor:
    """Get or create the global process pool."""
    global _process_pool
    if _process_pool is None:
        _process_pool = ProcessPoolExecutor(max_workers=config.AI_WORKERS)
        logger.debug(f"Started AI process pool with {config.AI_WORKERS} workers")
    return _process_pool


def shutdown_pool(wait: bool = False) -> None:
    """Shutdown the global process pool."""
    global _process_pool
    if _process_pool is not None:
        _process_pool.shutdown(wait=wait)
        _process_pool = None


def compute_move(state_data: Dict, difficulty: str, personality: str) -> Optional[Dict]:
    """
    Choose a move for a serialized state (runs in worker process).

    Pickle-friendly: takes and returns plain dicts.
    """
    # Imported here so the parent process does not pay for search imports.
    from sternhalma.ai.search import find_best_move

    state = GameState.from_dict(state_data)
    move = find_best_move(state, difficulty, personality)
    return move.to_dict() if move is not None else None


def submit_move_request(
    state: GameState,
    difficulty: Difficulty | str = Difficulty.MEDIUM,
    personality: Personality | str = Personality.GENERALIST,
    pool: Optional[ProcessPoolExecutor] = None,
) -> Future:
    """Schedule a move computation and return its future (resolves to a dict or None)."""
    executor = pool if pool is not None else get_process_pool()
    return executor.submit(
        compute_move,
        state.to_dict(),
        Difficulty(difficulty).value,
        Personality(personality).value,
    )


def suggest_move(
    state: GameState,
    difficulty: Difficulty | str = Difficulty.MEDIUM,
    personality: Personality | str = Personality.GENERALIST,
    timeout: Optional[float] = None,
    pool: Optional[ProcessPoolExecutor] = None,
) -> Optional[Move]:
    """Compute a move in the worker pool and wait for it.

    Raises:
        AIWorkerError: if the worker fails, times out or returns garbage.
    """
    future = submit_move_request(state, difficulty, personality, pool)
    try:
        payload = future.result(timeout=timeout)
    except InvalidStateError:
        raise
    except Exception as exc:
        raise AIWorkerError(
            "AI worker failed to compute a move",
            context={"difficulty": str(difficulty), "error": repr(exc)},
        ) from exc
    if payload is None:
        return None
    try:
        return Move.from_dict(payload)
    except (KeyError, TypeError, ValueError) as exc:
        raise AIWorkerError("AI worker returned a malformed move", context={"payload": payload}) from exc
