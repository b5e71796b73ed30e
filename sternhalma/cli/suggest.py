#!/usr/bin/env python3
"""Print the AI's move for a serialized game state.

Reads a GameState JSON document from a file (or stdin with ``-``) and
writes the chosen move as JSON, or ``null`` when the player has no move.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from sternhalma.ai.search import find_best_move
from sternhalma.errors import SternhalmaError
from sternhalma.game.types import GameState
from sternhalma.models import Difficulty, Personality

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Suggest a move for the player to act.")
    parser.add_argument("state", help="Path to a game state JSON file, or '-' for stdin.")
    parser.add_argument(
        "--difficulty",
        default=Difficulty.MEDIUM.value,
        choices=[d.value for d in Difficulty],
        help="AI difficulty (default: medium).",
    )
    parser.add_argument(
        "--personality",
        default=Personality.GENERALIST.value,
        choices=[p.value for p in Personality],
        help="AI personality (default: generalist).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING).",
    )
    return parser.parse_args(argv)


def _read_state(source: str) -> GameState:
    if source == "-":
        data = json.load(sys.stdin)
    else:
        with open(source, encoding="utf-8") as f:
            data = json.load(f)
    return GameState.from_dict(data)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))

    try:
        state = _read_state(args.state)
        move = find_best_move(state, Difficulty(args.difficulty), Personality(args.personality))
    except (OSError, ValueError, KeyError) as exc:
        logger.error(f"Could not read game state from {args.state}: {exc}")
        return 1
    except SternhalmaError as exc:
        logger.error(f"Move search failed: {exc}")
        return 1

    print(json.dumps(move.to_dict() if move is not None else None))
    return 0


if __name__ == "__main__":
    sys.exit(main())
