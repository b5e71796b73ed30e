"""
Core value types for the rules engine.

Cells and moves are immutable; a GameState is treated as an immutable
snapshot by every transition in ``sternhalma.game.state`` (transitions clone
before writing). States serialize to a flat dict whose board is a list of
``[key, cell]`` pairs so they can cross a process boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from sternhalma.errors import InvalidStateError
from sternhalma.game.coordinates import CubeCoord, coord_to_key
from sternhalma.models import AIConfig


class CellKind(str, Enum):
    EMPTY = "empty"
    PIECE = "piece"
    WALL = "wall"


@dataclass(frozen=True, slots=True)
class Cell:
    kind: CellKind
    player: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY

    @property
    def is_piece(self) -> bool:
        return self.kind is CellKind.PIECE

    def to_dict(self) -> dict:
        if self.kind is CellKind.PIECE:
            return {"type": self.kind.value, "player": self.player}
        return {"type": self.kind.value}

    @classmethod
    def from_dict(cls, data: dict) -> Cell:
        kind = CellKind(data["type"])
        if kind is CellKind.PIECE:
            return piece(data["player"])
        return EMPTY if kind is CellKind.EMPTY else WALL


EMPTY = Cell(CellKind.EMPTY)
WALL = Cell(CellKind.WALL)
_PIECES = tuple(Cell(CellKind.PIECE, p) for p in range(6))


def piece(player: int) -> Cell:
    return _PIECES[player]


@dataclass(frozen=True, slots=True)
class Move:
    """A single move. ``jump_path`` lists the cells jumped over, in order."""

    from_pos: CubeCoord
    to: CubeCoord
    is_jump: bool
    jump_path: Optional[Tuple[CubeCoord, ...]] = None
    is_swap: Optional[bool] = None
    player: Optional[int] = None
    turn_number: Optional[int] = None

    @property
    def from_key(self) -> str:
        return coord_to_key(self.from_pos)

    @property
    def to_key(self) -> str:
        return coord_to_key(self.to)

    def with_player(self, player: int, turn_number: Optional[int] = None) -> Move:
        return Move(
            self.from_pos,
            self.to,
            self.is_jump,
            self.jump_path,
            self.is_swap,
            player,
            turn_number if turn_number is not None else self.turn_number,
        )

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "from": self.from_pos.to_dict(),
            "to": self.to.to_dict(),
            "isJump": self.is_jump,
        }
        if self.jump_path is not None:
            data["jumpPath"] = [c.to_dict() for c in self.jump_path]
        if self.is_swap is not None:
            data["isSwap"] = self.is_swap
        if self.player is not None:
            data["player"] = self.player
        if self.turn_number is not None:
            data["turnNumber"] = self.turn_number
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Move:
        jump_path = data.get("jumpPath")
        return cls(
            from_pos=CubeCoord.from_dict(data["from"]),
            to=CubeCoord.from_dict(data["to"]),
            is_jump=bool(data.get("isJump", False)),
            jump_path=(
                tuple(CubeCoord.from_dict(c) for c in jump_path)
                if jump_path is not None
                else None
            ),
            is_swap=data.get("isSwap"),
            player=data.get("player"),
            turn_number=data.get("turnNumber"),
        )


@dataclass(frozen=True, slots=True)
class FinishedPlayer:
    player: int
    move_count: int


def _int_keyed(mapping: Optional[dict]) -> Optional[dict]:
    if mapping is None:
        return None
    return {int(k): v for k, v in mapping.items()}


@dataclass(slots=True)
class GameState:
    """Snapshot of a game. Never mutated once returned by a transition."""

    board: Dict[str, Cell]
    player_count: int
    active_players: List[int]
    current_player: int
    move_history: List[Move] = field(default_factory=list)
    winner: Optional[int] = None
    finished_players: List[FinishedPlayer] = field(default_factory=list)
    turn_number: int = 1
    is_custom_layout: Optional[bool] = None
    player_colors: Optional[Dict[int, str]] = None
    ai_players: Optional[Dict[int, AIConfig]] = None
    custom_goal_positions: Optional[Dict[int, List[str]]] = None
    starting_positions: Optional[Dict[int, List[str]]] = None

    def clone(self) -> GameState:
        """Copy the mutable containers; cells and moves are shared immutables."""
        return GameState(
            board=dict(self.board),
            player_count=self.player_count,
            active_players=list(self.active_players),
            current_player=self.current_player,
            move_history=list(self.move_history),
            winner=self.winner,
            finished_players=list(self.finished_players),
            turn_number=self.turn_number,
            is_custom_layout=self.is_custom_layout,
            player_colors=self.player_colors,
            ai_players=self.ai_players,
            custom_goal_positions=self.custom_goal_positions,
            starting_positions=self.starting_positions,
        )

    def cell(self, key: str) -> Optional[Cell]:
        return self.board.get(key)

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "boardEntries": [[k, c.to_dict()] for k, c in self.board.items()],
            "playerCount": self.player_count,
            "activePlayers": list(self.active_players),
            "currentPlayer": self.current_player,
            "moveHistory": [m.to_dict() for m in self.move_history],
            "winner": self.winner,
            "finishedPlayers": [
                {"player": f.player, "moveCount": f.move_count}
                for f in self.finished_players
            ],
            "turnNumber": self.turn_number,
        }
        if self.is_custom_layout is not None:
            data["isCustomLayout"] = self.is_custom_layout
        if self.player_colors is not None:
            data["playerColors"] = {str(k): v for k, v in self.player_colors.items()}
        if self.ai_players is not None:
            data["aiPlayers"] = {
                str(k): v.model_dump(mode="json") for k, v in self.ai_players.items()
            }
        if self.custom_goal_positions is not None:
            data["customGoalPositions"] = {
                str(k): list(v) for k, v in self.custom_goal_positions.items()
            }
        if self.starting_positions is not None:
            data["startingPositions"] = {
                str(k): list(v) for k, v in self.starting_positions.items()
            }
        return data

    @classmethod
    def from_dict(cls, data: dict) -> GameState:
        try:
            ai_players = _int_keyed(data.get("aiPlayers"))
            return cls(
                board={k: Cell.from_dict(c) for k, c in data["boardEntries"]},
                player_count=data["playerCount"],
                active_players=list(data["activePlayers"]),
                current_player=data["currentPlayer"],
                move_history=[Move.from_dict(m) for m in data.get("moveHistory", [])],
                winner=data.get("winner"),
                finished_players=[
                    FinishedPlayer(f["player"], f["moveCount"])
                    for f in data.get("finishedPlayers", [])
                ],
                turn_number=data.get("turnNumber", 1),
                is_custom_layout=data.get("isCustomLayout"),
                player_colors=_int_keyed(data.get("playerColors")),
                ai_players=(
                    {k: AIConfig.model_validate(v) for k, v in ai_players.items()}
                    if ai_players is not None
                    else None
                ),
                custom_goal_positions=_int_keyed(data.get("customGoalPositions")),
                starting_positions=_int_keyed(data.get("startingPositions")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidStateError(f"Malformed serialized game state: {exc}") from exc
