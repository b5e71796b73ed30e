"""
Pydantic models for the data Sternhalma exchanges with external layers.

These cover board layouts from the editor, AI player settings, saved-game
records consumed by replay, online turn payloads and training configuration.
Hot-path game state lives in ``sternhalma.game.types`` as plain dataclasses.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Difficulty(str, Enum):
    """AI difficulty level"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EVOLVED = "evolved"


class Personality(str, Enum):
    """AI play style"""
    GENERALIST = "generalist"
    DEFENSIVE = "defensive"
    AGGRESSIVE = "aggressive"


AI_DEPTH: Dict[Difficulty, int] = {
    Difficulty.EASY: 1,
    Difficulty.MEDIUM: 2,
    Difficulty.HARD: 3,
    Difficulty.EVOLVED: 3,
}

AI_MOVE_LIMIT: Dict[Difficulty, int] = {
    Difficulty.EASY: 10,
    Difficulty.MEDIUM: 15,
    Difficulty.HARD: 20,
    Difficulty.EVOLVED: 20,
}


class AIConfig(BaseModel):
    """Difficulty and personality of one AI-controlled seat."""
    difficulty: Difficulty = Difficulty.MEDIUM
    personality: Personality = Personality.GENERALIST

    class Config:
        frozen = True


class BoardLayout(BaseModel):
    """Custom board produced by the board editor.

    ``cells`` holds ``"q,r"`` keys; player-indexed maps are keyed 0-5.
    """
    id: str = "custom"
    name: str = "Custom board"
    cells: List[str]
    starting_positions: Dict[int, List[str]] = Field(alias="startingPositions")
    goal_positions: Optional[Dict[int, List[str]]] = Field(None, alias="goalPositions")
    walls: Optional[List[str]] = None
    created_at: int = Field(0, alias="createdAt")
    is_default: Optional[bool] = Field(None, alias="isDefault")

    class Config:
        populate_by_name = True


class MovePayload(BaseModel):
    """A move as stored in saved games and worker responses."""
    from_pos: Dict[str, int] = Field(alias="from")
    to: Dict[str, int]
    is_jump: bool = Field(alias="isJump")
    jump_path: Optional[List[Dict[str, int]]] = Field(None, alias="jumpPath")
    is_swap: Optional[bool] = Field(None, alias="isSwap")
    player: Optional[int] = None

    class Config:
        populate_by_name = True


class FinishRecord(BaseModel):
    player: int
    move_count: int = Field(alias="moveCount")

    class Config:
        populate_by_name = True


class InitialConfig(BaseModel):
    """Everything needed to rebuild the first position of a saved game."""
    player_count: int = Field(alias="playerCount")
    active_players: List[int] = Field(alias="activePlayers")
    player_colors: Optional[Dict[int, str]] = Field(None, alias="playerColors")
    ai_players: Optional[Dict[int, AIConfig]] = Field(None, alias="aiPlayers")
    is_custom_layout: Optional[bool] = Field(None, alias="isCustomLayout")
    custom_cells: Optional[List[str]] = Field(None, alias="customCells")
    custom_starting_positions: Optional[Dict[int, List[str]]] = Field(
        None, alias="customStartingPositions"
    )
    custom_goal_positions: Optional[Dict[int, List[str]]] = Field(
        None, alias="customGoalPositions"
    )
    custom_walls: Optional[List[str]] = Field(None, alias="customWalls")

    class Config:
        populate_by_name = True


class SavedGameRecord(BaseModel):
    """Full replayable record of a finished game."""
    id: str
    initial_config: InitialConfig = Field(alias="initialConfig")
    moves: List[MovePayload]
    finished_players: List[FinishRecord] = Field(alias="finishedPlayers")
    date_saved: int = Field(alias="dateSaved")

    class Config:
        populate_by_name = True


class SavedGameSummary(BaseModel):
    """Listing entry for a saved game."""
    id: str
    date_saved: int = Field(alias="dateSaved")
    player_count: int = Field(alias="playerCount")
    active_players: List[int] = Field(alias="activePlayers")
    winner: int
    total_moves: int = Field(alias="totalMoves")
    total_turns: int = Field(alias="totalTurns")
    longest_hop: int = Field(alias="longestHop")
    player_colors: Optional[Dict[int, str]] = Field(None, alias="playerColors")
    ai_players: Optional[Dict[int, AIConfig]] = Field(None, alias="aiPlayers")

    class Config:
        populate_by_name = True


class OnlineMove(BaseModel):
    """Untagged move as confirmed by the online sync layer."""
    from_key: str = Field(alias="from")
    to_key: str = Field(alias="to")
    jump_path: Optional[List[str]] = Field(None, alias="jumpPath")

    class Config:
        populate_by_name = True
        frozen = True


class OnlineTurn(BaseModel):
    """One confirmed turn: one step/swap, or the hops of a chain jump."""
    player_index: int = Field(alias="playerIndex")
    moves: List[OnlineMove]

    class Config:
        populate_by_name = True


class TrainingConfig(BaseModel):
    """Hyper-parameters of an evolutionary training run."""
    population_size: int = Field(20, alias="populationSize", ge=2)
    generations: int = Field(30, ge=1)
    games_per_matchup: int = Field(2, alias="gamesPerMatchup", ge=1)
    mutation_rate: float = Field(0.15, alias="mutationRate", ge=0.0, le=1.0)
    mutation_strength: float = Field(0.3, alias="mutationStrength", ge=0.0)
    elite_count: int = Field(2, alias="eliteCount", ge=0)
    tournament_size: int = Field(3, alias="tournamentSize", ge=1)
    max_moves_per_game: int = Field(500, alias="maxMovesPerGame", ge=1)
    search_depth: int = Field(2, alias="searchDepth", ge=1)
    move_limit: int = Field(12, alias="moveLimit", ge=1)

    class Config:
        populate_by_name = True


class OnlinePlayerSlot(BaseModel):
    """Seat in an online lobby; seats map onto active players in order."""
    slot: int
    type: str = "human"
    username: Optional[str] = None
    color: Optional[str] = None
    ai_config: Optional[AIConfig] = Field(None, alias="aiConfig")

    class Config:
        populate_by_name = True


class OnlineGame(BaseModel):
    """Server-side view of an online game: seats plus confirmed turns."""
    id: str = Field("", alias="_id")
    player_count: int = Field(alias="playerCount")
    board_type: str = Field("standard", alias="boardType")
    custom_layout: Optional[BoardLayout] = Field(None, alias="customLayout")
    players: List[OnlinePlayerSlot] = Field(default_factory=list)
    turns: List[OnlineTurn] = Field(default_factory=list)

    class Config:
        populate_by_name = True
