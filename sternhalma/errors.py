"""
Sternhalma Error Hierarchy

Unified exception hierarchy for the rules engine, AI and trainer.
All custom exceptions inherit from SternhalmaError for easy catching and filtering.

Usage:
    from sternhalma.errors import InvalidMoveError

    try:
        state = apply_move(state, move)
    except InvalidMoveError as e:
        logger.error(f"Rejected move: {e.message}")
"""

from typing import Any

__all__ = [
    # AI errors
    "AIError",
    "AIWorkerError",
    "CheckpointError",
    "ConfigurationError",
    "InvalidMoveError",
    "InvalidStateError",
    # Game rules errors
    "RulesViolationError",
    # Base error
    "SternhalmaError",
    # Training errors
    "TrainingError",
]


class SternhalmaError(Exception):
    """Base exception for all Sternhalma errors.

    Attributes:
        code: Machine-readable error code for categorization
        message: Human-readable error description
        context: Additional context for debugging
    """
    code: str = "STERNHALMA_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Game Rules Errors
# =============================================================================


class RulesViolationError(SternhalmaError):
    """A submitted move is not in the legal move set for the position."""
    code: str = "RULES_VIOLATION"


class InvalidMoveError(SternhalmaError):
    """A move references an empty origin cell or a cell that is not on the board.

    Callers must only submit moves produced by the move generator, so this
    is a contract violation and is never recovered internally.
    """
    code: str = "INVALID_MOVE"


class InvalidStateError(SternhalmaError):
    """Serialized state or board layout is corrupt or inconsistent."""
    code: str = "INVALID_STATE"


# =============================================================================
# AI Errors
# =============================================================================


class AIError(SternhalmaError):
    """Base class for AI-related errors."""
    code: str = "AI_ERROR"


class AIWorkerError(AIError):
    """The background search worker failed to produce a move."""
    code: str = "AI_WORKER_ERROR"


# =============================================================================
# Training Errors
# =============================================================================


class TrainingError(SternhalmaError):
    """Base class for evolutionary training errors."""
    code: str = "TRAINING_ERROR"


class CheckpointError(TrainingError):
    """Checkpoint could not be written or read back."""
    code: str = "CHECKPOINT_ERROR"


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(SternhalmaError):
    """Invalid environment value or training configuration."""
    code: str = "CONFIGURATION_ERROR"
