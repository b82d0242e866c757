"""Body-shaped piece extraction and a variable-size falling block game core."""

from .board import Board
from .config import Difficulty, GameConfig, ScoreWeights, SearchConfig, game_config_for
from .errors import (
    DuplicateShape,
    ExtractionEmpty,
    HumanNotDetected,
    HumanTetrisError,
    InvalidSpawnPosition,
    PieceRequestTimeout,
    PieceValidationError,
    SegmentationFailed,
    TooFewCells,
    TooManyCells,
)
from .expression import FacialExpression
from .extractor import CandidateShape, ShapeExtractor
from .game_core import GameCore, GamePhase, GameSnapshot
from .game_state import GameState
from .grid import CaptureState, Grid
from .history import ShapeHistoryManager, ValidationResult
from .perf import LatencyStat, LatencyTracker
from .piece_queue import PieceQueue
from .polyomino import STANDARD_PIECES, AspectType, ConvexityType, Polyomino
from .provider import (
    ExtractorPieceProvider,
    GridCapture,
    GridSource,
    PieceProvider,
    StandardPieceProvider,
)
from .scoring import calculate_score
from .target_spec import TargetSpec
from .tension import TensionLevel, TensionReading
from .utils import drop_interval, render_grid

__all__ = [
    "AspectType",
    "Board",
    "CandidateShape",
    "CaptureState",
    "ConvexityType",
    "Difficulty",
    "DuplicateShape",
    "ExtractionEmpty",
    "ExtractorPieceProvider",
    "FacialExpression",
    "GameConfig",
    "GameCore",
    "GamePhase",
    "GameSnapshot",
    "GameState",
    "Grid",
    "GridCapture",
    "GridSource",
    "HumanNotDetected",
    "HumanTetrisError",
    "InvalidSpawnPosition",
    "LatencyStat",
    "LatencyTracker",
    "PieceProvider",
    "PieceQueue",
    "PieceRequestTimeout",
    "PieceValidationError",
    "Polyomino",
    "STANDARD_PIECES",
    "ScoreWeights",
    "SearchConfig",
    "SegmentationFailed",
    "ShapeExtractor",
    "ShapeHistoryManager",
    "StandardPieceProvider",
    "TargetSpec",
    "TensionLevel",
    "TensionReading",
    "TooFewCells",
    "TooManyCells",
    "ValidationResult",
    "calculate_score",
    "drop_interval",
    "game_config_for",
    "render_grid",
]
