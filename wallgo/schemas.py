from typing import Dict, List, Literal, Optional, Tuple
from pydantic import BaseModel, Field

DEFAULT_BOARD_SIZE = 7
DEFAULT_NUM_PLAYERS = 2
DEFAULT_PIECES_PER_PLAYER = 2

MIN_BOARD_SIZE = 2
MAX_BOARD_SIZE = 15
MAX_PLAYERS = 4

# a piece moves at most this many orthogonal steps per turn
MAX_STEPS = 2

Orientation = Literal["h", "v"]
Phase = Literal["Setup", "Main"]

Cells = List[List[Optional[int]]]
WallTriple = Tuple[int, int, int]
Coord = Tuple[int, int]


class GameInputError(ValueError):
    """Malformed input from the host (wrong-shaped board, bad coordinates).

    Raised before any mutation. Rule violations never raise; they leave the
    session untouched and report ``accepted=False`` in the snapshot.
    """


def _is_int(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


class Position(BaseModel, frozen=True):

    row: int
    col: int

    def __hash__(self):
        return hash((self.row, self.col))

    def __eq__(self, other):
        if isinstance(other, Position):
            return self.row == other.row and self.col == other.col
        return False

    @staticmethod
    def new(p1: 'int|tuple[int,int]|list[int]|Position', p2: int | None = None) -> 'Position':
        if isinstance(p1, Position):
            return Position(row=p1.row, col=p1.col)
        elif isinstance(p1, (tuple, list)) and len(p1) == 2 and _is_int(p1[0]) and _is_int(p1[1]):
            return Position(row=p1[0], col=p1[1])
        elif _is_int(p1) and _is_int(p2):
            return Position(row=p1, col=p2)
        else:
            raise TypeError(f"invalid parameters to Position.new {p1}, {p2}")

    def in_bounds(self, size: int) -> bool:
        return 0 <= self.row < size and 0 <= self.col < size

    def neighbors(self):
        """Orthogonal neighbours (up, down, left, right); may be out of bounds."""
        for dr, dc in ((-1, 0), (1, 0), (0, -1), (0, 1)):
            yield Position(row=self.row + dr, col=self.col + dc)

    def as_tuple(self) -> Coord:
        return (self.row, self.col)


class GameStateSnapshot(BaseModel):
    """Full externally visible state of one game."""
    board: Cells
    board_size: int
    current_player: int
    winner: Optional[int] = None
    walls_h: List[WallTriple] = []
    walls_v: List[WallTriple] = []
    phase: Phase = "Setup"
    move_path: List[Coord] = []
    wall_pending: bool = False
    num_players: int
    pieces_per_player: int
    setup_tokens: List[int] = []
    # False when the command that produced this snapshot was rejected by the rules
    accepted: bool = True


class GameCreateRequest(BaseModel):
    board_size: int = Field(DEFAULT_BOARD_SIZE, ge=MIN_BOARD_SIZE, le=MAX_BOARD_SIZE)
    num_players: int = Field(DEFAULT_NUM_PLAYERS, ge=1, le=MAX_PLAYERS)
    pieces_per_player: int = Field(DEFAULT_PIECES_PER_PLAYER, ge=0)


class GameCreateResponse(BaseModel):
    game_id: str
    state: GameStateSnapshot


class ConfigureRequest(BaseModel):
    board: Cells
    current_player: int = Field(0, ge=0)
    num_players: int = Field(DEFAULT_NUM_PLAYERS, ge=1, le=MAX_PLAYERS)
    pieces_per_player: int = Field(DEFAULT_PIECES_PER_PLAYER, ge=0)
    board_size: int = Field(DEFAULT_BOARD_SIZE, ge=MIN_BOARD_SIZE, le=MAX_BOARD_SIZE)


class SetBoardRequest(BaseModel):
    board: Cells


class MoveRequest(BaseModel):
    path: List[Coord]


class WallRequest(BaseModel):
    orientation: Orientation
    row: int
    col: int


class PlacePieceRequest(BaseModel):
    row: int
    col: int


class FlagResponse(BaseModel):
    result: bool


class MovesResponse(BaseModel):
    moves: List[Coord] = []


class ScoresResponse(BaseModel):
    scores: Dict[int, int] = {}
