import os
import sys
import uuid
from threading import Lock
from typing import Any, Dict, Optional, Sequence

from wallgo.schemas import (
    DEFAULT_BOARD_SIZE,
    DEFAULT_NUM_PLAYERS,
    DEFAULT_PIECES_PER_PLAYER,
    MAX_BOARD_SIZE,
    MAX_PLAYERS,
    MIN_BOARD_SIZE,
    Cells,
    GameCreateRequest,
    GameCreateResponse,
    GameInputError,
    GameStateSnapshot,
    Position,
    _is_int,
)
from wallgo.services.board import Board, check_cells
from wallgo.services.connectivity import is_isolated, region_scores
from wallgo.services.moves import has_valid_moves, is_valid_move_path, valid_moves_for_piece
from wallgo.services.turn import TurnState
from wallgo.services.walls import can_place_adjacent_wall, is_valid_wall
from wallgo.utils.audit import forget_game, game_write

# Debug flag: enable when running tests or when env var WALLGO_DEBUG is set
DEBUG = bool(os.getenv('WALLGO_DEBUG')) or ('unittest' in sys.modules) or ('PYTEST_CURRENT_TEST' in os.environ)

def _dbg(*args, **kwargs):
    if DEBUG:
        print(*args, **kwargs)


def _check_config(board_size: Any, num_players: Any, pieces_per_player: Any, current_player: Any) -> None:
    if not _is_int(board_size) or not (MIN_BOARD_SIZE <= board_size <= MAX_BOARD_SIZE):
        raise GameInputError(f"board_size must be an int in [{MIN_BOARD_SIZE}, {MAX_BOARD_SIZE}]")
    if not _is_int(num_players) or not (1 <= num_players <= MAX_PLAYERS):
        raise GameInputError(f"num_players must be an int in [1, {MAX_PLAYERS}]")
    if not _is_int(pieces_per_player) or pieces_per_player < 0:
        raise GameInputError("pieces_per_player must be a non-negative int")
    if not _is_int(current_player) or not (0 <= current_player < num_players):
        raise GameInputError("current_player must be a player id")


class GameSession:
    """
    1ゲーム分の状態とコマンド。
    Commands return a GameStateSnapshot; a command rejected by the rules
    changes nothing and reports accepted=False. Malformed input raises
    GameInputError before anything is touched. All public methods hold
    self.lock, so one session may be shared between threads.
    """
    def __init__(self,
                 game_id: Optional[str] = None,
                 board_size: int = DEFAULT_BOARD_SIZE,
                 num_players: int = DEFAULT_NUM_PLAYERS,
                 pieces_per_player: int = DEFAULT_PIECES_PER_PLAYER,
               ):
        _check_config(board_size, num_players, pieces_per_player, 0)
        self.game_id = game_id
        self.lock = Lock()
        self.board = Board(board_size)
        self.turn = TurnState(num_players=num_players, pieces_per_player=pieces_per_player)
        self.turn.recount_tokens(self.board.count_pieces())

    # ---------- helpers ----------

    def _pos(self, row: Any, col: Any) -> Position:
        try:
            pos = Position.new(row, col)
        except TypeError as e:
            raise GameInputError(str(e)) from e
        if not pos.in_bounds(self.board.size):
            raise GameInputError(f"({row},{col}) is outside the {self.board.size}x{self.board.size} board")
        return pos

    def _path(self, path: Any) -> list[Position]:
        if not isinstance(path, (list, tuple)):
            raise GameInputError("path must be a list of (row, col) pairs")
        result = []
        for p in path:
            try:
                pos = Position.new(p)
            except TypeError as e:
                raise GameInputError(f"invalid coordinate {p!r} in path") from e
            if not pos.in_bounds(self.board.size):
                raise GameInputError(f"{pos.as_tuple()} is outside the board")
            result.append(pos)
        return result

    def _audit(self, record: Dict[str, Any]) -> None:
        if self.game_id:
            game_write(self.game_id, record)

    def _command(self, name: str, accepted: bool, **details) -> GameStateSnapshot:
        if not accepted:
            _dbg(f"[{self.game_id}] rejected {name} {details}")
        self._audit({"type": "command", "command": name, "accepted": accepted, **details})
        return self._snapshot(accepted)

    def _snapshot(self, accepted: bool = True) -> GameStateSnapshot:
        t = self.turn
        return GameStateSnapshot(
            board=self.board.copy_as_list(),
            board_size=self.board.size,
            current_player=t.current_player,
            winner=t.winner,
            walls_h=list(self.board.walls_h),
            walls_v=list(self.board.walls_v),
            phase=t.phase,
            move_path=[p.as_tuple() for p in t.move_path],
            wall_pending=t.wall_pending,
            num_players=t.num_players,
            pieces_per_player=t.pieces_per_player,
            setup_tokens=list(t.setup_tokens),
            accepted=accepted,
        )

    def _check_isolation(self) -> None:
        if not is_isolated(self.board):
            return
        scores = region_scores(self.board, self.turn.num_players)
        # largest territory wins; ties go to the lower player id
        self.turn.winner = max(range(self.turn.num_players), key=lambda p: (scores.get(p, 0), -p))
        _dbg(f"[{self.game_id}] game over: winner={self.turn.winner} scores={scores}")
        _dbg(self.board.render())
        self._audit({"type": "game_over", "winner": self.turn.winner, "scores": scores})

    # ---------- setup commands ----------

    def configure(self, board: Cells, current_player: int, num_players: int,
                  pieces_per_player: int, board_size: int) -> GameStateSnapshot:
        """
        盤面と設定をまとめて与える。
        A new board_size resets board, walls and turn state back to Setup.
        The given board is adopted only if it is board_size x board_size.
        """
        _check_config(board_size, num_players, pieces_per_player, current_player)
        H, W = check_cells(board, num_players)
        with self.lock:
            adopted = H == board_size and W == board_size
            if not adopted and board_size == self.board.size:
                # the kept board must still name only valid players
                stale = [p for p in self.board.count_pieces() if p >= num_players]
                if stale:
                    raise GameInputError(f"current board holds pieces of players {sorted(stale)}"
                                         f" but num_players is {num_players}")
            if board_size != self.board.size:
                self.board = Board(board_size)
                self.turn.restart()
            if adopted:
                self.board.set_cells(board)
            self.turn.current_player = current_player
            self.turn.num_players = num_players
            self.turn.pieces_per_player = pieces_per_player
            self.turn.setup_direction = 1
            self.turn.recount_tokens(self.board.count_pieces())
            return self._command("configure", True, board_size=board_size, num_players=num_players,
                                 pieces_per_player=pieces_per_player, board_adopted=adopted)

    def set_board(self, board: Cells) -> GameStateSnapshot:
        with self.lock:
            H, W = check_cells(board, self.turn.num_players)
            size = self.board.size
            if H != size or W != size:
                return self._command("set_board", False, rows=H, cols=W)
            self.board.set_cells(board)
            self.turn.recount_tokens(self.board.count_pieces())
            return self._command("set_board", True)

    def place_setup_piece(self, row: int, col: int) -> GameStateSnapshot:
        """Place one of the current player's remaining pieces during Setup."""
        with self.lock:
            pos = self._pos(row, col)
            t = self.turn
            if t.phase != "Setup" or self.board[pos] is not None or not t.has_setup_token():
                return self._command("place_setup_piece", False, row=row, col=col)
            player = t.current_player
            self.board[pos] = player
            t.setup_tokens[player] -= 1
            finished = t.advance_setup()
            return self._command("place_setup_piece", True, row=row, col=col, player=player,
                                 setup_finished=finished)

    def start_main_phase(self) -> GameStateSnapshot:
        with self.lock:
            self.turn.start_main()
            return self._command("start_main_phase", True)

    # ---------- turn commands ----------

    def move_piece(self, path: Sequence[Any]) -> GameStateSnapshot:
        with self.lock:
            positions = self._path(path)
            t = self.turn
            if not t.can_move() or not is_valid_move_path(self.board, t.current_player, positions):
                return self._command("move_piece", False, path=[p.as_tuple() for p in positions])
            start = positions[0]
            end = positions[-1]
            if start != end:
                self.board[start] = None
                self.board[end] = t.current_player
            t.begin_wall(positions)
            self._check_isolation()
            return self._command("move_piece", True, player=t.current_player,
                                 path=[p.as_tuple() for p in positions])

    def place_wall(self, orientation: str, row: int, col: int) -> GameStateSnapshot:
        if not isinstance(orientation, str):
            raise GameInputError("wall orientation must be 'h' or 'v'")
        if not _is_int(row) or not _is_int(col):
            raise GameInputError("wall row/col must be ints")
        with self.lock:
            t = self.turn
            if not t.can_wall() or not is_valid_wall(self.board, t.move_path, orientation, row, col):
                return self._command("place_wall", False, orientation=orientation, row=row, col=col)
            player = t.current_player
            self.board.add_wall(orientation, row, col, player)
            t.end_turn()
            self._check_isolation()
            return self._command("place_wall", True, orientation=orientation, row=row, col=col, player=player)

    def next_player(self) -> GameStateSnapshot:
        """Pass the turn on regardless of wall_pending (hosts use it to skip a stuck player)."""
        with self.lock:
            self.turn.rotate()
            return self._command("next_player", True, current_player=self.turn.current_player)

    def reset(self) -> GameStateSnapshot:
        with self.lock:
            self.board = Board(DEFAULT_BOARD_SIZE)
            self.turn = TurnState()
            self.turn.recount_tokens(self.board.count_pieces())
            return self._command("reset", True)

    # ---------- queries ----------

    def get_state(self) -> GameStateSnapshot:
        with self.lock:
            return self._snapshot()

    def has_valid_moves(self, row: int, col: int) -> bool:
        with self.lock:
            pos = self._pos(row, col)
            return has_valid_moves(self.board, self.turn.current_player, pos)

    def valid_moves_for_piece(self, row: int, col: int) -> list[tuple[int, int]]:
        with self.lock:
            pos = self._pos(row, col)
            return [p.as_tuple() for p in valid_moves_for_piece(self.board, self.turn.current_player, pos)]

    def can_place_adjacent_wall(self, row: int, col: int) -> bool:
        with self.lock:
            pos = self._pos(row, col)
            return can_place_adjacent_wall(self.board, pos)

    def selectable_pieces(self) -> list[tuple[int, int]]:
        """Current player's pieces that have at least one legal move."""
        with self.lock:
            player = self.turn.current_player
            return [
                p.as_tuple()
                for p in self.board.pieces_of(player)
                if has_valid_moves(self.board, player, p)
            ]

    def region_scores(self) -> dict[int, int]:
        with self.lock:
            return region_scores(self.board, self.turn.num_players)


class GameStore:
    def __init__(self) -> None:
        self._games: Dict[str, GameSession] = {}
        self._lock = Lock()

    def create(self, req: GameCreateRequest) -> GameCreateResponse:
        gid = str(uuid.uuid4())
        game = GameSession(
            game_id=gid,
            board_size=req.board_size,
            num_players=req.num_players,
            pieces_per_player=req.pieces_per_player,
        )
        with self._lock:
            self._games[gid] = game
        game_write(gid, {
            "type": "game_start",
            "board_size": req.board_size,
            "num_players": req.num_players,
            "pieces_per_player": req.pieces_per_player,
        })
        return GameCreateResponse(game_id=gid, state=game.get_state())

    def get(self, game_id: str) -> GameSession:
        with self._lock:
            return self._games[game_id]

    def delete(self, game_id: str) -> None:
        with self._lock:
            del self._games[game_id]
        game_write(game_id, {"type": "game_end"})
        forget_game(game_id)


store = GameStore()
