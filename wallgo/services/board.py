from collections import Counter
from typing import Optional

from wallgo.schemas import Cells, GameInputError, Orientation, Position, WallTriple, _is_int


def check_cells(values, num_players: int) -> tuple[int, int]:
    """
    ホストから受け取った盤面の形を検証し、(行数, 列数) を返す。
    Rows must be lists of equal length and every cell None or a player id in
    [0, num_players). A rectangular grid of the wrong size is not an error;
    the caller decides whether to adopt it.
    """
    if not isinstance(values, list) or not all(isinstance(row, list) for row in values):
        raise GameInputError("board must be a 2D list")
    H = len(values)
    W = len(values[0]) if H > 0 else 0
    if any(len(row) != W for row in values):
        raise GameInputError("All rows in board must have the same length")
    for r, row in enumerate(values):
        for c, cell in enumerate(row):
            if cell is None:
                continue
            if not _is_int(cell) or not (0 <= cell < num_players):
                raise GameInputError(f"invalid owner {cell!r} at ({r},{c})")
    return H, W


class Board:
    """
    Wall Go の盤面。各セルは所有プレイヤー (None は空き) を持ち、
    壁は横 (h) と縦 (v) の2つのリストに (row, col, owner) で保持する。

    A horizontal wall at (r,c) cuts the edge between (r,c) and (r+1,c);
    a vertical wall at (r,c) cuts the edge between (r,c) and (r,c+1).
    """
    def __init__(self, size: int):
        self.__cells: Cells = [[None for _ in range(size)] for __ in range(size)]
        self.__size = size
        self.walls_h: list[WallTriple] = []
        self.walls_v: list[WallTriple] = []

    @property
    def size(self) -> int:
        return self.__size

    def set_cells(self, values: Cells) -> None:
        if len(values) != self.__size or any(len(row) != self.__size for row in values):
            raise ValueError(f"board must be {self.__size}x{self.__size}")
        self.__cells = [row[:] for row in values]

    def copy_as_list(self) -> Cells:
        return [row[:] for row in self.__cells]

    def __getitem__(self, pos: Position) -> Optional[int]:
        if not isinstance(pos, Position):
            raise TypeError(f"Board indices must be Position, not {type(pos).__name__}")
        if not pos.in_bounds(self.__size):
            raise IndexError("Coordinates out of bounds")
        return self.__cells[pos.row][pos.col]

    def __setitem__(self, pos: Position, value: Optional[int]):
        if not isinstance(pos, Position):
            raise TypeError(f"pos must be Position, not {type(pos).__name__}")
        if not pos.in_bounds(self.__size):
            raise IndexError("Coordinates out of bounds")
        self.__cells[pos.row][pos.col] = value

    def count_pieces(self) -> Counter:
        return Counter(cell for row in self.__cells for cell in row if cell is not None)

    def pieces_of(self, player: int) -> list[Position]:
        return [
            Position(row=r, col=c)
            for r, row in enumerate(self.__cells)
            for c, cell in enumerate(row)
            if cell == player
        ]

    # --- walls ---

    def wall_exists(self, orientation: Orientation, row: int, col: int) -> bool:
        if orientation == "h":
            walls = self.walls_h
        elif orientation == "v":
            walls = self.walls_v
        else:
            return False
        return any(r == row and c == col for r, c, _ in walls)

    def add_wall(self, orientation: Orientation, row: int, col: int, owner: int) -> None:
        if orientation == "h":
            self.walls_h.append((row, col, owner))
        elif orientation == "v":
            self.walls_v.append((row, col, owner))
        else:
            raise ValueError(f"unknown wall orientation {orientation!r}")

    def is_blocked(self, a: Position, b: Position) -> bool:
        """True if no step is possible between a and b (wall or not orthogonally adjacent)."""
        if a.row == b.row and abs(a.col - b.col) == 1:
            return self.wall_exists("v", a.row, min(a.col, b.col))
        if a.col == b.col and abs(a.row - b.row) == 1:
            return self.wall_exists("h", min(a.row, b.row), a.col)
        return True

    def neighbors(self, pos: Position) -> list[Position]:
        return [p for p in pos.neighbors() if p.in_bounds(self.__size)]

    def open_neighbors(self, pos: Position) -> list[Position]:
        """In-bounds neighbours reachable from pos without crossing a wall."""
        return [p for p in self.neighbors(pos) if not self.is_blocked(pos, p)]

    def render(self) -> str:
        """
        キャラクタベースで盤面を文字列化する。
        Digits are owners, '.' is empty, '|' a vertical wall and '-' a
        horizontal wall below the cell.
        """
        n = self.__size
        lines = ["    " + " ".join(f"{c % 10}" for c in range(n))]
        for r in range(n):
            chars = []
            for c in range(n):
                cell = self.__cells[r][c]
                chars.append("." if cell is None else f"{cell}")
                if c < n - 1:
                    chars.append("|" if self.wall_exists("v", r, c) else " ")
            lines.append(f"{r:2d}: " + "".join(chars))
            if r < n - 1:
                lines.append("    " + " ".join("-" if self.wall_exists("h", r, c) else " " for c in range(n)))
        return "\n".join(lines)
