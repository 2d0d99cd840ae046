from typing import Sequence

from wallgo.schemas import Position
from wallgo.services.board import Board


def wall_in_bounds(size: int, orientation: str, row: int, col: int) -> bool:
    if orientation == "h":
        return 0 <= row < size - 1 and 0 <= col < size
    if orientation == "v":
        return 0 <= row < size and 0 <= col < size - 1
    return False


def wall_touches(orientation: str, row: int, col: int, cell: Position) -> bool:
    """True if the wall anchored at (row, col) lies on one of cell's edges."""
    if orientation == "h":
        return cell.col == col and cell.row in (row, row + 1)
    if orientation == "v":
        return cell.row == row and cell.col in (col, col + 1)
    return False


def is_free_wall(board: Board, orientation: str, row: int, col: int) -> bool:
    return wall_in_bounds(board.size, orientation, row, col) and not board.wall_exists(orientation, row, col)


def is_valid_wall(board: Board, move_path: Sequence[Position], orientation: str, row: int, col: int) -> bool:
    """
    直前の移動先に接する壁だけ置ける。
    The wall must touch the last cell of move_path, be in bounds for its
    orientation and not already be on the board.
    """
    if not move_path:
        return False
    if not wall_touches(orientation, row, col, move_path[-1]):
        return False
    return is_free_wall(board, orientation, row, col)


def can_place_adjacent_wall(board: Board, pos: Position) -> bool:
    """Whether some in-bounds neighbour of pos still has a free wall slot of either orientation."""
    return any(
        is_free_wall(board, "h", p.row, p.col) or is_free_wall(board, "v", p.row, p.col)
        for p in board.neighbors(pos)
    )
