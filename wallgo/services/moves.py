from collections import deque
from typing import Sequence

from wallgo.schemas import MAX_STEPS, Position
from wallgo.services.board import Board


def reachable_within(board: Board, start: Position, end: Position, max_steps: int = MAX_STEPS) -> bool:
    """
    start から end へ max_steps 歩以内で到達できるか (幅優先探索)。

    Steps only cross unblocked orthogonal edges and only enter cells that are
    empty, the destination, or the origin. The origin is never marked
    visited, so a piece may step out and come straight back. At least one
    step is required, so start == end needs an open neighbour.
    """
    visited = {start}
    q = deque([(start, 0)])
    while q:
        pos, dist = q.popleft()
        if pos == end and dist > 0:
            return True
        if dist >= max_steps:
            continue
        for np in board.open_neighbors(pos):
            if board[np] is not None and np != end and np != start:
                continue
            if np != start and np in visited:
                continue
            visited.add(np)
            q.append((np, dist + 1))
    return False


def is_valid_move_path(board: Board, player: int, path: Sequence[Position]) -> bool:
    """
    Check a proposed move for player.

    - [p]: stay put; p must be player's piece with at least one open edge.
    - [start, end] or [start, via, end]: end must be empty (or start) and
      reachable within MAX_STEPS. The middle coordinate is not checked.
    """
    if len(path) == 1:
        p = path[0]
        if board[p] != player:
            return False
        return len(board.open_neighbors(p)) > 0
    if len(path) not in (2, 3):
        return False
    start = path[0]
    end = path[-1]
    if board[start] != player:
        return False
    if board[end] is not None and end != start:
        return False
    return reachable_within(board, start, end)


def valid_moves_for_piece(board: Board, player: int, pos: Position) -> list[Position]:
    """Destinations accepted for the piece at pos, staying put first if allowed."""
    moves: list[Position] = []
    if board[pos] != player:
        return moves
    if is_valid_move_path(board, player, [pos]):
        moves.append(pos)
    for r in range(board.size):
        for c in range(board.size):
            target = Position(row=r, col=c)
            if target != pos and is_valid_move_path(board, player, [pos, target]):
                moves.append(target)
    return moves


def has_valid_moves(board: Board, player: int, pos: Position) -> bool:
    if board[pos] != player:
        return False
    if is_valid_move_path(board, player, [pos]):
        return True
    return any(
        is_valid_move_path(board, player, [pos, Position(row=r, col=c)])
        for r in range(board.size)
        for c in range(board.size)
    )
