from collections import deque
from typing import Iterator

from wallgo.schemas import Position
from wallgo.services.board import Board


def regions(board: Board) -> Iterator[tuple[list[Position], set[int]]]:
    """
    壁で区切られた連結領域を順に返す。
    Yields (cells, owners) for every region of the wall-pruned grid graph,
    where owners is the set of distinct players with a piece in the region.
    """
    n = board.size
    visited = [[False for _ in range(n)] for __ in range(n)]
    for r in range(n):
        for c in range(n):
            if visited[r][c]:
                continue
            visited[r][c] = True
            q = deque([Position(row=r, col=c)])
            cells: list[Position] = []
            owners: set[int] = set()
            while q:
                cp = q.popleft()
                cells.append(cp)
                owner = board[cp]
                if owner is not None:
                    owners.add(owner)
                for np in board.open_neighbors(cp):
                    if visited[np.row][np.col]:
                        continue
                    visited[np.row][np.col] = True
                    q.append(np)
            yield cells, owners


def is_isolated(board: Board) -> bool:
    """True when no region holds pieces of more than one player."""
    return all(len(owners) <= 1 for _, owners in regions(board))


def region_scores(board: Board, num_players: int) -> dict[int, int]:
    """
    Cell count of every single-owner region, credited to that owner.
    Regions that are empty or shared score for nobody.
    """
    scores = {p: 0 for p in range(num_players)}
    for cells, owners in regions(board):
        if len(owners) != 1:
            continue
        (owner,) = owners
        scores[owner] = scores.get(owner, 0) + len(cells)
    return scores
