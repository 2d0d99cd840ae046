from dataclasses import dataclass, field
from typing import Optional, Sequence

from wallgo.schemas import (
    DEFAULT_NUM_PLAYERS,
    DEFAULT_PIECES_PER_PLAYER,
    Phase,
    Position,
)


@dataclass
class TurnState:
    """
    手番とフェーズの状態機械。
    Setup -> Main only. In Main a turn is Move (wall_pending becomes True)
    then Wall (turn passes to the next player).
    """
    num_players: int = DEFAULT_NUM_PLAYERS
    pieces_per_player: int = DEFAULT_PIECES_PER_PLAYER
    current_player: int = 0
    phase: Phase = "Setup"
    move_path: list[Position] = field(default_factory=list)
    wall_pending: bool = False
    winner: Optional[int] = None
    # pieces each player still has to place during Setup
    setup_tokens: list[int] = field(default_factory=list)
    setup_direction: int = 1

    def restart(self) -> None:
        """Back to Setup with no pending move and no winner (board resize)."""
        self.phase = "Setup"
        self.move_path = []
        self.wall_pending = False
        self.winner = None
        self.setup_direction = 1

    def start_main(self) -> None:
        self.phase = "Main"

    def rotate(self) -> None:
        self.current_player = (self.current_player + 1) % self.num_players

    def can_move(self) -> bool:
        return self.winner is None and self.phase == "Main" and not self.wall_pending

    def can_wall(self) -> bool:
        return self.winner is None and self.wall_pending

    def begin_wall(self, path: Sequence[Position]) -> None:
        self.move_path = list(path)
        self.wall_pending = True

    def end_turn(self) -> None:
        self.move_path = []
        self.wall_pending = False
        self.rotate()

    def recount_tokens(self, placed: dict[int, int]) -> None:
        self.setup_tokens = [
            max(0, self.pieces_per_player - placed.get(p, 0)) for p in range(self.num_players)
        ]

    def has_setup_token(self) -> bool:
        p = self.current_player
        return 0 <= p < len(self.setup_tokens) and self.setup_tokens[p] > 0

    def advance_setup(self) -> bool:
        """
        配置順を蛇行 (0,1,..,n-1,n-1,..,0,0,1,..) で進める。
        Players without tokens are skipped. When nobody has tokens left the
        phase switches to Main and True is returned.
        """
        nxt = self.current_player
        direction = self.setup_direction
        # two sweeps cover every player whatever the starting point
        for _ in range(2 * self.num_players):
            nxt += direction
            if nxt < 0:
                nxt, direction = 0, 1
            if nxt >= self.num_players:
                nxt, direction = self.num_players - 1, -1
            if self.setup_tokens[nxt] > 0:
                self.current_player = nxt
                self.setup_direction = direction
                return False
        self.current_player = 0 if self.setup_direction == 1 else self.num_players - 1
        self.start_main()
        return True
