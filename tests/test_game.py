import threading
import unittest

from wallgo.schemas import GameInputError, GameStateSnapshot
from wallgo.services.board import Board
from wallgo.services.game import GameSession

_ = None


def _changed(before: GameStateSnapshot, after: GameStateSnapshot) -> bool:
    return before.model_dump(exclude={"accepted"}) != after.model_dump(exclude={"accepted"})


class TestScenario(unittest.TestCase):
    """3x3, two players in opposite corners."""

    def setUp(self):
        self.game = GameSession()
        self.game.configure([[0, _, _], [_, _, _], [_, _, 1]], 0, 2, 1, 3)
        self.game.start_main_phase()

    def test_move_then_wall(self):
        st = self.game.move_piece([(0, 0), (0, 1)])
        self.assertTrue(st.accepted)
        self.assertEqual(st.board, [[_, 0, _], [_, _, _], [_, _, 1]])
        self.assertTrue(st.wall_pending)
        self.assertEqual(st.move_path, [(0, 0), (0, 1)])
        self.assertEqual(st.current_player, 0)

        st = self.game.place_wall("v", 0, 1)
        self.assertTrue(st.accepted)
        self.assertEqual(st.walls_v, [(0, 1, 0)])
        self.assertEqual(st.walls_h, [])
        self.assertEqual(st.current_player, 1)
        self.assertFalse(st.wall_pending)
        self.assertEqual(st.move_path, [])
        self.assertIsNone(st.winner)

    def test_wall_not_touching_destination_rejected(self):
        self.game.move_piece([(0, 0), (0, 1)])
        before = self.game.get_state()
        for o, r, c in [("v", 1, 1), ("h", 1, 1), ("h", 1, 0), ("v", 2, 0)]:
            st = self.game.place_wall(o, r, c)
            self.assertFalse(st.accepted, (o, r, c))
            self.assertFalse(_changed(before, st))

    def test_second_move_before_wall_rejected(self):
        self.game.move_piece([(0, 0), (0, 1)])
        before = self.game.get_state()
        st = self.game.move_piece([(0, 1), (0, 2)])
        self.assertFalse(st.accepted)
        self.assertFalse(_changed(before, st))

    def test_wall_without_move_rejected(self):
        st = self.game.place_wall("v", 0, 0)
        self.assertFalse(st.accepted)
        self.assertEqual(st.walls_v, [])
        self.assertEqual(st.current_player, 0)

    def test_wrong_player_piece_rejected(self):
        st = self.game.move_piece([(2, 2), (2, 1)])
        self.assertFalse(st.accepted)
        self.assertEqual(st.board[2][2], 1)

    def test_stay_put_move(self):
        st = self.game.move_piece([(0, 0)])
        self.assertTrue(st.accepted)
        self.assertEqual(st.board[0][0], 0)
        self.assertEqual(st.move_path, [(0, 0)])
        st = self.game.place_wall("h", 0, 0)
        self.assertTrue(st.accepted)
        self.assertEqual(st.walls_h, [(0, 0, 0)])

    def test_three_point_path_recorded_verbatim(self):
        st = self.game.move_piece([(0, 0), (1, 0), (1, 1)])
        self.assertTrue(st.accepted)
        self.assertEqual(st.move_path, [(0, 0), (1, 0), (1, 1)])
        self.assertEqual(st.board[1][1], 0)
        self.assertIsNone(st.board[1][0])

    def test_turn_cycle_invariants(self):
        moves = [
            ([(0, 0), (1, 0)], ("h", 1, 0)),
            ([(2, 2), (2, 1)], ("v", 2, 1)),
            ([(1, 0), (1, 1)], ("v", 1, 1)),
        ]
        for i, (path, wall) in enumerate(moves):
            before = self.game.get_state()
            st = self.game.move_piece(path)
            self.assertTrue(st.accepted, path)
            self.assertTrue(st.wall_pending)
            self.assertTrue(len(st.move_path) > 0)
            st = self.game.place_wall(*wall)
            self.assertTrue(st.accepted, wall)
            self.assertFalse(st.wall_pending)
            self.assertEqual(st.move_path, [])
            self.assertEqual(st.current_player, (before.current_player + 1) % st.num_players)

    def test_isolation_ends_game_and_freezes_board(self):
        # player 0 walls itself into the top row: h walls under (0,0),(0,1),(0,2)
        g = self.game
        g.move_piece([(0, 0)])
        g.place_wall("h", 0, 0)
        g.move_piece([(2, 2)])
        g.place_wall("h", 1, 2)
        g.move_piece([(0, 0), (0, 1)])
        g.place_wall("h", 0, 1)
        g.move_piece([(2, 2), (2, 1)])
        st = g.place_wall("v", 2, 0)
        self.assertIsNone(st.winner)
        g.move_piece([(0, 1), (0, 2)])
        st = g.place_wall("h", 0, 2)
        self.assertTrue(st.accepted)
        # top row (3 cells) vs the remaining 6 cells
        self.assertEqual(g.region_scores(), {0: 3, 1: 6})
        self.assertEqual(st.winner, 1)

        frozen = g.get_state()
        self.assertFalse(g.move_piece([(2, 1), (1, 1)]).accepted)
        self.assertFalse(g.place_wall("v", 1, 1).accepted)
        self.assertFalse(_changed(frozen, g.get_state()))
        # queries still answer
        self.assertTrue(g.can_place_adjacent_wall(1, 1))

    def test_move_into_isolated_position_ends_game(self):
        # the top row is already walled off; the first move settles the game
        g = GameSession(board_size=3)
        g.configure([[0, _, _], [_, _, _], [_, _, 1]], 0, 2, 1, 3)
        for c in range(3):
            g.board.add_wall("h", 0, c, 1)
        g.start_main_phase()
        st = g.move_piece([(0, 0), (0, 1)])
        self.assertTrue(st.accepted)
        self.assertEqual(st.winner, 1)
        self.assertTrue(st.wall_pending)
        self.assertEqual(st.move_path, [(0, 0), (0, 1)])

        frozen = g.get_state()
        st = g.place_wall("v", 0, 1)
        self.assertFalse(st.accepted)
        self.assertTrue(st.wall_pending)
        self.assertEqual(st.move_path, [(0, 0), (0, 1)])
        self.assertFalse(g.move_piece([(0, 1), (0, 2)]).accepted)
        self.assertFalse(_changed(frozen, g.get_state()))

    def test_move_in_setup_phase_rejected(self):
        g = GameSession()
        g.configure([[0, _, _], [_, _, _], [_, _, 1]], 0, 2, 1, 3)
        st = g.move_piece([(0, 0), (0, 1)])
        self.assertFalse(st.accepted)
        self.assertEqual(st.phase, "Setup")


class TestConfigure(unittest.TestCase):

    def test_defaults(self):
        st = GameSession().get_state()
        self.assertEqual(st.board_size, 7)
        self.assertEqual(st.num_players, 2)
        self.assertEqual(st.pieces_per_player, 2)
        self.assertEqual(st.phase, "Setup")
        self.assertEqual(st.board, [[None] * 7 for _ in range(7)])
        self.assertEqual(st.setup_tokens, [2, 2])

    def test_matching_board_preserved(self):
        g = GameSession(board_size=4)
        board = [[_, 1, _, _], [_, _, _, _], [0, _, _, _], [_, _, _, 1]]
        st = g.configure(board, 1, 2, 2, 4)
        self.assertEqual(st.board, board)
        self.assertEqual(st.current_player, 1)
        self.assertEqual(st.setup_tokens, [1, 0])

    def test_mismatched_board_ignored(self):
        g = GameSession(board_size=3)
        g.configure([[0, _, _], [_, _, _], [_, _, 1]], 0, 2, 1, 3)
        st = g.configure([[0, _], [_, 1]], 1, 2, 1, 3)
        self.assertEqual(st.board, [[0, _, _], [_, _, _], [_, _, 1]])
        self.assertEqual(st.current_player, 1)

        st = g.set_board([[_, _, _, _]] * 4)
        self.assertFalse(st.accepted)
        self.assertEqual(st.board, [[0, _, _], [_, _, _], [_, _, 1]])

    def test_size_change_resets(self):
        g = GameSession()
        g.configure([[0, _, _], [_, _, _], [_, _, 1]], 0, 2, 1, 3)
        g.start_main_phase()
        g.move_piece([(0, 0), (0, 1)])
        st = g.configure([[None] * 5 for _ in range(5)], 0, 2, 2, 5)
        self.assertEqual(st.board_size, 5)
        self.assertEqual(st.phase, "Setup")
        self.assertFalse(st.wall_pending)
        self.assertEqual(st.move_path, [])
        self.assertEqual(st.walls_h, [])
        self.assertEqual(st.walls_v, [])
        self.assertIsNone(st.winner)

    def test_size_change_can_adopt_new_board(self):
        g = GameSession()
        st = g.configure([[0, _], [_, 1]], 1, 2, 1, 2)
        self.assertEqual(st.board, [[0, _], [_, 1]])

    def test_set_board(self):
        g = GameSession(board_size=2)
        st = g.set_board([[_, 0], [1, _]])
        self.assertTrue(st.accepted)
        self.assertEqual(st.board, [[_, 0], [1, _]])

    def test_malformed_input_raises_without_mutation(self):
        g = GameSession(board_size=3)
        before = g.get_state()
        with self.assertRaises(GameInputError):
            g.configure([[0, _, _], [_, _]], 0, 2, 1, 3)
        with self.assertRaises(GameInputError):
            g.configure([[_] * 3] * 3, 2, 2, 1, 3)
        with self.assertRaises(GameInputError):
            g.configure([[_] * 3] * 3, 0, 2, 1, 1)
        with self.assertRaises(GameInputError):
            g.set_board([[_, _, 5], [_, _, _], [_, _, _]])
        with self.assertRaises(GameInputError):
            g.set_board("not a board")
        g.start_main_phase()
        before = g.get_state()
        with self.assertRaises(GameInputError):
            g.move_piece([(0, 0), "x"])
        with self.assertRaises(GameInputError):
            g.move_piece([(0, 0), (0, 3)])
        with self.assertRaises(GameInputError):
            g.move_piece("0,0")
        with self.assertRaises(GameInputError):
            g.has_valid_moves(5, 5)
        with self.assertRaises(GameInputError):
            g.place_wall("h", "0", 0)
        self.assertFalse(_changed(before, g.get_state()))

    def test_kept_board_must_fit_player_count(self):
        g = GameSession(board_size=3, num_players=3, pieces_per_player=1)
        g.configure([[0, _, _], [_, 1, _], [_, _, 2]], 0, 3, 1, 3)
        before = g.get_state()
        # board not adopted, but the kept one still has a piece of player 2
        with self.assertRaises(GameInputError):
            g.configure([[0, _], [_, 1]], 0, 2, 1, 3)
        self.assertFalse(_changed(before, g.get_state()))
        self.assertEqual(g.get_state().num_players, 3)

        g.set_board([[0, _, _], [_, 1, _], [_, _, _]])
        st = g.configure([[0, _], [_, 1]], 0, 2, 1, 3)
        self.assertEqual(st.num_players, 2)
        self.assertEqual(st.board, [[0, _, _], [_, 1, _], [_, _, _]])

    def test_reset_restores_defaults(self):
        g = GameSession(board_size=3, num_players=3, pieces_per_player=1)
        g.configure([[0, _, _], [_, 1, _], [_, _, 2]], 2, 3, 1, 3)
        g.start_main_phase()
        st = g.reset()
        self.assertEqual(st.model_dump(), GameSession().get_state().model_dump())


class TestTurnControl(unittest.TestCase):

    def test_next_player_is_unconditional(self):
        g = GameSession()
        g.configure([[0, _, _], [_, _, _], [_, _, 1]], 0, 2, 1, 3)
        g.start_main_phase()
        g.move_piece([(0, 0), (0, 1)])
        st = g.next_player()
        self.assertTrue(st.accepted)
        self.assertEqual(st.current_player, 1)
        # the pending wall is still owed, now by player 1
        self.assertTrue(st.wall_pending)
        st = g.place_wall("v", 0, 1)
        self.assertEqual(st.walls_v, [(0, 1, 1)])
        self.assertEqual(st.current_player, 0)

    def test_next_player_wraps(self):
        g = GameSession(num_players=3)
        self.assertEqual([g.next_player().current_player for _ in range(4)], [1, 2, 0, 1])

    def test_selectable_pieces(self):
        g = GameSession()
        g.configure([[0, _, 0], [_, _, _], [_, _, 1]], 0, 2, 2, 3)
        # box in (0,2)
        g.board.add_wall("v", 0, 1, 1)
        g.board.add_wall("h", 0, 2, 1)
        self.assertEqual(g.selectable_pieces(), [(0, 0)])
        self.assertFalse(g.has_valid_moves(0, 2))
        self.assertTrue(g.has_valid_moves(0, 0))
        self.assertFalse(g.has_valid_moves(2, 2))
        self.assertEqual(g.valid_moves_for_piece(2, 2), [])

    def test_valid_moves_query(self):
        g = GameSession()
        g.configure([[0, _, _], [_, 1, _], [_, _, _]], 0, 2, 1, 3)
        self.assertEqual(g.valid_moves_for_piece(0, 0), [(0, 0), (0, 1), (0, 2), (1, 0), (2, 0)])


class TestSetupPlacement(unittest.TestCase):

    def test_serpentine_order_then_main(self):
        g = GameSession(board_size=4, num_players=2, pieces_per_player=2)
        order = []
        cells = [(0, 0), (3, 3), (0, 3), (3, 0)]
        for r, c in cells:
            before = g.get_state()
            st = g.place_setup_piece(r, c)
            self.assertTrue(st.accepted)
            order.append(before.current_player)
        self.assertEqual(order, [0, 1, 1, 0])
        self.assertEqual(st.phase, "Main")
        self.assertEqual(st.setup_tokens, [0, 0])
        self.assertEqual(st.current_player, 1)
        self.assertEqual(st.board[0][0], 0)
        self.assertEqual(st.board[3][3], 1)

    def test_three_players(self):
        g = GameSession(board_size=4, num_players=3, pieces_per_player=2)
        order = []
        for i in range(6):
            order.append(g.get_state().current_player)
            st = g.place_setup_piece(i // 4, i % 4)
        self.assertEqual(order, [0, 1, 2, 2, 1, 0])
        self.assertEqual(st.phase, "Main")
        self.assertEqual(st.current_player, 2)

    def test_rejections(self):
        g = GameSession(board_size=3, num_players=2, pieces_per_player=1)
        g.place_setup_piece(0, 0)
        st = g.place_setup_piece(0, 0)
        self.assertFalse(st.accepted)
        self.assertEqual(st.current_player, 1)
        with self.assertRaises(GameInputError):
            g.place_setup_piece(3, 0)
        g.place_setup_piece(2, 2)
        st = g.place_setup_piece(1, 1)
        self.assertFalse(st.accepted)
        self.assertEqual(st.phase, "Main")


class TestSessionsAreIndependent(unittest.TestCase):

    def test_two_games(self):
        a = GameSession(board_size=3)
        b = GameSession(board_size=3)
        a.configure([[0, _, _], [_, _, _], [_, _, 1]], 0, 2, 1, 3)
        self.assertEqual(b.get_state().board, [[None] * 3 for _ in range(3)])

    def test_concurrent_next_player(self):
        g = GameSession(num_players=2)

        def spin():
            for _ in range(100):
                g.next_player()

        threads = [threading.Thread(target=spin) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(g.get_state().current_player, 0)

    def test_query_waiting_on_resize_checks_new_bounds(self):
        g = GameSession()
        queries = (g.has_valid_moves, g.valid_moves_for_piece, g.can_place_adjacent_wall)
        errors = []

        def query(fn):
            try:
                fn(6, 6)
            except Exception as e:
                errors.append(e)

        with g.lock:
            threads = [threading.Thread(target=query, args=(fn,)) for fn in queries]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=0.05)
                self.assertTrue(t.is_alive())
            # shrink the board while the queries are blocked
            g.board = Board(3)
        for t in threads:
            t.join()
        self.assertEqual(len(errors), 3)
        for e in errors:
            self.assertIsInstance(e, GameInputError)


if __name__ == '__main__':
    unittest.main()
