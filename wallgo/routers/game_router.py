from contextlib import contextmanager

from fastapi import APIRouter, HTTPException

from wallgo.schemas import (
    ConfigureRequest,
    FlagResponse,
    GameCreateRequest,
    GameCreateResponse,
    GameInputError,
    GameStateSnapshot,
    MoveRequest,
    MovesResponse,
    PlacePieceRequest,
    ScoresResponse,
    SetBoardRequest,
    WallRequest,
)
from wallgo.services.game import GameSession, store


router = APIRouter()


def _game(game_id: str) -> GameSession:
    try:
        return store.get(game_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="game not found")


@contextmanager
def _bad_input():
    try:
        yield
    except GameInputError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/", response_model=GameCreateResponse)
def create_game(req: GameCreateRequest) -> GameCreateResponse:
    return store.create(req)


@router.get("/{game_id}", response_model=GameStateSnapshot)
def get_state(game_id: str) -> GameStateSnapshot:
    return _game(game_id).get_state()


@router.delete("/{game_id}")
def delete_game(game_id: str):
    try:
        store.delete(game_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="game not found")
    return {"status": "deleted"}


@router.post("/{game_id}/configure", response_model=GameStateSnapshot)
def configure(game_id: str, req: ConfigureRequest) -> GameStateSnapshot:
    game = _game(game_id)
    with _bad_input():
        return game.configure(req.board, req.current_player, req.num_players,
                              req.pieces_per_player, req.board_size)


@router.post("/{game_id}/board", response_model=GameStateSnapshot)
def set_board(game_id: str, req: SetBoardRequest) -> GameStateSnapshot:
    game = _game(game_id)
    with _bad_input():
        return game.set_board(req.board)


@router.post("/{game_id}/setup/place", response_model=GameStateSnapshot)
def place_setup_piece(game_id: str, req: PlacePieceRequest) -> GameStateSnapshot:
    game = _game(game_id)
    with _bad_input():
        return game.place_setup_piece(req.row, req.col)


@router.post("/{game_id}/start", response_model=GameStateSnapshot)
def start_main_phase(game_id: str) -> GameStateSnapshot:
    return _game(game_id).start_main_phase()


@router.post("/{game_id}/move", response_model=GameStateSnapshot)
def move_piece(game_id: str, req: MoveRequest) -> GameStateSnapshot:
    game = _game(game_id)
    with _bad_input():
        return game.move_piece(req.path)


@router.post("/{game_id}/wall", response_model=GameStateSnapshot)
def place_wall(game_id: str, req: WallRequest) -> GameStateSnapshot:
    game = _game(game_id)
    with _bad_input():
        return game.place_wall(req.orientation, req.row, req.col)


@router.post("/{game_id}/next-player", response_model=GameStateSnapshot)
def next_player(game_id: str) -> GameStateSnapshot:
    return _game(game_id).next_player()


@router.post("/{game_id}/reset", response_model=GameStateSnapshot)
def reset(game_id: str) -> GameStateSnapshot:
    return _game(game_id).reset()


@router.get("/{game_id}/pieces/{row}/{col}/has-moves", response_model=FlagResponse)
def has_valid_moves(game_id: str, row: int, col: int) -> FlagResponse:
    game = _game(game_id)
    with _bad_input():
        return FlagResponse(result=game.has_valid_moves(row, col))


@router.get("/{game_id}/pieces/{row}/{col}/moves", response_model=MovesResponse)
def valid_moves_for_piece(game_id: str, row: int, col: int) -> MovesResponse:
    game = _game(game_id)
    with _bad_input():
        return MovesResponse(moves=game.valid_moves_for_piece(row, col))


@router.get("/{game_id}/cells/{row}/{col}/can-wall", response_model=FlagResponse)
def can_place_adjacent_wall(game_id: str, row: int, col: int) -> FlagResponse:
    game = _game(game_id)
    with _bad_input():
        return FlagResponse(result=game.can_place_adjacent_wall(row, col))


@router.get("/{game_id}/selectable", response_model=MovesResponse)
def selectable_pieces(game_id: str) -> MovesResponse:
    return MovesResponse(moves=_game(game_id).selectable_pieces())


@router.get("/{game_id}/scores", response_model=ScoresResponse)
def region_scores(game_id: str) -> ScoresResponse:
    return ScoresResponse(scores=_game(game_id).region_scores())
