"""Computer opponents: a beatable rule-based heuristic and an exhaustive minimax."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union
import logging
import math
import random

from .game import (
    CENTER,
    CORNERS,
    DRAW,
    EMPTY,
    SIDES,
    WIN,
    WINNING_LINES,
    Board,
    Player,
    evaluate,
    other,
)

logger = logging.getLogger(__name__)

# Chance of ignoring every rule and playing a random empty cell
RANDOM_MOVE_RATE = 0.4

WIN_SCORE = 10


class Strategy(str, Enum):
    HEURISTIC = "heuristic"
    MINIMAX = "minimax"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class NoMovesAvailable(RuntimeError):
    """A move was requested on a board with no empty cell."""


def _cells_of(board: Union[Board, Sequence[str]]) -> List[str]:
    cells = board.cells if isinstance(board, Board) else board
    return list(cells)


def _empty_cells(cells: Sequence[str]) -> List[int]:
    empty = [i for i, c in enumerate(cells) if c == EMPTY]
    if not empty:
        raise NoMovesAvailable("No valid moves available")
    return empty


def find_winning_move(cells: Sequence[str], player: Player) -> Optional[int]:
    """Return the empty cell completing a line for ``player``, if any."""
    for line in WINNING_LINES:
        trio = [cells[i] for i in line]
        if trio.count(player) == 2 and trio.count(EMPTY) == 1:
            return line[trio.index(EMPTY)]
    return None


# ---------- Heuristic ----------


def choose_heuristic(
    board: Union[Board, Sequence[str]],
    player: Player,
    rng: Optional[random.Random] = None,
) -> int:
    """Pick a move by priority: random blunder, win, block, center, corner, side."""
    if rng is None:
        rng = random.Random()
    cells = _cells_of(board)
    available = _empty_cells(cells)

    if rng.random() < RANDOM_MOVE_RATE:
        return rng.choice(available)

    move = find_winning_move(cells, player)
    if move is not None:
        return move

    move = find_winning_move(cells, other(player))
    if move is not None:
        return move

    if cells[CENTER] == EMPTY:
        return CENTER

    corners = [i for i in CORNERS if cells[i] == EMPTY]
    if corners:
        return rng.choice(corners)

    sides = [i for i in SIDES if cells[i] == EMPTY]
    return rng.choice(sides)


# ---------- Minimax ----------


def choose_minimax(board: Union[Board, Sequence[str]], player: Player) -> int:
    """Return the lowest-index cell with the best score under optimal play."""
    scratch = _cells_of(board)
    available = _empty_cells(scratch)
    opponent = other(player)
    # Positions reached within one call have a fixed depth, so scores can be shared
    table: Dict[Tuple[str, ...], int] = {}

    best_score = -math.inf
    best_idx = available[0]
    for idx in available:
        scratch[idx] = player
        score = _minimax(scratch, 0, False, player, opponent, table)
        scratch[idx] = EMPTY
        if score > best_score:
            best_score, best_idx = score, idx
    return best_idx


def _minimax(
    cells: List[str],
    depth: int,
    maximizing: bool,
    player: Player,
    opponent: Player,
    table: Dict[Tuple[str, ...], int],
) -> int:
    key = tuple(cells)
    cached = table.get(key)
    if cached is not None:
        return cached

    result = evaluate(cells)
    if result.kind == WIN:
        score = WIN_SCORE - depth if result.winner == player else depth - WIN_SCORE
    elif result.kind == DRAW:
        score = 0
    elif maximizing:
        score = -WIN_SCORE
        for i, c in enumerate(cells):
            if c != EMPTY:
                continue
            cells[i] = player
            child = _minimax(cells, depth + 1, False, player, opponent, table)
            score = max(score, child)
            cells[i] = EMPTY
    else:
        score = WIN_SCORE
        for i, c in enumerate(cells):
            if c != EMPTY:
                continue
            cells[i] = opponent
            child = _minimax(cells, depth + 1, True, player, opponent, table)
            score = min(score, child)
            cells[i] = EMPTY

    table[key] = score
    return score


# ---------- Players ----------


@dataclass
class HeuristicAI:
    """Rule-based opponent that is deliberately beatable."""

    player: Player
    rng: random.Random = field(default_factory=random.Random, repr=False)

    strategy = Strategy.HEURISTIC

    def choose(self, board: Union[Board, Sequence[str]]) -> int:
        move = choose_heuristic(board, self.player, self.rng)
        logger.debug("heuristic %s plays %d", self.player, move)
        return move


@dataclass
class MinimaxAI:
    """Perfect-play opponent searching the full remaining game tree."""

    player: Player

    strategy = Strategy.MINIMAX

    def choose(self, board: Union[Board, Sequence[str]]) -> int:
        move = choose_minimax(board, self.player)
        logger.debug("minimax %s plays %d", self.player, move)
        return move


def build_ai(
    strategy: Union[Strategy, str],
    player: Player,
    rng: Optional[random.Random] = None,
) -> Union[HeuristicAI, MinimaxAI]:
    strategy = Strategy(strategy)
    if strategy is Strategy.MINIMAX:
        return MinimaxAI(player=player)
    return HeuristicAI(player=player, rng=rng if rng is not None else random.Random())
