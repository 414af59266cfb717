"""Board representation and outcome evaluation for 3x3 tic-tac-toe."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

Player = str  # "X" or "O"
Line = Tuple[int, int, int]

PLAYERS: Tuple[Player, Player] = ("X", "O")
EMPTY = " "

WINNING_LINES: Tuple[Line, ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

CENTER = 4
CORNERS: Tuple[int, ...] = (0, 2, 6, 8)
SIDES: Tuple[int, ...] = (1, 3, 5, 7)


def other(player: Player) -> Player:
    if player == "X":
        return "O"
    if player == "O":
        return "X"
    raise ValueError(f"Unknown symbol {player!r}")


# ---------- Board ----------


@dataclass
class Board:
    # 'X', 'O', or ' ' (space) for empty, row-major
    cells: List[str] = field(default_factory=lambda: [EMPTY] * 9)

    def __post_init__(self) -> None:
        if len(self.cells) != 9:
            raise ValueError("A board has exactly 9 cells")

    def empty_cells(self) -> List[int]:
        return [i for i, c in enumerate(self.cells) if c == EMPTY]

    def place(self, player: Player, idx: int) -> None:
        if player not in PLAYERS:
            raise ValueError(f"Unknown symbol {player!r}")
        if not 0 <= idx < 9:
            raise ValueError("Cell index out of range")
        if self.cells[idx] != EMPTY:
            raise ValueError("Cell already occupied")
        self.cells[idx] = player


# ---------- Outcome ----------

ONGOING, WIN, DRAW = "none", "win", "draw"


@dataclass(frozen=True)
class Outcome:
    """Result of evaluating a board; never stored, always recomputed."""

    kind: str = ONGOING
    winner: Optional[Player] = None
    line: Optional[Line] = None

    @property
    def terminal(self) -> bool:
        return self.kind != ONGOING


def _cells_of(board: Union[Board, Sequence[str]]) -> Sequence[str]:
    return board.cells if isinstance(board, Board) else board


def evaluate(board: Union[Board, Sequence[str]]) -> Outcome:
    """Classify ``board`` as a win, a draw, or still in progress.

    Lines are checked rows first, then columns, then diagonals; the first
    complete line is reported.
    """
    cells = _cells_of(board)
    for line in WINNING_LINES:
        a, b, c = line
        v = cells[a]
        if v != EMPTY and v == cells[b] == cells[c]:
            return Outcome(kind=WIN, winner=v, line=line)
    if all(v != EMPTY for v in cells):
        return Outcome(kind=DRAW)
    return Outcome()
