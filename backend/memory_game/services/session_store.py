import logging
from typing import Callable, MutableMapping, Optional
import random

from memory_game.engine import Game, InvalidSnapshot

logger = logging.getLogger(__name__)


class GameSessionStore:
    """Keeps the in-progress game as a snapshot in a session mapping.

    The mapping is usually ``flask.session``; any mutable mapping works. A
    snapshot that fails to restore is dropped and ``load`` reports no game.
    """

    key = 'game'

    def __init__(self, session: MutableMapping, rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], float]] = None):
        self.session = session
        self.rng = rng
        self.clock = clock

    def load(self) -> Optional[Game]:
        data = self.session.get(self.key)
        if data is None:
            return None
        try:
            return Game.from_snapshot(data, rng=self.rng, clock=self.clock)
        except InvalidSnapshot as exc:
            logger.warning("[session_discard] corrupted game snapshot: %s", exc.message)
            self.clear()
            return None

    def create(self, difficulty, owner_id: Optional[int] = None) -> Game:
        game = Game(difficulty, owner_id, rng=self.rng, clock=self.clock)
        self.save(game)
        return game

    def save(self, game: Game) -> None:
        self.session[self.key] = game.to_snapshot()

    def clear(self) -> None:
        self.session.pop(self.key, None)
