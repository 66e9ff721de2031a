import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .card import Card, images_for_game
from .errors import (
    CARD_NOT_FLIPPABLE,
    GAME_COMPLETED,
    INVALID_POSITION,
    NEGATIVE_POSITION,
    PROTOCOL_MESSAGES,
    TOO_MANY_FLIPPED,
    GameError,
    InvalidDifficulty,
    InvalidOwner,
    InvalidSnapshot,
    NotCompleted,
)

logger = logging.getLogger(__name__)


class Difficulty(str, Enum):
    SMALL = 'small'
    LARGE = 'large'


DIFFICULTY_SETTINGS = {
    Difficulty.SMALL: {'pairs': 3, 'base_score': 300, 'description': 'Small (3 pairs)'},
    Difficulty.LARGE: {'pairs': 6, 'base_score': 600, 'description': 'Large (6 pairs)'},
}

MIN_SCORE = 50
MOVE_PENALTY = 10


def parse_difficulty(value) -> Difficulty:
    if isinstance(value, Difficulty):
        return value
    normalized = str(value).strip().lower() if isinstance(value, str) else None
    try:
        return Difficulty(normalized)
    except ValueError:
        choices = ', '.join(d.value for d in Difficulty)
        raise InvalidDifficulty(f"Invalid difficulty: {value!r}. Available: {choices}") from None


def compute_score(difficulty: Difficulty, moves: int) -> int:
    """Score for ``moves`` completed turns at ``difficulty``.

    Every move past ``pairs * 2`` costs ``MOVE_PENALTY`` points; the result
    never drops below ``MIN_SCORE``. Elapsed time plays no part.
    """
    settings = DIFFICULTY_SETTINGS[difficulty]
    perfect_moves = settings['pairs'] * 2
    penalty = max(0, moves - perfect_moves) * MOVE_PENALTY
    return max(MIN_SCORE, settings['base_score'] - penalty)


def format_duration(seconds: int) -> str:
    minutes, secs = divmod(int(seconds), 60)
    if minutes > 0:
        return f"{minutes} min {secs:02d} sec"
    return f"{secs} sec"


@dataclass
class FlipResult:
    """Outcome of ``Game.flip_card``.

    Always check ``success`` first: failed results carry only ``error_code``
    and ``message``, and the game they came from was left untouched.
    """

    success: bool
    error_code: Optional[str] = None
    message: str = ''
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, code: str) -> 'FlipResult':
        return cls(success=False, error_code=code, message=PROTOCOL_MESSAGES[code])

    @property
    def match(self) -> Optional[bool]:
        return self.data.get('match')

    @property
    def game_completed(self) -> bool:
        return bool(self.data.get('game_completed'))

    @property
    def hide_required(self) -> bool:
        return bool(self.data.get('hide_required'))

    def to_dict(self) -> dict:
        if not self.success:
            return {'success': False, 'error_code': self.error_code, 'message': self.message}
        payload = {'success': True}
        payload.update(self.data)
        if self.message:
            payload['message'] = self.message
        return payload


class Game:
    """A single memory game.

    The game owns its cards and a pending buffer of at most two revealed,
    unresolved slots. It is mutated only through ``flip_card`` and
    ``hide_pending_reveal`` and can be carried between requests with
    ``to_snapshot`` / ``from_snapshot``.
    """

    def __init__(self, difficulty='small', owner_id: Optional[int] = None,
                 rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], float]] = None):
        self._configure(difficulty, owner_id, rng, clock)
        self.cards: List[Card] = self._deal()
        self.revealed_slots: List[int] = []
        self.found_pairs = 0
        self.moves = 0
        self.completed = False
        self.started_at = int(self._clock())

    @classmethod
    def create(cls, difficulty, owner_id: Optional[int] = None, **kwargs) -> 'Game':
        return cls(difficulty, owner_id, **kwargs)

    def _configure(self, difficulty, owner_id, rng, clock):
        self.difficulty = parse_difficulty(difficulty)
        if owner_id is not None and (isinstance(owner_id, bool) or not isinstance(owner_id, int) or owner_id <= 0):
            raise InvalidOwner(f"Owner id must be a positive integer, got {owner_id!r}")
        self.owner_id = owner_id
        self._rng = rng or random.Random()
        self._clock = clock or time.time
        self.pair_count = DIFFICULTY_SETTINGS[self.difficulty]['pairs']

    def _deal(self) -> List[Card]:
        deck = []
        card_id = 0
        for image in images_for_game(self.pair_count):
            deck.append(Card(card_id, image))
            deck.append(Card(card_id + 1, image))
            card_id += 2
        # random.shuffle is a Fisher-Yates shuffle: every ordering is equally likely.
        self._rng.shuffle(deck)
        return deck

    # Turn protocol

    def flip_card(self, position: int) -> FlipResult:
        if isinstance(position, bool) or not isinstance(position, int):
            return FlipResult.failure(INVALID_POSITION)
        if position < 0:
            return FlipResult.failure(NEGATIVE_POSITION)
        if position >= len(self.cards):
            return FlipResult.failure(INVALID_POSITION)
        if self.completed:
            return FlipResult.failure(GAME_COMPLETED)
        card = self.cards[position]
        if not card.is_flippable():
            return FlipResult.failure(CARD_NOT_FLIPPABLE)
        if len(self.revealed_slots) >= 2:
            return FlipResult.failure(TOO_MANY_FLIPPED)

        card.reveal()
        self.revealed_slots.append(position)
        result = FlipResult(success=True, data={
            'position': position,
            'card_id': card.id,
            'image': card.image,
            'flipped_count': len(self.revealed_slots),
        })
        if len(self.revealed_slots) == 2:
            self._resolve_turn(result)
        return result

    def _resolve_turn(self, result: FlipResult) -> None:
        self.moves += 1
        first, second = self.revealed_slots
        card_a, card_b = self.cards[first], self.cards[second]
        result.data['positions'] = [first, second]

        if not card_a.matches(card_b):
            logger.debug("[turn] slots=%s,%s no match moves=%s", first, second, self.moves)
            result.data.update({'match': False, 'game_completed': False, 'hide_required': True})
            result.message = 'No match. The cards will be turned back over.'
            return

        card_a.mark_matched()
        card_b.mark_matched()
        self.found_pairs += 1
        self.revealed_slots = []
        logger.debug("[turn] slots=%s,%s match pairs=%s/%s", first, second, self.found_pairs, self.pair_count)

        if self.found_pairs == self.pair_count:
            self.completed = True
            result.data.update({
                'match': True,
                'game_completed': True,
                'final_score': self.score(),
                'total_time': self.elapsed_seconds(),
                'total_moves': self.moves,
            })
            result.message = 'Congratulations! Game completed!'
        else:
            result.data.update({
                'match': True,
                'game_completed': False,
                'pairs_found': self.found_pairs,
                'pairs_remaining': self.pair_count - self.found_pairs,
            })
            result.message = 'Pair found!'

    def hide_pending_reveal(self) -> bool:
        """Turn the pending cards back over and empty the buffer.

        Returns False when there was nothing to hide.
        """
        if not self.revealed_slots:
            return False
        hidden = False
        for position in self.revealed_slots:
            if self.cards[position].conceal():
                hidden = True
        self.revealed_slots = []
        return hidden

    # Scoring and read accessors

    @property
    def perfect_moves(self) -> int:
        return self.pair_count * 2

    def score(self) -> int:
        return compute_score(self.difficulty, self.moves)

    def elapsed_seconds(self) -> int:
        return max(0, int(self._clock()) - self.started_at)

    def progress_percentage(self) -> float:
        return round(self.found_pairs / self.pair_count * 100, 1)

    def final_stats(self) -> dict:
        if not self.completed:
            raise NotCompleted("The game is not completed yet")
        elapsed = self.elapsed_seconds()
        return {
            'score': self.score(),
            'moves': self.moves,
            'elapsed_seconds': elapsed,
            'time_formatted': format_duration(elapsed),
            'pair_count': self.pair_count,
            'difficulty': self.difficulty.value,
            'efficiency': round(self.perfect_moves / self.moves * 100, 1),
            'average_seconds_per_pair': round(elapsed / self.pair_count, 1),
            'owner_id': self.owner_id,
        }

    def state(self) -> dict:
        """Public view for rendering; face-down images are not exposed."""
        return {
            'difficulty': self.difficulty.value,
            'cards': [
                {
                    'position': position,
                    'id': card.id,
                    'revealed': card.revealed,
                    'matched': card.matched,
                    'image': card.face,
                }
                for position, card in enumerate(self.cards)
            ],
            'moves': self.moves,
            'found_pairs': self.found_pairs,
            'total_pairs': self.pair_count,
            'elapsed_time': self.elapsed_seconds(),
            'is_completed': self.completed,
            'score': self.score(),
            'flipped_positions': list(self.revealed_slots),
            'progress_percentage': self.progress_percentage(),
            'owner_id': self.owner_id,
            'start_time': self.started_at,
        }

    # Snapshot

    def to_snapshot(self) -> dict:
        return {
            'difficulty': self.difficulty.value,
            'owner_id': self.owner_id,
            'cards': [card.to_dict() for card in self.cards],
            'revealed_slots': list(self.revealed_slots),
            'found_pairs': self.found_pairs,
            'moves': self.moves,
            'started_at': self.started_at,
            'completed': self.completed,
        }

    @classmethod
    def from_snapshot(cls, data, rng: Optional[random.Random] = None,
                      clock: Optional[Callable[[], float]] = None) -> 'Game':
        if not isinstance(data, dict):
            raise InvalidSnapshot("Snapshot must be a mapping")
        for key in ('difficulty', 'cards', 'found_pairs', 'moves', 'started_at'):
            if key not in data:
                raise InvalidSnapshot(f"Snapshot field '{key}' is missing")

        # Restoring never deals, so the injected rng is left untouched.
        game = cls.__new__(cls)
        try:
            game._configure(data['difficulty'], data.get('owner_id'), rng, clock)
        except GameError as exc:
            raise InvalidSnapshot(f"Snapshot rejected: {exc.message}") from exc

        raw_cards = data['cards']
        if not isinstance(raw_cards, list) or not raw_cards:
            raise InvalidSnapshot("Snapshot cards must be a non-empty list")
        if len(raw_cards) != game.pair_count * 2:
            raise InvalidSnapshot(
                f"Snapshot holds {len(raw_cards)} cards, {game.difficulty.value} needs {game.pair_count * 2}"
            )
        game.cards = [_restore_card(raw) for raw in raw_cards]
        _check_deck(game.cards, game.pair_count)

        moves = _snapshot_int(data, 'moves', minimum=0)
        started_at = _snapshot_int(data, 'started_at', minimum=1)
        found_pairs = _snapshot_int(data, 'found_pairs', minimum=0)
        if found_pairs > game.pair_count:
            raise InvalidSnapshot(f"found_pairs {found_pairs} exceeds {game.pair_count} pairs")

        slots = data.get('revealed_slots', [])
        if not isinstance(slots, list) or len(slots) > 2 or len(set(slots)) != len(slots):
            raise InvalidSnapshot("revealed_slots must list at most two distinct positions")
        for slot in slots:
            if isinstance(slot, bool) or not isinstance(slot, int) or not 0 <= slot < len(game.cards):
                raise InvalidSnapshot(f"revealed_slots entry {slot!r} is out of range")

        completed = data.get('completed', False)
        if not isinstance(completed, bool):
            raise InvalidSnapshot("completed must be a boolean")

        matched = sum(1 for card in game.cards if card.matched)
        if matched != found_pairs * 2:
            raise InvalidSnapshot(f"found_pairs {found_pairs} disagrees with {matched} matched cards")
        if found_pairs > moves:
            raise InvalidSnapshot(f"found_pairs {found_pairs} exceeds {moves} moves")
        if completed != (found_pairs == game.pair_count):
            raise InvalidSnapshot(f"completed={completed} with {found_pairs}/{game.pair_count} pairs found")
        pending = [position for position, card in enumerate(game.cards) if card.revealed and not card.matched]
        if sorted(slots) != pending:
            raise InvalidSnapshot(f"revealed_slots {slots!r} must be exactly the face-up unmatched cards {pending!r}")
        # A full buffer only survives a turn when the two cards differ.
        if len(slots) == 2 and game.cards[slots[0]].matches(game.cards[slots[1]]):
            raise InvalidSnapshot("revealed_slots hold an unresolved matching pair")

        game.revealed_slots = list(slots)
        game.found_pairs = found_pairs
        game.moves = moves
        game.started_at = started_at
        game.completed = completed
        return game

    def __repr__(self) -> str:
        return (f"<Game {self.difficulty.value} pairs={self.found_pairs}/{self.pair_count} "
                f"moves={self.moves} completed={self.completed}>")


def _snapshot_int(data: dict, key: str, minimum: int) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise InvalidSnapshot(f"Snapshot field '{key}' must be an integer >= {minimum}, got {value!r}")
    return value


def _restore_card(raw) -> Card:
    if not isinstance(raw, dict) or 'id' not in raw or 'image' not in raw:
        raise InvalidSnapshot(f"Invalid card data: {raw!r}")
    if not isinstance(raw['image'], str):
        raise InvalidSnapshot(f"Card image must be a string, got {raw['image']!r}")
    revealed = raw.get('revealed', False)
    matched = raw.get('matched', False)
    if not isinstance(revealed, bool) or not isinstance(matched, bool):
        raise InvalidSnapshot(f"Card flags must be booleans: {raw!r}")
    if matched and not revealed:
        raise InvalidSnapshot(f"Card {raw['id']!r} is matched but hidden")
    try:
        card = Card.from_dict(raw)
    except GameError as exc:
        raise InvalidSnapshot(f"Invalid card data: {exc.message}") from exc
    if card.image_coerced:
        raise InvalidSnapshot(f"Card {card.id} has unknown image {raw['image']!r}")
    return card


def _check_deck(cards: List[Card], pair_count: int) -> None:
    ids = [card.id for card in cards]
    if len(set(ids)) != len(ids):
        raise InvalidSnapshot("Snapshot card ids must be unique")
    if sorted(card.image for card in cards) != sorted(images_for_game(pair_count) * 2):
        raise InvalidSnapshot(f"Snapshot deck must hold the first {pair_count} images twice each")
    for image in {card.image for card in cards}:
        if len({card.matched for card in cards if card.image == image}) != 1:
            raise InvalidSnapshot(f"Only one card of {image!r} is matched")
