import logging
import re
from typing import List, Optional

from .errors import InvalidId

logger = logging.getLogger(__name__)

# Face designs; two cards sharing one of these form a pair.
AVAILABLE_IMAGES = (
    'roi-david.svg',
    'dame-pallas.svg',
    'valet-ogier.svg',
    'roi-charles.svg',
    'dame-judith.svg',
    'valet-lahire.svg',
    'roi-cesar.svg',
    'dame-rachel.svg',
    'valet-hector.svg',
    'roi-alexandre.svg',
    'dame-argine.svg',
    'valet-lancelot.svg',
)

CARD_BACK_IMAGE = 'images/joker.svg'

_UNSAFE_CHARS = re.compile(r'[^a-zA-Z0-9._-]')


def images_for_game(count: int) -> List[str]:
    """Return the first ``count`` face designs."""
    if count > len(AVAILABLE_IMAGES):
        raise ValueError(f"Not enough images: requested {count}, available {len(AVAILABLE_IMAGES)}")
    return list(AVAILABLE_IMAGES[:count])


def sanitize_image(image) -> Optional[str]:
    """Return the whitelisted name for ``image`` or None if it is not one."""
    clean = _UNSAFE_CHARS.sub('', str(image))
    return clean if clean in AVAILABLE_IMAGES else None


class Card:
    """One physical card.

    ``id`` and ``image`` never change once the card exists. ``revealed`` and
    ``matched`` move through hidden -> revealed -> matched; a matched card is
    always revealed and ignores further reveal/conceal calls.
    """

    def __init__(self, id: int, image: str):
        if isinstance(id, bool) or not isinstance(id, int) or id < 0:
            raise InvalidId(f"Card id must be a non-negative integer, got {id!r}")
        self._id = id
        self.image_coerced = False
        clean = sanitize_image(image)
        if clean is None:
            logger.warning("[card_image] id=%s rejected image=%r, using %s", id, image, AVAILABLE_IMAGES[0])
            clean = AVAILABLE_IMAGES[0]
            self.image_coerced = True
        self._image = clean
        self.revealed = False
        self.matched = False

    @property
    def id(self) -> int:
        return self._id

    @property
    def image(self) -> str:
        return self._image

    @property
    def image_path(self) -> str:
        return f"images/{self._image}"

    @property
    def face(self) -> Optional[str]:
        """The image while face-up, None while face-down."""
        return self._image if self.revealed else None

    def reveal(self) -> bool:
        if self.matched:
            return False
        self.revealed = True
        return True

    def conceal(self) -> bool:
        if self.matched:
            return False
        self.revealed = False
        return True

    def mark_matched(self) -> None:
        self.matched = True
        self.revealed = True

    def is_flippable(self) -> bool:
        return not self.matched and not self.revealed

    def matches(self, other: 'Card') -> bool:
        return self._image == other.image

    def to_dict(self) -> dict:
        return {
            'id': self._id,
            'image': self._image,
            'revealed': self.revealed,
            'matched': self.matched,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Card':
        card = cls(data['id'], data['image'])
        card.revealed = bool(data.get('revealed', False))
        card.matched = bool(data.get('matched', False))
        return card

    def __repr__(self) -> str:
        status = 'matched' if self.matched else ('revealed' if self.revealed else 'hidden')
        return f"<Card #{self._id} {self._image} {status}>"
