# --- START OF FILE messages.py ---

import logging
from enum import Enum
from typing import Dict

from depth_navigation.obstacle_classifier import Direction

logger = logging.getLogger(__name__)


class MessageKey(Enum):
    READY = "ready"
    STOPPED = "stopped"
    ERROR = "error"
    UNSUPPORTED = "unsupported"
    DIRECTION_AHEAD = "direction_ahead"
    DIRECTION_LEFT = "direction_left"
    DIRECTION_RIGHT = "direction_right"
    VERY_CLOSE = "very_close"
    OBSTACLE_AT_DISTANCE = "obstacle_at_distance"  # Takes {distance}
    LOWER_HEIGHT = "lower_height"


DIRECTION_MESSAGE_KEYS: Dict[Direction, MessageKey] = {
    Direction.CENTER: MessageKey.DIRECTION_AHEAD,
    Direction.LEFT: MessageKey.DIRECTION_LEFT,
    Direction.RIGHT: MessageKey.DIRECTION_RIGHT,
}

CATALOGS: Dict[str, Dict[MessageKey, str]] = {
    "en": {
        MessageKey.READY: "Navigation assistant ready",
        MessageKey.STOPPED: "Navigation assistant stopped",
        MessageKey.ERROR: "Navigation system encountered an error",
        MessageKey.UNSUPPORTED: "Depth sensing is not supported on this device",
        MessageKey.DIRECTION_AHEAD: "Obstacle directly ahead",
        MessageKey.DIRECTION_LEFT: "Obstacle on your left",
        MessageKey.DIRECTION_RIGHT: "Obstacle on your right",
        MessageKey.VERY_CLOSE: "Obstacle very close, move cautiously",
        MessageKey.OBSTACLE_AT_DISTANCE: "Obstacle detected at {distance:.1f} meters",
        MessageKey.LOWER_HEIGHT: "Lower-height obstacle detected",
    },
    "it": {
        MessageKey.READY: "Assistente di navigazione pronto",
        MessageKey.STOPPED: "Assistente di navigazione arrestato",
        MessageKey.ERROR: "Il sistema di navigazione ha riscontrato un errore",
        MessageKey.UNSUPPORTED: "Il rilevamento della profondità non è supportato su questo dispositivo",
        MessageKey.DIRECTION_AHEAD: "Ostacolo direttamente davanti a sé",
        MessageKey.DIRECTION_LEFT: "Ostacolo alla tua sinistra",
        MessageKey.DIRECTION_RIGHT: "Ostacolo alla tua destra",
        MessageKey.VERY_CLOSE: "Ostacolo molto vicino, muoversi con cautela",
        MessageKey.OBSTACLE_AT_DISTANCE: "Ostacolo rilevato a {distance:.1f} metri",
        MessageKey.LOWER_HEIGHT: "Rilevato ostacolo di altezza inferiore",
    },
}

DEFAULT_LANGUAGE = "en"


class MessageCatalog:
    """Looks up user-facing phrases by key for one language."""

    def __init__(self, language: str = DEFAULT_LANGUAGE):
        if language not in CATALOGS:
            logger.warning(f"No message catalog for language '{language}', falling back to '{DEFAULT_LANGUAGE}'.")
            language = DEFAULT_LANGUAGE
        self.language = language
        self._messages = CATALOGS[language]

    def get(self, key: MessageKey, **params) -> str:
        template = self._messages[key]
        return template.format(**params) if params else template

    def direction(self, direction: Direction) -> str:
        return self.get(DIRECTION_MESSAGE_KEYS[direction])
