# scanner.py
import time
import logging

logger = logging.getLogger("pos_terminal.scanner")

IDLE = "IDLE"
ACCUMULATING = "ACCUMULATING"

SCOPE_GLOBAL = "global"
SCOPE_SCOPED = "scoped"

# Where the key was typed
TARGET_OTHER = "other"
TARGET_TEXT_INPUT = "text_input"
TARGET_BARCODE_INPUT = "barcode_input"

ENTER_KEYS = {"Enter", "Return", "KP_Enter"}

MODIFIER_KEYS = {
    "Shift", "Shift_L", "Shift_R",
    "Control", "Control_L", "Control_R",
    "Alt", "Alt_L", "Alt_R",
    "Meta", "Meta_L", "Meta_R",
    "Caps_Lock", "CapsLock",
}

NAVIGATION_KEYS = {
    "Backspace", "BackSpace", "Delete", "Tab", "Escape",
    "ArrowLeft", "ArrowRight", "ArrowUp", "ArrowDown",
    "Left", "Right", "Up", "Down",
    "Home", "End",
}


class BarcodeCapture:
    """
    Rebuilds scan tokens from the keystroke burst a keyboard-wedge scanner
    produces.

    The decay timer is a deadline: it is checked before every key and on
    tick(), which the host event loop should call every few dozen ms.
    on_scan receives each token; it is called at most once per physical scan.
    """

    def __init__(self, on_scan, decay_ms: int = 150, min_length: int = 3,
                 cooldown_ms: int = 500, scope: str = SCOPE_GLOBAL, clock=None):
        if scope not in (SCOPE_GLOBAL, SCOPE_SCOPED):
            raise ValueError(f"Unknown capture scope: {scope}")
        self.on_scan = on_scan
        self.decay = decay_ms / 1000.0
        self.min_length = min_length
        self.cooldown = cooldown_ms / 1000.0
        self.scope = scope
        self.clock = clock or time.monotonic
        self.buffer = ""
        self._deadline = None
        self._cooling_down = False
        self._cooldown_until = None

    @property
    def state(self):
        return ACCUMULATING if self.buffer else IDLE

    def _accepts(self, target):
        if self.scope == SCOPE_SCOPED:
            return target == TARGET_BARCODE_INPUT
        return target != TARGET_TEXT_INPUT

    def handle_key(self, key: str, target: str = TARGET_OTHER) -> bool:
        """
        Feed one keypress. Returns True when the key's default action must be
        suppressed (an Enter that completed a scan).
        """
        self.tick()
        if key in MODIFIER_KEYS or key in NAVIGATION_KEYS:
            return False
        if not self._accepts(target):
            return False

        if key in ENTER_KEYS:
            token = self.buffer
            self._reset()
            if len(token) >= self.min_length:
                self._emit(token)
                return True
            return False

        # Named keys such as F1 are not part of a barcode
        if len(key) != 1:
            return False

        self.buffer += key
        self._deadline = self.clock() + self.decay
        return False

    def tick(self):
        """Fire the decay timer and release the cooldown if they are due."""
        now = self.clock()
        if self._cooling_down and now >= self._cooldown_until:
            self._cooling_down = False
            self._cooldown_until = None
        if self._deadline is not None and now >= self._deadline:
            token = self.buffer
            self._reset()
            if len(token) >= self.min_length:
                self._emit(token)
            elif token:
                logger.debug(f"Discarded short key burst ({len(token)} chars)")

    def feed_text(self, text: str, target: str = TARGET_OTHER):
        """Type a whole line followed by Enter, as a wedge scanner does."""
        for char in text:
            self.handle_key(char, target)
        return self.handle_key("Enter", target)

    def _reset(self):
        self.buffer = ""
        self._deadline = None

    def _emit(self, token):
        if self._cooling_down:
            logger.debug(f"Dropped scan during cooldown: {token}")
            return
        self._cooling_down = True
        self._cooldown_until = self.clock() + self.cooldown
        self.on_scan(token)
