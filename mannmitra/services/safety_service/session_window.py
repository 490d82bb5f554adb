"""Per-session rolling window of prior risk levels.

The escalation policy is pure; this store is where a session's recent
levels live between messages. In-memory for dev; a TTL cache in prod.
At most max_sessions windows are held: recording into a new session
beyond that drops the least recently active one.
"""
import logging
import threading
from collections import OrderedDict, deque
from typing import Deque, Optional, Tuple

from mannmitra.shared.models import RiskLevel
from .config import EscalationConfig

logger = logging.getLogger(__name__)


class SessionWindowStore:
    """Keeps the last window_size levels for each recently active session."""

    def __init__(self, config: Optional[EscalationConfig] = None):
        self.config = config or EscalationConfig()
        self._windows: "OrderedDict[str, Deque[RiskLevel]]" = OrderedDict()
        self._lock = threading.Lock()

    def recent_levels(self, session_id: str) -> Tuple[RiskLevel, ...]:
        """Prior levels for the session, most recent last."""
        with self._lock:
            window = self._windows.get(session_id)
            return tuple(window) if window else ()

    def record(self, session_id: str, level: RiskLevel) -> None:
        """Append the level of the message just assessed."""
        if not isinstance(level, RiskLevel):
            raise TypeError(f"record() requires a RiskLevel, got {level!r}")
        evicted = None
        with self._lock:
            window = self._windows.get(session_id)
            if window is None:
                window = deque(maxlen=self.config.window_size)
                self._windows[session_id] = window
                if len(self._windows) > self.config.max_sessions:
                    evicted, _ = self._windows.popitem(last=False)
            else:
                self._windows.move_to_end(session_id)
            window.append(level)

        if evicted is not None:
            logger.debug(
                "SESSION_WINDOW_EVICTED",
                extra={"session_id": evicted, "max_sessions": self.config.max_sessions}
            )

    def clear(self, session_id: str) -> bool:
        """Forget a session's window; returns False if none was held."""
        with self._lock:
            removed = self._windows.pop(session_id, None) is not None
        if removed:
            logger.info("SESSION_WINDOW_CLEARED", extra={"session_id": session_id})
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
