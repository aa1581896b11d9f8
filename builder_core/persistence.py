"""
Persistence - Debounced writes of the application state.

A burst of edits produces a single write once the editor has been quiet for
the configured delay. The state itself is stored as one JSON blob under a
fixed storage key.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "audi_dataplatform_builder"
DEFAULT_SAVE_DELAY = 0.5


class DebouncedSaver:
    """
    A cancelable "pending write".

    Every call to schedule() cancels the pending timer and arms a new one,
    so only the most recently scheduled write ever fires.
    """

    def __init__(self, save: Callable[[], None], delay: float = DEFAULT_SAVE_DELAY):
        self._save = save
        self._delay = delay
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """Check if a write is scheduled but has not fired yet."""
        with self._lock:
            return self._timer is not None

    def schedule(self):
        """(Re)arm the timer, replacing any pending write."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self._delay, self._fire)
            timer.daemon = True
            self._timer = timer
        timer.start()

    def cancel(self) -> bool:
        """Drop the pending write. Returns True if one was pending."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is None:
            return False
        timer.cancel()
        return True

    def flush(self) -> bool:
        """Run the pending write now instead of waiting for the timer."""
        if not self.cancel():
            return False
        return self._run()

    def _fire(self):
        with self._lock:
            if self._timer is None or self._timer is not threading.current_thread():
                # Replaced or canceled after it was already due
                return
            self._timer = None
        self._run()

    def _run(self) -> bool:
        try:
            self._save()
        except Exception:
            logger.exception("Failed to save state")
            return False
        return True


class JsonStateStore:
    """Stores the full application state as one JSON file per storage key."""

    def __init__(self, directory: str | Path, key: str = DEFAULT_STORAGE_KEY):
        self._directory = Path(directory)
        self._key = key

    @property
    def path(self) -> Path:
        return self._directory / f"{self._key}.json"

    def save(self, state: Any) -> Path:
        """Write the state, replacing the previous blob atomically."""
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, 'w') as f:
            json.dump(state, f, indent=2)
        os.replace(tmp_path, path)

        logger.debug("Saved state to %s", path)
        return path

    def load(self) -> Optional[Any]:
        """Read the stored state, or None if nothing was saved yet."""
        path = self.path
        if not path.exists():
            return None

        with open(path, 'r') as f:
            return json.load(f)

    def clear(self) -> bool:
        """Delete the stored state."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True
