"""Weak listener references.

Components notify a single listener object but never keep it alive:
the listener may be detached explicitly or simply garbage collected
mid-session, after which notifications are dropped.  Listener methods
are optional; a listener that does not define a callback just does
not receive it.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Optional

logger = logging.getLogger(__name__)


class ListenerRef:
    """Holds at most one listener through a weak reference."""

    def __init__(self, listener: Any = None) -> None:
        self._ref: Optional[weakref.ref] = None
        if listener is not None:
            self.attach(listener)

    def attach(self, listener: Any) -> None:
        """Replace the current listener."""
        self._ref = weakref.ref(listener)

    def detach(self) -> None:
        """Drop the current listener, if any."""
        self._ref = None

    def get(self) -> Any:
        """Return the listener, or ``None`` if detached or collected."""
        return self._ref() if self._ref is not None else None

    def notify(self, method: str, *args: Any) -> bool:
        """Call ``listener.<method>(*args)`` if both exist.

        Returns
        -------
        bool
            ``True`` if the callback was invoked.
        """
        listener = self.get()
        if listener is None:
            logger.debug("No listener for %s, dropping notification", method)
            return False
        callback = getattr(listener, method, None)
        if callback is None:
            return False
        callback(*args)
        return True
