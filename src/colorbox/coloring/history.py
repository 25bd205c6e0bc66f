from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Optional

import numpy as np


logger = logging.getLogger(__name__)

MAX_UNDO = 40


class History:
    """Bounded stack of Draw snapshots, one per completed stroke or fill.

    The bottom entry is the state the session started from, so undo can never
    go below it. There is no redo.
    """

    def __init__(self, initial: np.ndarray, max_entries: int = MAX_UNDO) -> None:
        if max_entries < 1:
            raise ValueError("history needs room for at least one entry")
        self.max_entries = max_entries
        self._entries: Deque[np.ndarray] = deque([initial], maxlen=max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def top(self) -> np.ndarray:
        return self._entries[-1]

    @property
    def can_undo(self) -> bool:
        return len(self._entries) > 1

    def push(self, snapshot: np.ndarray) -> None:
        # deque(maxlen=...) drops the oldest entry once full.
        self._entries.append(snapshot)

    def undo(self) -> Optional[np.ndarray]:
        if not self.can_undo:
            logger.debug("Undo ignored at history floor")
            return None
        self._entries.pop()
        return self._entries[-1]

    def reset(self, empty: np.ndarray) -> None:
        self._entries.clear()
        self._entries.append(empty)
