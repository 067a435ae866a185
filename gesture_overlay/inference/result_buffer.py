"""
Single-slot cache of the freshest accepted inference outcome.
"""

import logging
from typing import Optional

from gesture_overlay.core.types import InferenceOutcome

logger = logging.getLogger(__name__)


class ResultBuffer:
    """Last-value cache guarded by frame timestamp and a generation token.

    A write is accepted only if it was issued under the current generation
    and its frame is strictly newer than the last accepted one. Readers only
    ever see the latest outcome, never a history.
    """

    def __init__(self):
        self._outcome: Optional[InferenceOutcome] = None
        self._last_timestamp: Optional[int] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def last_timestamp(self) -> Optional[int]:
        return self._last_timestamp

    def write(self, outcome: InferenceOutcome, generation: Optional[int] = None) -> bool:
        """Replace the slot with ``outcome`` if it is current and newer.

        Returns:
            True if accepted, False if the write was stale
        """
        if generation is not None and generation != self._generation:
            logger.debug("Discarding outcome for t=%d from generation %d (current %d)",
                         outcome.frame_timestamp, generation, self._generation)
            return False
        if self._last_timestamp is not None and outcome.frame_timestamp <= self._last_timestamp:
            logger.debug("Discarding out-of-order outcome t=%d (latest t=%d)",
                         outcome.frame_timestamp, self._last_timestamp)
            return False

        self._outcome = outcome
        self._last_timestamp = outcome.frame_timestamp
        return True

    def read(self) -> Optional[InferenceOutcome]:
        return self._outcome

    def invalidate(self) -> int:
        """Empty the slot and start a new generation.

        Any completion still in flight under the old generation will be
        rejected on write.
        """
        self._outcome = None
        self._last_timestamp = None
        self._generation += 1
        return self._generation

    @property
    def is_empty(self) -> bool:
        return self._outcome is None
