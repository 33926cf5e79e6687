import logging
import queue
from typing import List

from routing.messages import BusEvent

logger = logging.getLogger(__name__)


class EventBus:
    """
    Single-producer/single-consumer handoff from the control path to the
    render path. Neither side ever blocks: a full queue drops the event.
    """

    def __init__(self, maxsize=1024) -> None:
        self.q = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def post(self, e: BusEvent) -> bool:
        try:
            self.q.put_nowait(e)
        except queue.Full:
            self.dropped += 1
            logger.warning("[Bus] queue full, dropped %s", e)
            return False
        return True

    def drain(self, max_events=128) -> List[BusEvent]:
        evs = []
        try:
            while len(evs) < max_events:
                evs.append(self.q.get_nowait())
        except queue.Empty:
            pass
        return evs

    def clear(self) -> None:
        self.drain(max_events=self.q.maxsize or 1 << 16)
