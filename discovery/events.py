"""
Outbound events and their asynchronous dispatch
"""
import logging
import queue
import threading
from datetime import datetime
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict

from discovery.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class MutualMatchEvent(BaseModel):
    """Both members like each other but no match record exists yet"""
    model_config = ConfigDict(frozen=True)

    event_type: str = "mutual_match_formed"
    requester_id: str
    candidate_id: str
    detected_at: datetime


EventHandler = Callable[[MutualMatchEvent], None]

_STOP = object()


class EventDispatcher:
    """
    Fire-and-forget event channel

    publish() never blocks the request path; a daemon worker hands each
    event to the registered handlers. Delivery guarantees beyond that
    belong to the handlers.
    """

    def __init__(self, config: Optional[Settings] = None):
        cfg = config or default_settings
        self._queue: "queue.Queue" = queue.Queue(maxsize=cfg.event_queue_size)
        self._handlers: List[EventHandler] = []
        self._worker: Optional[threading.Thread] = None
        self.dropped = 0

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def publish(self, event: MutualMatchEvent) -> bool:
        try:
            self._queue.put_nowait(event)
            return True
        except queue.Full:
            self.dropped += 1
            logger.warning(f"Event queue full, dropping {event.event_type} "
                           f"{event.requester_id} -> {event.candidate_id}")
            return False

    def _deliver(self, event: MutualMatchEvent) -> None:
        for handler in self._handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler {getattr(handler, '__name__', handler)} failed: {e}",
                             exc_info=True)

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is _STOP:
                    return
                self._deliver(event)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        if self._worker is not None and self._worker.is_alive():
            return
        self._worker = threading.Thread(target=self._run, name="discovery-events", daemon=True)
        self._worker.start()
        logger.info("Event dispatcher started")

    def drain(self) -> None:
        """Block until every queued event has been handed to the handlers"""
        self._queue.join()

    def stop(self) -> None:
        if self._worker is None:
            return
        self._queue.put(_STOP)
        self._worker.join()
        self._worker = None
        logger.info("Event dispatcher stopped")
