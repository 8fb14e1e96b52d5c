"""In-process event bus connecting the Order Ledger to its collaborators.

Events are published after the producing transaction has committed. Handlers
run synchronously in subscription order; a failing handler is logged with
its traceback and does not stop the remaining handlers or reach the
publisher, since the committed change must stand on its own.
"""

from collections import defaultdict
from collections.abc import Callable

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)

Handler = Callable[[BaseModel], None]


class EventBus:
    def __init__(self):
        self._handlers: dict[type[BaseModel], list[Handler]] = defaultdict(list)

    def subscribe(self, event_cls: type[BaseModel], handler: Handler) -> None:
        self._handlers[event_cls].append(handler)

    def handlers_for(self, event_cls: type[BaseModel]) -> list[Handler]:
        return list(self._handlers.get(event_cls, []))

    def publish(self, event: BaseModel) -> None:
        event_type = type(event).__name__
        for handler in self.handlers_for(type(event)):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler failed",
                    event_type=event_type,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                )
