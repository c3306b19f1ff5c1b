"""
Toast-style notices emitted by the client (render finished, request failed...).
"""

from datetime import datetime, timezone
from typing import Callable, List, Literal, Optional

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


class Notice(BaseModel):
    title: str
    description: Optional[str] = None
    variant: Literal["default", "destructive"] = "default"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


NoticeListener = Callable[[Notice], None]


class Notifier:
    """
    Collects notices and fans them out to listeners (a UI toast layer, a
    CLI printer, a test).
    """

    def __init__(self):
        self.notices: List[Notice] = []
        self._listeners: List[NoticeListener] = []

    def subscribe(self, listener: NoticeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, title: str, description: Optional[str] = None, variant: str = "default") -> Notice:
        notice = Notice(title=title, description=description, variant=variant)
        self.notices.append(notice)
        logger.info("notice", title=title, description=description, variant=variant)
        for listener in list(self._listeners):
            listener(notice)
        return notice

    def success(self, title: str, description: Optional[str] = None) -> Notice:
        return self.notify(title, description)

    def error(self, title: str, description: Optional[str] = None) -> Notice:
        return self.notify(title, description, variant="destructive")

    @property
    def last(self) -> Optional[Notice]:
        return self.notices[-1] if self.notices else None
