"""
Change propagation between open grids.

Any insert/update/delete of an Assignment anywhere in the system is a
"change". A ChangeChannel delivers change notifications without payload;
a SyncListener reacts by reloading its session's cache wholesale. The
channel decides the transport:

- SignalChangeChannel: in-process Django model signals.
- RevisionPollingChannel: compares the database revision counter on ``poll()``.
  The HTML grid does the same over HTTP (see ``views.grid_rows``).
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from django.db import DatabaseError
from django.db.models import F
from django.db.models.signals import post_delete, post_save

from .exceptions import StoreUnavailableError
from .models import Revision

logger = logging.getLogger(__name__)


def current_revision() -> int:
    """
    Global assignment revision; moves on every committed assignment change.

    Read it before loading a grid: a change that lands during the load then
    shows up as a newer revision on the next poll.
    """
    try:
        value = Revision.objects.filter(name=Revision.ASSIGNMENTS).values_list("value", flat=True).first()
    except DatabaseError as exc:
        logger.warning("Reading the assignment revision failed: %s", exc)
        raise StoreUnavailableError(
            "Podatkovna baza trenutno ni dosegljiva",
            {"operation": "current_revision"},
        ) from exc
    return value or 0


def bump_revision() -> None:
    """Move the revision inside the caller's transaction."""
    counter = Revision.objects.filter(name=Revision.ASSIGNMENTS)
    if not counter.update(value=F("value") + 1):
        Revision.objects.get_or_create(name=Revision.ASSIGNMENTS)
        counter.update(value=F("value") + 1)


class ChangeChannel:
    """
    Source of "assignments changed" notifications.

    Subclasses open their transport when the first subscriber arrives and
    close it when the last one leaves.
    """

    def __init__(self) -> None:
        self._callbacks: List[Callable[[], None]] = []

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        self._callbacks.append(callback)
        if len(self._callbacks) == 1:
            self._open()

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
                if not self._callbacks:
                    self._close()

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def notify(self) -> None:
        for callback in list(self._callbacks):
            callback()

    def _open(self) -> None:
        pass

    def _close(self) -> None:
        pass


class SignalChangeChannel(ChangeChannel):
    """Notifies on Assignment post_save / post_delete in this process."""

    def _dispatch_uid(self, signal_name: str) -> str:
        return f"razpored-sync-{id(self)}-{signal_name}"

    def _open(self) -> None:
        from .models import Assignment

        post_save.connect(self._on_change, sender=Assignment, dispatch_uid=self._dispatch_uid("save"))
        post_delete.connect(self._on_change, sender=Assignment, dispatch_uid=self._dispatch_uid("delete"))

    def _close(self) -> None:
        from .models import Assignment

        post_save.disconnect(sender=Assignment, dispatch_uid=self._dispatch_uid("save"))
        post_delete.disconnect(sender=Assignment, dispatch_uid=self._dispatch_uid("delete"))

    def _on_change(self, sender, **kwargs) -> None:
        self.notify()


class RevisionPollingChannel(ChangeChannel):
    """Notifies when the revision counter moved since the previous poll."""

    def __init__(self, revision_source: Callable[[], int] = current_revision) -> None:
        super().__init__()
        self._revision_source = revision_source
        self._seen: Optional[int] = None

    def _open(self) -> None:
        self._seen = self._revision_source()

    def poll(self) -> bool:
        """Check the counter once. Returns True if subscribers were notified."""
        revision = self._revision_source()
        if revision == self._seen:
            return False
        self._seen = revision
        self.notify()
        return True


class SyncListener:
    """
    Keeps one grid session's cache in line with the store.

    No merging: every notification triggers a full reload of the active
    selection, so the last reload wins.
    """

    def __init__(self, session, channel: ChangeChannel) -> None:
        self.session = session
        self.channel = channel
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_running(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.channel.subscribe(self.on_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_change(self) -> None:
        if self.session.selection is None:
            logger.debug("Assignment change ignored, no active selection")
            return
        try:
            self.session.reload()
        except StoreUnavailableError:
            # Keep the last loaded grid; the next notification retries.
            logger.warning("Reload after assignment change failed for %s", self.session.selection)
            return
        logger.debug("Grid reloaded after assignment change: %s", self.session.selection)
