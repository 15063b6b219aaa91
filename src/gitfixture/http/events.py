"""Notification events received from the pipeline under test.

The pipeline's notification provider posts generic-webhook events here when it
reconciles a source or deployment. Tests poll the EventStore to assert that a
pushed commit or tag was observed.
"""

import logging
import threading
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger("gitfixture.http.events")


class InvolvedObject(BaseModel):
    """Reference to the object an event is about."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    kind: str = ""
    namespace: str = ""
    name: str = ""
    api_version: str = Field(default="", alias="apiVersion")


class NotificationEvent(BaseModel):
    """A notification event as posted by a generic webhook provider."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    involved_object: InvolvedObject = Field(default_factory=InvolvedObject, alias="involvedObject")
    severity: str = "info"
    timestamp: str = ""
    message: str = ""
    reason: str = ""
    metadata: dict[str, str] = {}
    reporting_controller: str = Field(default="", alias="reportingController")

    @property
    def revision(self) -> str:
        return self.metadata.get("revision", "")


class EventAccepted(BaseModel):
    """Response model for POST /events."""

    id: int


class EventStore:
    """Thread-safe in-memory list of received events."""

    def __init__(self) -> None:
        self._events: list[NotificationEvent] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def add(self, event: NotificationEvent) -> int:
        """Store an event and return its index."""
        with self._lock:
            self._events.append(event)
            index = len(self._events) - 1
        logger.info(
            f"Event {index}: {event.involved_object.kind}/{event.involved_object.name} "
            f"{event.reason} {event.revision}".rstrip()
        )
        return index

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def find(
        self,
        *,
        reason: str | None = None,
        revision: str | None = None,
        name: str | None = None,
    ) -> list[NotificationEvent]:
        """Return events matching every given filter.

        revision matches by substring, so a bare commit hash matches
        ``main@sha1:<hash>``.
        """
        with self._lock:
            events = list(self._events)
        return [
            e
            for e in events
            if (reason is None or e.reason == reason)
            and (revision is None or revision in e.revision)
            and (name is None or e.involved_object.name == name)
        ]

    def dump(self, **filters: Any) -> list[dict[str, Any]]:
        return [e.model_dump(by_alias=True) for e in self.find(**filters)]
