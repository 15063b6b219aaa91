"""HTTP package for the gitfixture notification receiver.

Provides the event models and store used by the server routes.
"""

from gitfixture.http.events import EventAccepted, EventStore, NotificationEvent

__all__ = ["EventAccepted", "EventStore", "NotificationEvent"]
