"""FastAPI notification receiver.

The pipeline under test posts its notification events to /events; tests read
them back (directly or through gitfixture.readiness.wait_until) to confirm a
pushed commit or tag was picked up.
"""
from fastapi import FastAPI

from gitfixture.http.events import EventAccepted, EventStore, NotificationEvent


def create_app(store: EventStore | None = None) -> FastAPI:
    """Create the receiver application.

    Args:
        store: Event store to write to. Defaults to a new in-memory store,
            exposed as ``app.state.events``.

    Returns:
        FastAPI: Configured application with the /events routes.
    """
    events = store if store is not None else EventStore()
    api = FastAPI()
    api.state.events = events

    @api.post("/events", response_model=EventAccepted)
    async def receive_event(event: NotificationEvent):
        """Store one notification event."""
        return EventAccepted(id=events.add(event))

    @api.get("/events")
    async def list_events(reason: str | None = None, revision: str | None = None, name: str | None = None):
        """List received events, optionally filtered."""
        return events.dump(reason=reason, revision=revision, name=name)

    @api.delete("/events", status_code=204)
    async def clear_events():
        """Forget every received event."""
        events.clear()

    return api


app = create_app()
"""ASGI application instance for uvicorn.

Example:
    uvicorn gitfixture.server:app
"""
