"""Route dependencies."""

from fastapi import Request

from crossapp.services.context import CrossAppContext


def get_context(request: Request) -> CrossAppContext:
    """The CrossAppContext the lifespan stored on app.state."""
    return request.app.state.crossapp
