"""Shared FastAPI dependencies."""

from fastapi import Header

from rentbill.services.context import RequestContext


def get_context(x_actor_id: int | None = Header(None)) -> RequestContext:
    """Build the request context from the X-Actor-Id header."""
    return RequestContext(actor_id=x_actor_id)
