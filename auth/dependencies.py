"""
auth/dependencies.py -- FastAPI Depends() helpers for the caller's association.

get_association() always returns an Association, possibly unassociated. It
never raises: store failures come back as an unassociated value.

The resolver comes from request.app.state (wired by the lifespan), so
tests substitute stores by patching the lifespan rather than these helpers.

Layer rule: may import fastapi because this module is part of the FastAPI
dependency injection system. No imports from api/ or pastes/.
"""

from __future__ import annotations

from fastapi import Request

from auth.association import Association, AssociationResolver


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def get_association(request: Request) -> Association:
    """Resolve the request's association. Never raises."""
    resolver: AssociationResolver = request.app.state.resolver
    return resolver.resolve(request.cookies, client_ip(request))

