"""Auth middleware -- FastAPI dependencies for the shared services and the current actor.

Authentication uses ``Authorization: Bearer <session_token>``; the token
resolves to an :class:`~fairway.auth.models.ActorContext` through the
session store.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import Header, HTTPException, status

from fairway.auth.models import ActorContext
from fairway.container import Services, build_services

# Shared services instance
_services: Optional[Services] = None


def get_services() -> Services:
    """Return the singleton Services instance, built from the environment on first use."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


def set_services(services: Optional[Services]) -> None:
    """Replace (or with ``None``, reset) the singleton.  Used by tests and embedding apps."""
    global _services
    _services = services


async def get_current_actor(
    authorization: Optional[str] = Header(None),
) -> ActorContext:
    """FastAPI dependency that resolves the bearer session to an actor.

    Raises ``401 Unauthorized`` if no valid session token is provided.
    """
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            actor = await asyncio.to_thread(get_services().sessions.validate_session, token.strip())
            if actor is not None:
                return actor

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
