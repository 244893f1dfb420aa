"""
FastAPI dependency-injection helpers.

Provides ``Depends()``-compatible accessors for shared
resources created in the application lifespan.
"""

from __future__ import annotations

from fastapi import Request

from problemfetch.services.resolver import ProblemResolver


def get_resolver(request: Request) -> ProblemResolver:
    """Return the process-wide ``ProblemResolver``.

    The resolver is created in ``problemfetch.main.lifespan``
    and stored on ``app.state``.  Override in tests via
    ``app.dependency_overrides[get_resolver]``.

    Usage as a FastAPI dependency::

        @router.get("/problems/{problem_id}")
        async def get_problem(
            problem_id: str,
            resolver: ProblemResolver = Depends(get_resolver),
        ): ...
    """
    return request.app.state.resolver
