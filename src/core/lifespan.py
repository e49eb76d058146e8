"""
Lifespan manager for FastAPI
Lets each domain register its own startup/shutdown context with a decorator.
"""

from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Callable

from fastapi import FastAPI
from loguru import logger


class LifespanManager:
    """Runs registered lifespan contexts in order and merges their state.

    Each context yields a dict; the merged dict becomes ``request.state``
    (e.g. ``race_client``, ``ranking_cache``, ``adjustment_store``).
    Contexts are exited in reverse registration order on shutdown.
    """

    def __init__(self):
        self._lifespans: list[Callable] = []

    def add(self, lifespan: Callable) -> Callable:
        """
        Decorator to register a lifespan context.

        Usage:
            @manager.add
            @asynccontextmanager
            async def upstream_lifespan():
                # startup
                yield {"race_client": client}
                # shutdown
        """
        self._lifespans.append(lifespan)
        return lifespan

    @asynccontextmanager
    async def __call__(self, app: FastAPI) -> AsyncIterator[dict[str, Any]]:
        async with AsyncExitStack() as stack:
            combined_state: dict[str, Any] = {}

            for lifespan_func in self._lifespans:
                try:
                    context = lifespan_func(app)
                except TypeError:
                    context = lifespan_func()

                state = await stack.enter_async_context(context)
                if state:
                    overlap = combined_state.keys() & state.keys()
                    if overlap:
                        logger.warning(
                            "Lifespan state keys overwritten",
                            lifespan=getattr(lifespan_func, "__name__", None),
                            keys=sorted(overlap),
                        )
                    combined_state.update(state)

            yield combined_state


manager = LifespanManager()
