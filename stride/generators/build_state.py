"""Lifecycle of a transition graph build.

Uses python-statemachine for the two build states:
    UNBUILT: Input layers present, no graph materialized (initial)
    BUILT: Graph materialized and read-only

Transitions:
    UNBUILT -> BUILT: materialize (GraphBuilder.build finished)
    BUILT -> UNBUILT: invalidate (an input layer was replaced)

A built graph is never patched; replacing a layer invalidates it and the
next build starts from scratch.
"""

import logging

from statemachine import State, StateMachine

logger = logging.getLogger(__name__)


class GraphLifecycle(StateMachine):
    """Build state of a GraphBuilder."""

    unbuilt = State("Unbuilt", initial=True)
    built = State("Built")

    materialize = unbuilt.to(built)
    invalidate = built.to(unbuilt)

    @property
    def is_built(self) -> bool:
        """Check if a graph has been materialized."""
        return self.built.is_active

    def on_enter_built(self) -> None:
        logger.debug("Transition graph materialized")

    def after_invalidate(self) -> None:
        logger.info("Transition graph invalidated; rebuild required")
