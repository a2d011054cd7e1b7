"""
Lifecycle management for activity contributors.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Set

from .base import ActivityContributor

logger = logging.getLogger(__name__)


class ContributorRegistry:
    """
    Table of contributors keyed by id.

    ``initialize_all`` starts every contributor that has not been started yet,
    concurrently. A contributor whose ``initialize`` raises is disposed and
    left inert for the rest of the process; its siblings are unaffected.
    """

    def __init__(self) -> None:
        self._contributors: Dict[str, ActivityContributor] = {}
        self._initialized: Set[str] = set()
        self._inert: Set[str] = set()
        self._disposed = False

    def register(self, contributor: ActivityContributor) -> bool:
        """
        Add a contributor. It is started by the next ``initialize_all``.

        Returns:
            False when the id is already registered or the registry is disposed
        """
        if self._disposed:
            logger.warning(f"Registry disposed, refusing contributor {contributor.id}")
            return False
        if contributor.id in self._contributors:
            logger.info(f"Contributor {contributor.id} already registered")
            return False
        self._contributors[contributor.id] = contributor
        return True

    def unregister(self, contributor_id: str) -> None:
        """Dispose and remove a contributor; unknown ids are ignored."""
        contributor = self._contributors.pop(contributor_id, None)
        if contributor is None:
            return
        self._initialized.discard(contributor_id)
        self._inert.discard(contributor_id)
        contributor.dispose()

    def get(self, contributor_id: str) -> Optional[ActivityContributor]:
        return self._contributors.get(contributor_id)

    @property
    def contributors(self) -> List[ActivityContributor]:
        """Registered contributors, highest priority (lowest number) first."""
        return sorted(self._contributors.values(), key=lambda c: c.priority)

    def is_inert(self, contributor_id: str) -> bool:
        """True for a contributor whose initialization failed."""
        return contributor_id in self._inert

    def __len__(self) -> int:
        return len(self._contributors)

    def __contains__(self, contributor_id: object) -> bool:
        return contributor_id in self._contributors

    async def initialize_all(self) -> None:
        """Initialize every registered contributor that has not been started yet."""
        pending = [
            c for c in self._contributors.values()
            if c.id not in self._initialized and c.id not in self._inert
        ]
        if not pending:
            return

        for contributor in pending:
            self._initialized.add(contributor.id)

        results = await asyncio.gather(
            *(c.initialize() for c in pending), return_exceptions=True
        )
        for contributor, result in zip(pending, results):
            if isinstance(result, BaseException):
                logger.warning(
                    f"Contributor {contributor.id} failed to initialize: {result!r}",
                    exc_info=(type(result), result, result.__traceback__),
                )
                self._initialized.discard(contributor.id)
                self._inert.add(contributor.id)
                contributor.dispose()

        started = len(pending) - sum(1 for c in pending if c.id in self._inert)
        logger.info(f"Initialized {started}/{len(pending)} activity contributors")

    def dispose(self) -> None:
        """Dispose every contributor and refuse further registrations."""
        if self._disposed:
            return
        self._disposed = True
        for contributor in list(self._contributors.values()):
            try:
                contributor.dispose()
            except Exception:
                logger.warning(f"Error disposing contributor {contributor.id}", exc_info=True)
        self._contributors.clear()
        self._initialized.clear()
