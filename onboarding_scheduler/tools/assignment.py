"""
Resource assignment among the free resources for a slot.

Trainers: keep those who speak every required language, then prefer the
specialists (fewest declared languages) so multilingual trainers stay free
for sessions that need them. Ties are broken at random to spread load.

Installers have no language dimension and are picked uniformly at random.
"""

import logging
import random
from typing import Optional

from onboarding_scheduler.errors import NoQualifiedResource
from onboarding_scheduler.schemas.resource_schema import Resource

logger = logging.getLogger(__name__)


def assign_resource(
    free_resources: list[Resource],
    required_languages: Optional[list[str]] = None,
    rng: Optional[random.Random] = None,
) -> Resource:
    """Pick a trainer for a slot.

    Raises NoQualifiedResource when nobody free speaks all required languages.
    """
    rng = rng or random.Random()
    required = [lang for lang in (required_languages or []) if lang and lang.strip()]
    candidates = [r for r in free_resources if r.authorized]
    qualified = [r for r in candidates if r.speaks_all(required)]
    if not qualified:
        logger.info(
            "No qualified resource among %d free for languages %s",
            len(candidates), required or "any",
        )
        if required:
            raise NoQualifiedResource(
                f"No available trainer speaks {', '.join(required)} for this slot"
            )
        raise NoQualifiedResource("No trainer is available for this slot")

    fewest = min(len(r.languages) for r in qualified)
    specialists = [r for r in qualified if len(r.languages) == fewest]
    chosen = rng.choice(specialists)
    logger.info(
        "Assigned %s (%d languages) from %d qualified, %d specialists",
        chosen.id, fewest, len(qualified), len(specialists),
    )
    return chosen


def assign_installer(
    free_resources: list[Resource],
    rng: Optional[random.Random] = None,
) -> Resource:
    """Pick an installer uniformly at random."""
    rng = rng or random.Random()
    candidates = [r for r in free_resources if r.authorized]
    if not candidates:
        raise NoQualifiedResource("No installer is available for this slot")
    chosen = rng.choice(candidates)
    logger.info("Assigned installer %s from %d available", chosen.id, len(candidates))
    return chosen
