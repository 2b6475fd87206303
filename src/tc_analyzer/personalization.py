"""Personalization service: validate, compute and persist user profiles."""

from __future__ import annotations

import copy
import logging
from typing import Any

from . import profile as profile_computer
from .errors import ProfileNotFoundError
from .models import ComputedProfile
from .schemas import validate_profile, validate_update
from .store import ProfileStore, StoredProfile

logger = logging.getLogger(__name__)


class PersonalizationService:
    """Profile lifecycle on top of an injected :class:`ProfileStore`.

    Every write path validates its payload first, so the profile computer
    only ever sees answers from the fixed answer sets.
    """

    def __init__(self, store: ProfileStore) -> None:
        self._store = store

    def compute_profile(self, raw: Any) -> ComputedProfile:
        """Validate a raw questionnaire and compute its parameters.

        Raises:
            ProfileValidationError: If the payload fails schema validation.
        """
        return profile_computer.compute(validate_profile(raw))

    async def save_profile(self, raw: Any) -> StoredProfile:
        validated = validate_profile(raw)
        computed = profile_computer.compute(validated)
        saved = await self._store.save(
            StoredProfile(
                user_id=validated.user_id,
                profile=validated.to_document(),
                computed_profile=computed,
            )
        )
        logger.info(
            "Saved profile for %s (tags=%d, overall tolerance=%.1f)",
            saved.user_id,
            len(computed.profile_tags),
            computed.risk_tolerance.overall,
        )
        return saved

    async def get_profile(self, user_id: str) -> StoredProfile | None:
        stored = await self._store.get(user_id)
        if stored is None:
            logger.warning("Profile not found for user %s", user_id)
        return stored

    async def update_profile_section(self, raw_update: Any) -> StoredProfile:
        """Shallow-merge ``data`` into one section, then optionally recompute.

        The merged questionnaire is re-validated as a whole before anything
        is written.

        Raises:
            ProfileValidationError: If the envelope or the merged profile is invalid.
            ProfileNotFoundError: If the user has no stored profile.
        """
        update = validate_update(raw_update)
        existing = await self._store.get(update.user_id)
        if existing is None:
            raise ProfileNotFoundError(f"User profile not found: {update.user_id}")

        merged = copy.deepcopy(existing.profile)
        merged[update.section] = {**merged.get(update.section, {}), **update.section_data()}
        validated = validate_profile(merged)

        computed = profile_computer.compute(validated) if update.recompute_profile else None
        section_data = validated.to_document()[update.section]
        updated = await self._store.update_section(
            update.user_id, update.section, section_data, computed_profile=computed
        )
        logger.info(
            "Updated section %s for %s (recomputed=%s)",
            update.section,
            update.user_id,
            update.recompute_profile,
        )
        return updated

    async def delete_profile(self, user_id: str) -> bool:
        deleted = await self._store.delete(user_id)
        if deleted:
            logger.info("Deleted profile for %s", user_id)
        else:
            logger.warning("Profile not found for deletion: %s", user_id)
        return deleted

    async def get_insights(self, user_id: str) -> dict[str, Any] | None:
        """Dashboard summary for a stored profile, or ``None`` if unknown."""
        stored = await self.get_profile(user_id)
        if stored is None:
            return None
        validated = validate_profile(stored.profile)
        computed = stored.computed_profile or profile_computer.compute(validated)
        return profile_computer.insights(validated, computed)
