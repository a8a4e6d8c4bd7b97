"""Health profile store — one primary profile plus family members.

The primary profile lives under ``healthProfile`` and family members as a
list under ``familyProfiles``. Every mutation validates first and then
writes exactly one key, so a failed call leaves the store unchanged.
"""

from __future__ import annotations

import logging
from typing import Any

from climacare.core.storage.kv_store import KeyValueStore
from climacare.domains.advisory.domain_logic.advisory_models import (
    HealthProfile,
    Sensitivities,
    ValidationError,
    new_entry_id,
)

logger = logging.getLogger(__name__)

PRIMARY_PROFILE_KEY = "healthProfile"
FAMILY_PROFILES_KEY = "familyProfiles"


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class ProfileNotFoundError(LookupError):
    """Raised when updating a profile id that is not stored."""


class ProfileStore:
    """CRUD over the primary profile and the family member list.

    Usage::

        store = ProfileStore(InMemoryKeyValueStore())
        me = store.create_profile({"name": "Ana", "age": 34, "conditions": ["asma"]})
        kid = store.create_profile({"name": "Léo", "age": 6}, relationship="Filho(a)")
    """

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_primary_profile(self) -> HealthProfile | None:
        data = self._kv.get(PRIMARY_PROFILE_KEY)
        return HealthProfile.from_dict(data) if data else None

    def list_family_members(self) -> list[HealthProfile]:
        return [HealthProfile.from_dict(d) for d in self._kv.get(FAMILY_PROFILES_KEY) or []]

    def all_profiles(self) -> list[HealthProfile]:
        """Primary profile (if any) followed by family members."""
        primary = self.get_primary_profile()
        return ([primary] if primary else []) + self.list_family_members()

    def get_profile(self, profile_id: str) -> HealthProfile | None:
        for profile in self.all_profiles():
            if profile.id == profile_id:
                return profile
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_profile(
        self, fields: dict[str, Any], *, relationship: str | None = None
    ) -> HealthProfile:
        """Create a profile with a fresh id.

        Without ``relationship`` the new profile becomes the primary profile
        (replacing any previous one). With it, the profile is appended to the
        family members.

        Raises:
            ValidationError: Empty name, age outside 1-120, bad sensitivity
                level, or blank relationship.
        """
        if relationship is None:
            relationship = fields.get("relationship")

        profile = HealthProfile(
            id=new_entry_id(),
            name=_strip(fields.get("name", "")),
            age=fields.get("age"),
            conditions=fields.get("conditions") or [],
            medications=fields.get("medications") or [],
            allergies=fields.get("allergies") or [],
            sensitivities=Sensitivities.from_dict(fields.get("sensitivities")),
            emergency_contact=fields.get("emergencyContact", fields.get("emergency_contact")),
            relationship=_strip(relationship),
        )
        profile.validate()

        if profile.is_family_member:
            members = self._kv.get(FAMILY_PROFILES_KEY) or []
            members.append(profile.to_dict())
            self._kv.set(FAMILY_PROFILES_KEY, members)
            logger.info("Family member %s added", profile.id)
        else:
            self._kv.set(PRIMARY_PROFILE_KEY, profile.to_dict())
            logger.info("Primary profile %s created", profile.id)
        return profile

    def update_profile(self, profile: HealthProfile) -> None:
        """Replace the stored profile with the same id.

        Raises:
            ValidationError: Same rules as :meth:`create_profile`.
            ProfileNotFoundError: No stored profile has ``profile.id``.
        """
        profile.validate()

        primary = self._kv.get(PRIMARY_PROFILE_KEY)
        if primary and str(primary.get("id")) == profile.id:
            if profile.is_family_member:
                raise ValidationError("The primary profile has no relationship")
            self._kv.set(PRIMARY_PROFILE_KEY, profile.to_dict())
            logger.info("Primary profile %s updated", profile.id)
            return

        members = self._kv.get(FAMILY_PROFILES_KEY) or []
        for index, member in enumerate(members):
            if str(member.get("id")) == profile.id:
                if not profile.is_family_member:
                    raise ValidationError("Family members need a relationship")
                members[index] = profile.to_dict()
                self._kv.set(FAMILY_PROFILES_KEY, members)
                logger.info("Family member %s updated", profile.id)
                return

        raise ProfileNotFoundError(f"No profile with id {profile.id!r}")

    def delete_profile(self, profile_id: str) -> bool:
        """Delete a profile by id. Idempotent.

        Returns:
            True if a profile was removed, False if none had that id.
        """
        primary = self._kv.get(PRIMARY_PROFILE_KEY)
        if primary and str(primary.get("id")) == profile_id:
            self._kv.delete(PRIMARY_PROFILE_KEY)
            logger.info("Primary profile %s deleted", profile_id)
            return True

        members = self._kv.get(FAMILY_PROFILES_KEY) or []
        remaining = [m for m in members if str(m.get("id")) != profile_id]
        if len(remaining) == len(members):
            return False
        self._kv.set(FAMILY_PROFILES_KEY, remaining)
        logger.info("Family member %s deleted", profile_id)
        return True
