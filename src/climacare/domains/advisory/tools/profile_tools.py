"""MCP tools for managing the primary health profile and family members."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from climacare.domains.advisory.domain_logic.advisory_models import (
    Sensitivities,
    ValidationError,
)
from climacare.domains.advisory.stores.profile_store import ProfileNotFoundError

if TYPE_CHECKING:
    from climacare.core.audit.logger import AuditLogger
    from climacare.domains.advisory.stores.profile_store import ProfileStore

logger = logging.getLogger(__name__)


def _error(message: str) -> str:
    return json.dumps({"status": "error", "message": message}, ensure_ascii=False)


def register_profile_tools(
    mcp: FastMCP,
    profiles: ProfileStore,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register health profile tools on the MCP server."""

    def _audit_write(tool_name: str, entity_id: str) -> None:
        if audit_logger is not None:
            audit_logger.log_data_write(tool_name=tool_name, entity_id=entity_id)

    @mcp.tool
    async def save_health_profile(
        ctx: Context,
        name: str,
        age: int,
        conditions: list[str] | None = None,
        medications: list[str] | None = None,
        allergies: list[str] | None = None,
        sensitivities: dict[str, str] | None = None,
        emergency_contact: str | None = None,
    ) -> str:
        """Create your primary health profile (replaces any previous one).

        Args:
            name: Your name.
            age: Age in years (1-120).
            conditions: Health conditions, e.g. 'asma', 'artrite', 'bronquite'.
            medications: Medications you take.
            allergies: Known allergies.
            sensitivities: Per-factor sensitivity ('low' | 'normal' | 'high') for
                'temperature', 'humidity', 'airQuality' and 'uv'. Unset factors are 'normal'.
            emergency_contact: Optional emergency contact.
        """
        try:
            profile = profiles.create_profile({
                "name": name,
                "age": age,
                "conditions": conditions or [],
                "medications": medications or [],
                "allergies": allergies or [],
                "sensitivities": sensitivities or {},
                "emergencyContact": emergency_contact,
            })
        except ValidationError as exc:
            return _error(str(exc))

        _audit_write("save_health_profile", profile.id)
        return json.dumps({"status": "saved", "profile": profile.to_dict()}, ensure_ascii=False)

    @mcp.tool
    async def add_family_member(
        ctx: Context,
        name: str,
        age: int,
        relationship: str,
        conditions: list[str] | None = None,
        medications: list[str] | None = None,
        allergies: list[str] | None = None,
        sensitivities: dict[str, str] | None = None,
    ) -> str:
        """Add a family member whose risks you want to follow.

        Args:
            name: Family member's name.
            age: Age in years (1-120).
            relationship: e.g. 'Filho(a)', 'Cônjuge', 'Pai/Mãe', 'Avô/Avó', 'Irmão/Irmã', 'Outro'.
            conditions: Health conditions.
            medications: Medications.
            allergies: Known allergies.
            sensitivities: Per-factor sensitivity levels.
        """
        try:
            member = profiles.create_profile(
                {
                    "name": name,
                    "age": age,
                    "conditions": conditions or [],
                    "medications": medications or [],
                    "allergies": allergies or [],
                    "sensitivities": sensitivities or {},
                },
                relationship=relationship,
            )
        except ValidationError as exc:
            return _error(str(exc))

        _audit_write("add_family_member", member.id)
        return json.dumps({"status": "saved", "profile": member.to_dict()}, ensure_ascii=False)

    @mcp.tool
    async def update_health_profile(
        ctx: Context,
        profile_id: str,
        name: str | None = None,
        age: int | None = None,
        conditions: list[str] | None = None,
        medications: list[str] | None = None,
        allergies: list[str] | None = None,
        sensitivities: dict[str, str] | None = None,
        emergency_contact: str | None = None,
        relationship: str | None = None,
    ) -> str:
        """Edit a stored profile. Only the fields you pass are changed.

        Args:
            profile_id: Id of the primary profile or a family member.
            name: New name.
            age: New age (1-120).
            conditions: Replacement list of conditions.
            medications: Replacement list of medications.
            allergies: Replacement list of allergies.
            sensitivities: Sensitivity levels to change; other factors keep their value.
            emergency_contact: New emergency contact.
            relationship: New relationship (family members only).
        """
        current = profiles.get_profile(profile_id)
        if current is None:
            return _error(f"No profile with id {profile_id!r}")

        changes: dict = {}
        if name is not None:
            changes["name"] = name.strip()
        if age is not None:
            changes["age"] = age
        if conditions is not None:
            changes["conditions"] = conditions
        if medications is not None:
            changes["medications"] = medications
        if allergies is not None:
            changes["allergies"] = allergies
        if sensitivities is not None:
            changes["sensitivities"] = Sensitivities.from_dict(
                {**current.sensitivities.to_dict(), **sensitivities}
            )
        if emergency_contact is not None:
            changes["emergency_contact"] = emergency_contact
        if relationship is not None:
            changes["relationship"] = relationship.strip()

        updated = replace(current, **changes)
        try:
            profiles.update_profile(updated)
        except (ValidationError, ProfileNotFoundError) as exc:
            return _error(str(exc))

        _audit_write("update_health_profile", updated.id)
        return json.dumps({"status": "updated", "profile": updated.to_dict()}, ensure_ascii=False)

    @mcp.tool
    async def delete_health_profile(ctx: Context, profile_id: str) -> str:
        """Delete the primary profile or a family member. Deleting twice is harmless.

        Args:
            profile_id: Id of the profile to delete.
        """
        deleted = profiles.delete_profile(profile_id)
        if deleted and audit_logger is not None:
            audit_logger.log_data_delete(
                tool_name="delete_health_profile", entity_id=profile_id, count=1
            )
        return json.dumps({
            "status": "deleted" if deleted else "not_found",
            "profile_id": profile_id,
        })

    @mcp.tool
    async def get_health_profiles(ctx: Context) -> str:
        """Return the primary profile and all family members."""
        primary = profiles.get_primary_profile()
        return json.dumps({
            "primary": primary.to_dict() if primary else None,
            "family": [m.to_dict() for m in profiles.list_family_members()],
        }, ensure_ascii=False)
