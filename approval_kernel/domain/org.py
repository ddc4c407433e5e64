"""
Organization hierarchy (``approval_kernel.domain.org``).

Responsibility
--------------
The contract the approval kernel needs from the external org directory,
plus ``StaticOrgHierarchy``, an in-memory implementation built from
plain data (used by the API bootstrap and by tests).

Architecture position
---------------------
**Kernel domain layer** -- protocol and pure in-memory data.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Protocol
from uuid import UUID

ADMIN_ROLE = "admin"
MANAGER_ROLE = "manager"


class LeaderTier(IntEnum):
    """Position of a user in the group-leader ladder."""

    NONE = 0
    GROUP_LEADER = 1
    UPPER_GROUP_LEADER = 2
    TOP_GROUP_LEADER = 3


class OrgHierarchyProvider(Protocol):
    """Protocol for resolving org hierarchy for approvals."""

    def user_exists(self, actor_id: UUID) -> bool:
        ...

    def get_actor_roles(self, actor_id: UUID) -> tuple[str, ...]:
        ...

    def get_approval_chain(self, actor_id: UUID) -> tuple[UUID, ...]:
        """Approvers for ``actor_id`` ordered by escalation level (index 0 first)."""
        ...

    def has_role(self, actor_id: UUID, role: str) -> bool:
        ...

    def is_admin(self, actor_id: UUID) -> bool:
        ...

    def get_leader_tier(self, actor_id: UUID) -> LeaderTier:
        ...

    def get_group_id(self, actor_id: UUID) -> str | None:
        ...

    def get_upper_group_leader(self, actor_id: UUID) -> UUID | None:
        """Leader of the group above ``actor_id``'s group."""
        ...

    def get_top_group_leader(self, actor_id: UUID) -> UUID | None:
        """Leader of the root group of ``actor_id``'s hierarchy."""
        ...


@dataclass(frozen=True)
class ActorProfile:
    """Snapshot of the org facts eligibility rules are evaluated against."""

    user_id: UUID
    roles: tuple[str, ...] = ()
    leader_tier: LeaderTier = LeaderTier.NONE
    group_id: str | None = None

    @property
    def is_manager(self) -> bool:
        return MANAGER_ROLE in self.roles

    @classmethod
    def from_provider(cls, org: OrgHierarchyProvider, user_id: UUID) -> ActorProfile:
        return cls(
            user_id=user_id,
            roles=tuple(org.get_actor_roles(user_id)),
            leader_tier=LeaderTier(org.get_leader_tier(user_id)),
            group_id=org.get_group_id(user_id),
        )


@dataclass(frozen=True)
class OrgGroup:
    group_id: str
    leader_id: UUID | None = None
    parent_group_id: str | None = None


@dataclass(frozen=True)
class OrgMember:
    user_id: UUID
    group_id: str | None = None
    roles: tuple[str, ...] = ()
    leader_tier: LeaderTier = LeaderTier.NONE
    approval_chain: tuple[UUID, ...] = ()


@dataclass
class StaticOrgHierarchy:
    """In-memory ``OrgHierarchyProvider`` over members and groups."""

    members: dict[UUID, OrgMember] = field(default_factory=dict)
    groups: dict[str, OrgGroup] = field(default_factory=dict)

    def add_member(self, member: OrgMember) -> None:
        self.members[member.user_id] = member

    def add_group(self, group: OrgGroup) -> None:
        self.groups[group.group_id] = group

    def user_exists(self, actor_id: UUID) -> bool:
        return actor_id in self.members

    def get_actor_roles(self, actor_id: UUID) -> tuple[str, ...]:
        member = self.members.get(actor_id)
        return member.roles if member else ()

    def get_approval_chain(self, actor_id: UUID) -> tuple[UUID, ...]:
        member = self.members.get(actor_id)
        return member.approval_chain if member else ()

    def has_role(self, actor_id: UUID, role: str) -> bool:
        return role in self.get_actor_roles(actor_id)

    def is_admin(self, actor_id: UUID) -> bool:
        return self.has_role(actor_id, ADMIN_ROLE)

    def get_leader_tier(self, actor_id: UUID) -> LeaderTier:
        member = self.members.get(actor_id)
        return member.leader_tier if member else LeaderTier.NONE

    def get_group_id(self, actor_id: UUID) -> str | None:
        member = self.members.get(actor_id)
        return member.group_id if member else None

    def get_upper_group_leader(self, actor_id: UUID) -> UUID | None:
        group = self.groups.get(self.get_group_id(actor_id) or "")
        if group is None or group.parent_group_id is None:
            return None
        parent = self.groups.get(group.parent_group_id)
        return parent.leader_id if parent else None

    def get_top_group_leader(self, actor_id: UUID) -> UUID | None:
        group = self.groups.get(self.get_group_id(actor_id) or "")
        seen: set[str] = set()
        while group is not None and group.parent_group_id is not None:
            if group.group_id in seen:
                return None
            seen.add(group.group_id)
            group = self.groups.get(group.parent_group_id)
        return group.leader_id if group else None
