"""
Gym administration permissions.

Rules:
- Authors may always edit and delete their own content
- Any admin role (owner/admin/manager) on the item's gym may edit it
- Only owner/admin on the item's gym may delete it
- Items without a gym (basic posts, gym-less events) are author-only
"""

from __future__ import annotations

from typing import List, Optional

import structlog

from cruxfeed.domain.activity.models import ActivityItem
from cruxfeed.domain.gym.codec import GymAdministratorCodec
from cruxfeed.domain.gym.models import AdminRole, GymAdministrator
from cruxfeed.domain.shared.ids import new_id
from cruxfeed.domain.shared.ports.document_store import IDocumentStore, Query
from cruxfeed.domain.user.models import User
from cruxfeed.repository.collections import GYM_ADMINISTRATORS

logger = structlog.get_logger(__name__)

DELETE_ROLES = frozenset({AdminRole.OWNER, AdminRole.ADMIN})


class PermissionsRepository:
    """Resolves gym admin roles and content permissions."""

    def __init__(self, store: IDocumentStore) -> None:
        self._store = store

    async def get_admin_role(self, user_id: str, gym_id: str) -> Optional[AdminRole]:
        """Role of user on gym, None when not an administrator."""
        snapshots = await self._store.query(
            Query(GYM_ADMINISTRATORS)
            .where("userId", "==", user_id)
            .where("gymId", "==", gym_id)
        )
        for snapshot in snapshots:
            admin = GymAdministratorCodec.decode(snapshot.data)
            if admin is not None:
                return admin.role
        return None

    async def can_manage_gym(self, user_id: str, gym_id: str) -> bool:
        return await self.get_admin_role(user_id, gym_id) is not None

    async def can_edit(self, user: User, item: ActivityItem) -> bool:
        if item.author.id == user.id:
            return True
        gym_id = item.gym_id
        if gym_id is None:
            return False
        return await self.can_manage_gym(user.id, gym_id)

    async def can_delete(self, user: User, item: ActivityItem) -> bool:
        if item.author.id == user.id:
            return True
        gym_id = item.gym_id
        if gym_id is None:
            return False
        return await self.get_admin_role(user.id, gym_id) in DELETE_ROLES

    async def get_administrators(self, gym_id: str) -> List[GymAdministrator]:
        snapshots = await self._store.query(
            Query(GYM_ADMINISTRATORS).where("gymId", "==", gym_id).order("addedAt")
        )
        admins = [GymAdministratorCodec.decode(s.data) for s in snapshots]
        return [a for a in admins if a is not None]

    async def add_administrator(
        self,
        user_id: str,
        gym_id: str,
        role: AdminRole,
        added_by: str,
    ) -> GymAdministrator:
        admin = GymAdministrator(
            id=new_id(),
            user_id=user_id,
            gym_id=gym_id,
            role=role,
            added_by=added_by,
        )
        await self._store.set(GYM_ADMINISTRATORS, admin.id, GymAdministratorCodec.encode(admin))
        logger.info("Gym administrator added", gym_id=gym_id, user_id=user_id, role=role.value)
        return admin

    async def remove_administrator(self, admin_id: str) -> None:
        await self._store.delete(GYM_ADMINISTRATORS, admin_id)
