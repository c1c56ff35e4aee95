# Файл: lunch_order_client/store.py

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

from lunch_order_client.config import OrderPolicyConfig
from lunch_order_client.core import (GroupView, LocalSelection, build_group_view, countdown,
                                     ensure_member_details)
from lunch_order_client.exceptions import (GatewayError, GroupClosedError, NotFoundError,
                                           OrderClientError, PermissionDeniedError, ValidationError)
from lunch_order_client.models import (DishDelta, Group, GroupCreate, GroupJoin, GroupLeave,
                                       GroupSubmit, Identity, ReferenceData)
from lunch_order_client.repositories.gateway import GroupGateway

logger = logging.getLogger(__name__)

T = TypeVar("T")
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class GroupStore:
    """
    Владелец канонического списка групп и справочников одной сессии.

    Создаётся при старте сессии и закрывается при выходе (`async with` или
    `aclose()`). Единственный, кто пишет каноническое состояние: производные
    представления получают только неизменяемые снимки.

    Каждая мутация либо целиком применяется и возвращает новую группу, либо
    оставляет состояние нетронутым и поднимает исключение. Записи в одну
    группу из этого клиента сериализуются, порядок вызовов сохраняется.
    """

    def __init__(
        self,
        gateway: GroupGateway,
        policy: Optional[OrderPolicyConfig] = None,
        clock: Clock = utc_now,
    ):
        self._gateway = gateway
        self.policy = policy or OrderPolicyConfig()
        self._clock = clock

        self._groups: List[Group] = []
        self.reference = ReferenceData()
        self.directory: Dict[str, str] = {}
        self.loading = False
        self.error = ""

        self._locks: Dict[str, asyncio.Lock] = {}
        # Группы, починенные в памяти, но ещё не сохранённые через шлюз
        self._unsaved_repairs: List[str] = []
        self._closed = False

    # ――― lifecycle ――― #

    async def __aenter__(self) -> "GroupStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Сбрасывает состояние сессии и освобождает шлюз."""
        if self._closed:
            return
        self._closed = True
        self._groups = []
        self.directory = {}
        self._locks.clear()
        await self._gateway.aclose()
        logger.info("Group store closed")

    @property
    def closed(self) -> bool:
        return self._closed

    # ――― snapshots ――― #

    @property
    def groups(self) -> Tuple[Group, ...]:
        return tuple(self._groups)

    def now(self) -> datetime:
        return self._clock()

    def get_group(self, group_id: str) -> Optional[Group]:
        return next((g for g in self._groups if g.id == group_id), None)

    def require_group(self, group_id: str) -> Group:
        group = self.get_group(group_id)
        if group is None:
            raise NotFoundError(f"Group with id {group_id} not found.")
        return group

    def menu_for(self, group: Group):
        return self.reference.menu(group.restaurant_id)

    def view(self, group_id: str, viewer: Identity, selection: LocalSelection | Mapping[str, int] | None = None) -> GroupView:
        """Модель представления группы для зрителя, с его несохранёнными выборами."""
        group = self.require_group(group_id)
        selections = selection.as_dict() if isinstance(selection, LocalSelection) else selection
        return build_group_view(
            group,
            viewer,
            self.now(),
            catalog=self.menu_for(group),
            selections=selections,
            directory=self.directory,
            count_departed_selections=self.policy.count_departed_selections,
        )

    # ――― internals ――― #

    def _lock(self, group_id: str) -> asyncio.Lock:
        lock = self._locks.get(group_id)
        if lock is None:
            lock = self._locks[group_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def _locked(self, group_id: str):
        """Сериализует записи одной группы. Замок неизвестной группы не копится."""
        lock = self._lock(group_id)
        try:
            async with lock:
                yield
        except NotFoundError:
            if self._locks.get(group_id) is lock and not lock.locked() and self.get_group(group_id) is None:
                del self._locks[group_id]
            raise

    def _ensure_open(self) -> None:
        if self._closed:
            raise OrderClientError("Group store is closed.")

    async def _call(self, action: str, op: Awaitable[T]) -> T:
        """Ошибки домена пробрасываются как есть, всё прочее заворачивается в GatewayError."""
        try:
            return await op
        except OrderClientError as e:
            logger.warning(f"{action} failed: {e}")
            raise
        except Exception as e:
            logger.error(f"{action} failed at the gateway: {e}")
            raise GatewayError(f"{action} failed: {e}") from e

    def _replace(self, group: Group) -> Group:
        for i, existing in enumerate(self._groups):
            if existing.id == group.id:
                self._groups[i] = group
                return group
        self._groups.append(group)
        return group

    def _check_mutable(self, group_id: str, *, deadline: bool) -> None:
        group = self.get_group(group_id)
        if group is None:
            return
        if self.policy.lock_after_submit and group.is_submitted:
            raise GroupClosedError(f"Group {group_id} has already been submitted.")
        if deadline and self.policy.enforce_deadline and not countdown(group.deadline_at, self.now()).open:
            raise GroupClosedError(f"Deadline of group {group_id} has passed.")

    def _resolve_name(self, user_id: str, given: Optional[str]) -> str:
        # Заглушку подставляют при чтении, в хранилище уходит пустое имя
        if given and given.strip():
            return given.strip()
        return self.directory.get(user_id) or ""

    # ――― read path ――― #

    async def bootstrap(self) -> bool:
        """
        Загружает группы, рестораны с меню и справочник пользователей.
        При ошибке оставляет прежний снимок и записывает её в `error`.
        """
        self._ensure_open()
        self.loading = True
        self.error = ""
        try:
            groups, reference, users = await asyncio.gather(
                self._gateway.list_groups(),
                self._gateway.list_restaurants_with_menus(),
                self._gateway.list_users(),
            )
        except Exception as e:
            self.error = str(e) or "Failed to bootstrap."
            logger.error(f"Bootstrap failed, keeping previous snapshot: {e}")
            return False
        finally:
            self.loading = False

        self._groups = list(groups)
        self._unsaved_repairs = []
        self.reference = reference
        self.directory = dict(users)
        repaired = self._repair_snapshot()
        logger.info(f"Bootstrapped {len(self._groups)} groups, {len(reference.restaurants)} restaurants"
                    + (f", repaired {len(repaired)}" if repaired else ""))
        return True

    def _repair_snapshot(self) -> List[str]:
        repaired = []
        for i, group in enumerate(self._groups):
            fixed = ensure_member_details(group, self.directory)
            if fixed is not group:
                self._groups[i] = fixed
                repaired.append(group.id)
                if group.id not in self._unsaved_repairs:
                    self._unsaved_repairs.append(group.id)
        return repaired

    async def repair_member_details(self, persist: bool = False) -> List[str]:
        """
        Шаг миграции: приводит member_details в соответствие с members.
        С persist=True исправленные записи сохраняются через шлюз.
        Возвращает id групп, починка которых не была сохранена до этого вызова.
        """
        self._ensure_open()
        self._repair_snapshot()
        repaired = [gid for gid in self._unsaved_repairs if self.get_group(gid) is not None]
        if persist:
            for group_id in repaired:
                fixed = self.require_group(group_id)
                async with self._locked(group_id):
                    saved = await self._call(
                        "Repair member details",
                        self._gateway.replace_member_details(group_id, list(fixed.member_details)),
                    )
                self._replace(saved)
                self._unsaved_repairs.remove(group_id)
                logger.info(f"Persisted member details repair for group {group_id}")
        return repaired

    # ――― mutations ――― #

    async def create_group(
        self,
        name: str,
        restaurant_id: str,
        owner_id: str,
        deadline_at: datetime,
        owner_name: Optional[str] = None,
    ) -> Group:
        self._ensure_open()
        if not name or not name.strip():
            raise ValidationError("Please enter a group name.")
        if not restaurant_id:
            raise ValidationError("Please select a restaurant.")
        if not owner_id:
            raise ValidationError("Owner id must not be empty.")
        deadline_at = _as_utc(deadline_at)
        earliest = self.now() + timedelta(minutes=self.policy.min_deadline_minutes)
        if deadline_at <= earliest:
            if self.policy.min_deadline_minutes:
                raise ValidationError(f"Deadline should be at least {self.policy.min_deadline_minutes} minutes.")
            raise ValidationError("Deadline must be in the future.")

        payload = GroupCreate(
            name=name.strip(),
            restaurant_id=restaurant_id,
            owner_id=owner_id,
            owner_name=self._resolve_name(owner_id, owner_name),
            deadline_at=deadline_at,
        )
        group = await self._call("Create group", self._gateway.create_group(payload))
        self._groups.insert(0, group)
        logger.info(f"Group '{group.name}' ({group.id}) created by {owner_id}",
                    extra={"group_id": group.id, "user_id": owner_id})
        return group

    async def join_group(self, group_id: str, user_id: str, username: Optional[str] = None) -> Group:
        self._ensure_open()
        async with self._locked(group_id):
            self._check_mutable(group_id, deadline=True)
            payload = GroupJoin(group_id=group_id, user_id=user_id, username=self._resolve_name(user_id, username))
            group = await self._call("Join group", self._gateway.join_group(payload))
            if username and not self.directory.get(user_id):
                self.directory[user_id] = username
            logger.info(f"User {user_id} joined group {group_id}", extra={"group_id": group_id, "user_id": user_id})
            return self._replace(group)

    async def leave_group(self, group_id: str, user_id: str) -> Group:
        self._ensure_open()
        async with self._locked(group_id):
            self._check_mutable(group_id, deadline=False)
            known = self.get_group(group_id)
            if known is not None and known.owner_id == user_id:
                raise PermissionDeniedError("Owner cannot leave their own group.")
            group = await self._call("Leave group", self._gateway.leave_group(GroupLeave(group_id=group_id, user_id=user_id)))
            logger.info(f"User {user_id} left group {group_id}", extra={"group_id": group_id, "user_id": user_id})
            return self._replace(group)

    async def _add_dish(self, group_id: str, user_id: str, dish_id: str, qty: int) -> Group:
        if not dish_id:
            raise ValidationError("Dish id must not be empty.")
        if isinstance(qty, bool) or not isinstance(qty, int):
            raise ValidationError(f"Dish delta must be an integer, got {qty!r}.")
        self._check_mutable(group_id, deadline=True)
        payload = DishDelta(group_id=group_id, user_id=user_id, dish_id=dish_id, qty=qty)
        group = await self._call("Add dish", self._gateway.apply_dish_delta(payload))
        logger.debug(f"Applied delta {qty:+d} of {dish_id} for {user_id} in group {group_id}",
                     extra={"group_id": group_id, "user_id": user_id, "dish_id": dish_id})
        return self._replace(group)

    async def add_dish(self, group_id: str, user_id: str, dish_id: str, qty: int) -> Group:
        """Прибавляет qty (дельту, не абсолютное значение) к количеству блюда участника."""
        self._ensure_open()
        async with self._locked(group_id):
            return await self._add_dish(group_id, user_id, dish_id, qty)

    async def save_selections(self, group_id: str, identity: Identity, selection: LocalSelection) -> Group:
        """
        Сохраняет локальный выбор зрителя: считает дельты от последнего
        сохранённого состояния и применяет их по очереди. После успеха выбор сбрасывается.
        """
        self._ensure_open()
        async with self._locked(group_id):
            group = self.require_group(group_id)
            if not group.is_member(identity.id):
                raise PermissionDeniedError("Join the group before saving choices.")
            if not countdown(group.deadline_at, self.now()).open:
                raise GroupClosedError(f"Deadline of group {group_id} has passed.")

            deltas = selection.deltas_against(group.dishes.get(identity.id, {}))
            for dish_id, delta in deltas.items():
                group = await self._add_dish(group_id, identity.id, dish_id, delta)
            selection.reset()
            logger.info(f"Saved {len(deltas)} dish changes for {identity.id} in group {group_id}",
                        extra={"group_id": group_id, "user_id": identity.id})
            return group

    async def submit(self, group_id: str, user_id: str) -> Group:
        """Отправка заказа; только владелец."""
        self._ensure_open()
        async with self._locked(group_id):
            known = self.get_group(group_id)
            if known is not None and known.owner_id != user_id:
                raise PermissionDeniedError("Only owner can submit.")
            self._check_mutable(group_id, deadline=False)
            payload = GroupSubmit(group_id=group_id, user_id=user_id, submitted_at=self.now())
            group = await self._call("Submit group", self._gateway.submit_group(payload))
            logger.info(f"Group {group_id} submitted by {user_id}", extra={"group_id": group_id, "user_id": user_id})
            return self._replace(group)

    async def delete_group(self, group_id: str) -> None:
        """Удаляет группу навсегда. Проверка владельца на стороне вызывающего."""
        self._ensure_open()
        self.loading = True
        self.error = ""
        try:
            async with self._locked(group_id):
                await self._call("Delete group", self._gateway.delete_group(group_id))
        except OrderClientError as e:
            self.error = str(e) or "Failed to delete group."
            raise
        finally:
            self.loading = False
        self._groups = [g for g in self._groups if g.id != group_id]
        self._locks.pop(group_id, None)
        logger.info(f"Group {group_id} deleted", extra={"group_id": group_id})
