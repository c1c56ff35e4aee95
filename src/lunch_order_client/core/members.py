from __future__ import annotations
import logging
from typing import List, Mapping

from lunch_order_client.models.group import Group, Identity, Member, MemberDetail

logger = logging.getLogger(__name__)


def placeholder_name(user_id: str) -> str:
    return f"User {str(user_id)[-4:]}"


def resolve_display_name(
    user_id: str,
    group: Group | None = None,
    directory: Mapping[str, str] | None = None,
    viewer: Identity | None = None,
) -> str:
    """Имя участника: снимок в группе -> справочник -> сам зритель -> заглушка."""
    if group is not None:
        name = group.detail_name(user_id)
        if name:
            return name
    if directory and directory.get(user_id):
        return directory[user_id]
    if viewer is not None and viewer.id == user_id and viewer.username:
        return viewer.username
    return placeholder_name(user_id)


def member_list(group: Group, directory: Mapping[str, str] | None = None,
                viewer: Identity | None = None) -> List[Member]:
    members = []
    for user_id in group.members:
        name = resolve_display_name(user_id, group, directory, viewer)
        initial = (name.strip()[:1] or "?").upper()
        members.append(Member(id=user_id, name=name, initial=initial))
    return members


def ensure_member_details(group: Group, directory: Mapping[str, str] | None = None) -> Group:
    """
    Шаг починки: ровно одна запись member_details на каждого участника, в
    порядке members. Пустые имена заполняются из справочника или заглушкой,
    записи не-участников отбрасываются. Если чинить нечего, возвращается тот же объект.
    """
    existing = {}
    for detail in group.member_details:
        existing.setdefault(detail.id, detail)

    repaired = []
    for user_id in group.members:
        detail = existing.get(user_id)
        if detail is not None and detail.name:
            repaired.append(detail)
            continue
        name = (directory or {}).get(user_id) or placeholder_name(user_id)
        repaired.append(MemberDetail(id=user_id, name=name))

    if repaired == list(group.member_details):
        return group
    logger.debug(f"Repaired member details of group {group.id}")
    return group.model_copy(update={"member_details": repaired})
