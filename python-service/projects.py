"""
Projects, task board and team members

- list_projects / get_project: projects the user owns or belongs to
- create_task / assign_task / update_task_status: task board writes
- add_member / update_member_role / remove_member: owner-only team management

Every write that can produce an email hands its change event to the
notification dispatcher, the same way a database webhook would.
"""

from typing import Any, Dict, List, Optional

from errors import AuthRequiredError, ForbiddenError, NotFoundError, ValidationError
from models import MemberRole, TaskPriority, TaskStatus
from validation import is_blank, parse_choice, parse_date, require


async def _notify(dispatcher, op: str, table: str, record, old_record=None) -> None:
    if dispatcher is None or not record:
        return
    outcome = await dispatcher.dispatch(
        {"type": op, "table": table, "record": record, "old_record": old_record}
    )
    print(f"[PROJECTS] Notification {outcome.status}: {outcome.reason or outcome.recipient}")


# ═══════════════════════════════════════════════════════════════
# ACCESS
# ═══════════════════════════════════════════════════════════════


async def _membership(store, project_id: str, user_id: str) -> Optional[Dict[str, Any]]:
    rows = await store.query(
        "project_members", {"project_id": project_id, "user_id": user_id}, limit=1
    )
    return rows[0] if rows else None


async def _project_access(
    store, user, project_id: str, owner_only: bool = False
) -> Dict[str, Any]:
    """Load a project the user may see; owner_only limits it to the owner"""
    if user is None:
        raise AuthRequiredError()

    project = await store.get("projects", project_id)
    if not project:
        raise NotFoundError("Project", project_id)

    if project.get("owner_id") == user.id:
        return project
    if owner_only:
        raise ForbiddenError("Only the project owner can manage members")
    if not await _membership(store, project_id, user.id):
        raise ForbiddenError("Not a member of this project")
    return project


async def _task_access(store, user, task_id: str):
    if user is None:
        raise AuthRequiredError()
    task = await store.get("tasks", task_id)
    if not task:
        raise NotFoundError("Task", task_id)
    project = await _project_access(store, user, task["project_id"])
    return task, project


async def _member_access(store, user, member_id: str) -> Dict[str, Any]:
    if user is None:
        raise AuthRequiredError()
    member = await store.get("project_members", member_id)
    if not member:
        raise NotFoundError("Member", member_id)
    await _project_access(store, user, member["project_id"], owner_only=True)
    return member


# ═══════════════════════════════════════════════════════════════
# READS
# ═══════════════════════════════════════════════════════════════


async def list_projects(store, user) -> List[Dict[str, Any]]:
    """Owned projects plus projects the user is a member of, newest first"""
    if user is None:
        raise AuthRequiredError()

    owned = await store.query("projects", {"owner_id": user.id})
    memberships = await store.query(
        "project_members", {"user_id": user.id}, columns="project_id"
    )

    projects = {p["id"]: p for p in owned}
    member_ids = sorted({m["project_id"] for m in memberships} - set(projects))
    if member_ids:
        for project in await store.query("projects", {"id": member_ids}):
            projects[project["id"]] = project

    results = sorted(
        projects.values(), key=lambda p: p.get("created_at") or "", reverse=True
    )
    print(f"[PROJECTS] Listed {len(results)} projects for {user.id}")
    return results


async def get_project(store, user, project_id: str) -> Dict[str, Any]:
    project = await _project_access(store, user, project_id)
    return {**project, "is_owner": project.get("owner_id") == user.id}


async def list_tasks(store, user, project_id: str) -> List[Dict[str, Any]]:
    await _project_access(store, user, project_id)
    return await store.query(
        "tasks", {"project_id": project_id}, order=[("created_at", True)]
    )


async def list_members(store, user, project_id: str) -> List[Dict[str, Any]]:
    await _project_access(store, user, project_id)
    return await store.query(
        "project_members", {"project_id": project_id}, order=[("created_at", False)]
    )


# ═══════════════════════════════════════════════════════════════
# TASKS
# ═══════════════════════════════════════════════════════════════


async def _check_assignee(store, project, assigned_to: Optional[str]) -> Optional[str]:
    if is_blank(assigned_to):
        return None
    if assigned_to == project.get("owner_id"):
        return assigned_to
    if not await _membership(store, project["id"], assigned_to):
        raise ValidationError("assigned_to", "assignee is not on this project")
    return assigned_to


def validate_task(form: Dict[str, Any]) -> Dict[str, Any]:
    """Title required; priority and status fall back to medium / todo"""
    require(form, ["title"])
    description = form.get("description")
    priority = form.get("priority") or TaskPriority.MEDIUM.value
    status = form.get("status") or TaskStatus.TODO.value

    return {
        "title": str(form["title"]).strip(),
        "description": None if is_blank(description) else str(description).strip(),
        "priority": parse_choice("priority", priority, TaskPriority),
        "status": parse_choice("status", status, TaskStatus),
        "due_date": parse_date("due_date", form.get("due_date")),
    }


async def create_task(
    store, user, project_id: str, form: Dict[str, Any], dispatcher=None
) -> Dict[str, Any]:
    """Insert a task; an assigned task emails the assignee"""
    data = validate_task(form)
    project = await _project_access(store, user, project_id)
    assigned_to = await _check_assignee(store, project, form.get("assigned_to"))

    task = await store.insert(
        "tasks",
        {
            **data,
            "project_id": project_id,
            "created_by": user.id,
            "assigned_to": assigned_to,
        },
    )
    print(f"[PROJECTS] Task '{data['title']}' created in {project_id}")

    await _notify(dispatcher, "INSERT", "tasks", task)
    return task


async def assign_task(
    store, user, task_id: str, assigned_to: Optional[str], dispatcher=None
) -> Dict[str, Any]:
    """Set or clear a task's assignee; a new assignee is emailed"""
    task, project = await _task_access(store, user, task_id)
    assigned_to = await _check_assignee(store, project, assigned_to)

    updated = await store.update("tasks", task_id, {"assigned_to": assigned_to})
    updated = updated or {**task, "assigned_to": assigned_to}
    print(f"[PROJECTS] Task {task_id} assigned to {assigned_to}")

    await _notify(dispatcher, "UPDATE", "tasks", updated, old_record=task)
    return updated


async def update_task_status(
    store, user, task_id: str, status: str, dispatcher=None
) -> Dict[str, Any]:
    task, _ = await _task_access(store, user, task_id)
    new_status = parse_choice("status", status, TaskStatus)

    updated = await store.update("tasks", task_id, {"status": new_status})
    updated = updated or {**task, "status": new_status}
    print(f"[PROJECTS] Task {task_id} -> {new_status}")

    await _notify(dispatcher, "UPDATE", "tasks", updated, old_record=task)
    return updated


# ═══════════════════════════════════════════════════════════════
# MEMBERS
# ═══════════════════════════════════════════════════════════════


async def add_member(
    store,
    user,
    project_id: str,
    member_user_id: str,
    role: str = MemberRole.MEMBER.value,
    dispatcher=None,
) -> Dict[str, Any]:
    """
    Owner adds a user to the project and the new member is emailed.

    The owner cannot be added, and a user can only be added once.
    """
    if is_blank(member_user_id):
        raise ValidationError("user_id")
    role = parse_choice("role", role or MemberRole.MEMBER.value, MemberRole)

    project = await _project_access(store, user, project_id, owner_only=True)
    if member_user_id == project.get("owner_id"):
        raise ValidationError("user_id", "the owner is already on this project")
    if await _membership(store, project_id, member_user_id):
        raise ValidationError("user_id", "user is already a member")

    member = await store.insert(
        "project_members",
        {"project_id": project_id, "user_id": member_user_id, "role": role},
    )
    print(f"[PROJECTS] Added {member_user_id} to {project_id} as {role}")

    await _notify(dispatcher, "INSERT", "project_members", member)
    return member


async def update_member_role(store, user, member_id: str, role: str) -> Dict[str, Any]:
    member = await _member_access(store, user, member_id)
    role = parse_choice("role", role, MemberRole)

    updated = await store.update("project_members", member_id, {"role": role})
    print(f"[PROJECTS] Member {member_id} -> {role}")
    return updated or {**member, "role": role}


async def remove_member(store, user, member_id: str) -> None:
    member = await _member_access(store, user, member_id)
    await store.delete("project_members", member_id)
    print(f"[PROJECTS] Removed {member['user_id']} from {member['project_id']}")
