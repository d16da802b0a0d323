"""
Task and task group API endpoints.

Two routers: /tasks and /task-groups. Both resources are shared with the
whole team.
"""

import logging
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from postgrest.exceptions import APIError

from crm_backend.access import RowLevelSecurityError
from crm_backend.auth.dependencies import AuthenticatedUser, get_authenticated_user
from crm_backend.db.client import get_supabase_client
from crm_backend.routes.errors import (
    empty_update,
    from_api_error,
    not_found,
    policy_violation,
    server_error,
)
from crm_backend.schemas.tasks import (
    TaskCreateRequest,
    TaskCreateResponse,
    TaskDeleteResponse,
    TaskGroupCreateRequest,
    TaskGroupCreateResponse,
    TaskGroupDeleteResponse,
    TaskGroupListResponse,
    TaskGroupResponse,
    TaskGroupUpdateRequest,
    TaskGroupUpdateResponse,
    TaskListResponse,
    TaskResponse,
    TaskStatus,
    TaskUpdateRequest,
    TaskUpdateResponse,
)
from crm_backend.services.task_group_service import (
    create_task_group,
    delete_task_group,
    get_task_groups,
    update_task_group,
)
from crm_backend.services.task_service import create_task, delete_task, get_tasks, update_task
from crm_backend.utils.constants import DEFAULT_TASK_GROUP_COLOR

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])
groups_router = APIRouter(prefix="/task-groups", tags=["tasks"])


def _as_str(v: Any) -> str:
    return str(v) if v is not None else ""


def _build_task_response(task: Dict[str, Any]) -> TaskResponse:
    return TaskResponse(
        id=_as_str(task.get("id")),
        title=_as_str(task.get("title")),
        description=task.get("description"),
        status=_as_str(task.get("status") or "pending"),
        priority=_as_str(task.get("priority") or "medium"),
        assigned_to=task.get("assigned_to"),
        client_id=task.get("client_id"),
        task_group_id=task.get("task_group_id"),
        due_date=task.get("due_date"),
        is_shared=bool(task.get("is_shared")),
        created_by=task.get("created_by"),
        created_at=_as_str(task.get("created_at")),
        updated_at=_as_str(task.get("updated_at")),
    )


def _build_group_response(group: Dict[str, Any]) -> TaskGroupResponse:
    return TaskGroupResponse(
        id=_as_str(group.get("id")),
        name=_as_str(group.get("name")),
        description=group.get("description"),
        color=_as_str(group.get("color") or DEFAULT_TASK_GROUP_COLOR),
        created_by=group.get("created_by"),
        created_at=_as_str(group.get("created_at")),
        updated_at=_as_str(group.get("updated_at")),
    )


# --- Tasks ---

@router.get(
    "",
    response_model=TaskListResponse,
    status_code=status.HTTP_200_OK,
    summary="List tasks"
)
async def list_tasks(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    task_status: Optional[TaskStatus] = Query(None, alias="status", description="Filter by status"),
    task_group_id: Optional[str] = Query(None, description="Filter by task group UUID"),
    assigned_to: Optional[str] = Query(None, description="Filter by assignee UUID")
) -> TaskListResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        tasks = await get_tasks(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            status=task_status,
            task_group_id=task_group_id,
            assigned_to=assigned_to
        )

        responses = [_build_task_response(t) for t in tasks]
        return TaskListResponse(tasks=responses, count=len(responses))

    except Exception as e:
        logger.error(f"Failed to list tasks: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve tasks")


@router.post(
    "",
    response_model=TaskCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create task",
    description="References that are not UUIDs (assigned_to, client_id, task_group_id) are stored as null."
)
async def create_new_task(
    request: TaskCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> TaskCreateResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        created = await create_task(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            **request.model_dump()
        )

        return TaskCreateResponse(
            status="CREATED",
            task=_build_task_response(created),
            message="Task created successfully"
        )

    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except APIError as e:
        logger.error(f"Failed to create task: {e}", exc_info=True)
        raise from_api_error(e, "create_error", "Failed to create task")
    except Exception as e:
        logger.error(f"Failed to create task: {e}", exc_info=True)
        raise server_error("create_error", "Failed to create task")


@router.patch(
    "/{task_id}",
    response_model=TaskUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Update task"
)
async def update_existing_task(
    task_id: Annotated[str, Path(description="Task UUID")],
    request: TaskUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> TaskUpdateResponse:
    updates = request.model_dump(exclude_none=True)

    if not updates:
        raise empty_update()

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        updated = await update_task(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            task_id=task_id,
            **updates
        )

        if not updated:
            raise not_found("Task")

        return TaskUpdateResponse(
            status="UPDATED",
            task=_build_task_response(updated),
            message="Task updated successfully"
        )

    except HTTPException:
        raise
    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except APIError as e:
        logger.error(f"Failed to update task {task_id}: {e}", exc_info=True)
        raise from_api_error(e, "update_error", "Failed to update task")
    except Exception as e:
        logger.error(f"Failed to update task {task_id}: {e}", exc_info=True)
        raise server_error("update_error", "Failed to update task")


@router.delete(
    "/{task_id}",
    response_model=TaskDeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete task"
)
async def delete_existing_task(
    task_id: Annotated[str, Path(description="Task UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> TaskDeleteResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        deleted = await delete_task(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            task_id=task_id
        )

        if not deleted:
            raise not_found("Task")

        return TaskDeleteResponse(status="DELETED", message="Task deleted successfully")

    except HTTPException:
        raise
    except APIError as e:
        logger.error(f"Failed to delete task {task_id}: {e}", exc_info=True)
        raise from_api_error(e, "delete_error", "Failed to delete task")
    except Exception as e:
        logger.error(f"Failed to delete task {task_id}: {e}", exc_info=True)
        raise server_error("delete_error", "Failed to delete task")


# --- Task groups ---

@groups_router.get(
    "",
    response_model=TaskGroupListResponse,
    status_code=status.HTTP_200_OK,
    summary="List task groups"
)
async def list_task_groups(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> TaskGroupListResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        groups = await get_task_groups(supabase_client=supabase_client, caller=auth_user.caller)

        responses = [_build_group_response(g) for g in groups]
        return TaskGroupListResponse(task_groups=responses, count=len(responses))

    except Exception as e:
        logger.error(f"Failed to list task groups: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve task groups")


@groups_router.post(
    "",
    response_model=TaskGroupCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create task group"
)
async def create_new_task_group(
    request: TaskGroupCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> TaskGroupCreateResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        created = await create_task_group(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            name=request.name,
            description=request.description,
            color=request.color
        )

        return TaskGroupCreateResponse(
            status="CREATED",
            task_group=_build_group_response(created),
            message="Task group created successfully"
        )

    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except APIError as e:
        logger.error(f"Failed to create task group: {e}", exc_info=True)
        raise from_api_error(e, "create_error", "Failed to create task group")
    except Exception as e:
        logger.error(f"Failed to create task group: {e}", exc_info=True)
        raise server_error("create_error", "Failed to create task group")


@groups_router.patch(
    "/{group_id}",
    response_model=TaskGroupUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Update task group"
)
async def update_existing_task_group(
    group_id: Annotated[str, Path(description="Task group UUID")],
    request: TaskGroupUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> TaskGroupUpdateResponse:
    updates = request.model_dump(exclude_none=True)

    if not updates:
        raise empty_update()

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        updated = await update_task_group(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            group_id=group_id,
            **updates
        )

        if not updated:
            raise not_found("Task group")

        return TaskGroupUpdateResponse(
            status="UPDATED",
            task_group=_build_group_response(updated),
            message="Task group updated successfully"
        )

    except HTTPException:
        raise
    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except APIError as e:
        logger.error(f"Failed to update task group {group_id}: {e}", exc_info=True)
        raise from_api_error(e, "update_error", "Failed to update task group")
    except Exception as e:
        logger.error(f"Failed to update task group {group_id}: {e}", exc_info=True)
        raise server_error("update_error", "Failed to update task group")


@groups_router.delete(
    "/{group_id}",
    response_model=TaskGroupDeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete task group",
    description="Deletes the group and every task in it."
)
async def delete_existing_task_group(
    group_id: Annotated[str, Path(description="Task group UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> TaskGroupDeleteResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        deleted = await delete_task_group(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            group_id=group_id
        )

        if not deleted:
            raise not_found("Task group")

        return TaskGroupDeleteResponse(status="DELETED", message="Task group deleted successfully")

    except HTTPException:
        raise
    except APIError as e:
        logger.error(f"Failed to delete task group {group_id}: {e}", exc_info=True)
        raise from_api_error(e, "delete_error", "Failed to delete task group")
    except Exception as e:
        logger.error(f"Failed to delete task group {group_id}: {e}", exc_info=True)
        raise server_error("delete_error", "Failed to delete task group")
