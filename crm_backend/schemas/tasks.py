"""
Pydantic schemas for task and task group endpoints.

Tasks and task groups are shared with the whole team. A task optionally
belongs to a group; deleting a group deletes its tasks.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

TaskStatus = Literal["pending", "in_progress", "completed"]
TaskPriority = Literal["low", "medium", "high"]

HEX_COLOR_PATTERN = r'^#[0-9A-Fa-f]{6}$'


# --- Tasks ---

class TaskResponse(BaseModel):
    id: str = Field(..., description="Task UUID")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None)
    status: str = Field(..., description="pending, in_progress or completed")
    priority: str = Field(..., description="low, medium or high")
    assigned_to: Optional[str] = Field(None, description="Assignee UUID")
    client_id: Optional[str] = Field(None, description="Related client UUID")
    task_group_id: Optional[str] = Field(None, description="Owning task group UUID")
    due_date: Optional[str] = Field(None, description="ISO-8601 due date")
    is_shared: bool = Field(False, description="Flagged for team attention")
    created_by: Optional[str] = Field(None, description="Creator UUID")
    created_at: str = Field(..., description="ISO-8601 timestamp when created")
    updated_at: str = Field(..., description="ISO-8601 timestamp of last update")


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    count: int = Field(..., description="Number of tasks returned")


class TaskCreateRequest(BaseModel):
    """
    Request to create a task.

    assigned_to, client_id and task_group_id that are not UUIDs are stored as
    null.
    """
    title: str = Field(..., min_length=1, max_length=255, examples=["Send proposal to Acme"])
    description: Optional[str] = Field(None, max_length=5000)
    status: TaskStatus = Field("pending")
    priority: TaskPriority = Field("medium")
    assigned_to: Optional[str] = Field(None)
    client_id: Optional[str] = Field(None)
    task_group_id: Optional[str] = Field(None)
    due_date: Optional[datetime] = Field(None)
    is_shared: bool = Field(False)


class TaskUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    status: Optional[TaskStatus] = Field(None)
    priority: Optional[TaskPriority] = Field(None)
    assigned_to: Optional[str] = Field(None)
    client_id: Optional[str] = Field(None)
    task_group_id: Optional[str] = Field(None)
    due_date: Optional[datetime] = Field(None)
    is_shared: Optional[bool] = Field(None)


class TaskCreateResponse(BaseModel):
    status: str = Field("CREATED")
    task: TaskResponse
    message: str = Field(..., examples=["Task created successfully"])


class TaskUpdateResponse(BaseModel):
    status: str = Field("UPDATED")
    task: TaskResponse
    message: str = Field(..., examples=["Task updated successfully"])


class TaskDeleteResponse(BaseModel):
    status: str = Field("DELETED")
    message: str = Field(..., examples=["Task deleted successfully"])


# --- Task groups ---

class TaskGroupResponse(BaseModel):
    id: str = Field(..., description="Task group UUID")
    name: str = Field(..., description="Group name")
    description: Optional[str] = Field(None)
    color: str = Field(..., description="Hex color code (#RRGGBB)")
    created_by: Optional[str] = Field(None, description="Creator UUID")
    created_at: str = Field(..., description="ISO-8601 timestamp when created")
    updated_at: str = Field(..., description="ISO-8601 timestamp of last update")


class TaskGroupListResponse(BaseModel):
    task_groups: list[TaskGroupResponse]
    count: int = Field(..., description="Number of groups returned")


class TaskGroupCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Q3 launch"])
    description: Optional[str] = Field(None, max_length=2000)
    color: str = Field(
        "#3B82F6",
        pattern=HEX_COLOR_PATTERN,
        description="Hex color code for UI display",
        examples=["#3B82F6", "#10B981"]
    )


class TaskGroupUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)


class TaskGroupCreateResponse(BaseModel):
    status: str = Field("CREATED")
    task_group: TaskGroupResponse
    message: str = Field(..., examples=["Task group created successfully"])


class TaskGroupUpdateResponse(BaseModel):
    status: str = Field("UPDATED")
    task_group: TaskGroupResponse
    message: str = Field(..., examples=["Task group updated successfully"])


class TaskGroupDeleteResponse(BaseModel):
    status: str = Field("DELETED")
    message: str = Field(..., examples=["Task group deleted successfully"])
