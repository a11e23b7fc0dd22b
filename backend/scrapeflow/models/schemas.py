"""Pydantic schemas for the flow definition document and API request/response models."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..tasks.base import TaskType

DEFINITION_VERSION = 1


class FlowNodeData(BaseModel):
    type: TaskType
    inputs: dict[str, str] = {}


class FlowNodeSchema(BaseModel):
    id: str
    type: str = "FlowScrapeNode"
    data: FlowNodeData
    position: dict[str, float] = {}


class FlowEdgeSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    source: str
    source_handle: str = Field(alias="sourceHandle")
    target: str
    target_handle: str = Field(alias="targetHandle")


class FlowDefinitionSchema(BaseModel):
    """Serialized editor graph, stored on workflows and copied onto each execution."""
    version: int = DEFINITION_VERSION
    nodes: list[FlowNodeSchema] = []
    edges: list[FlowEdgeSchema] = []
    viewport: dict[str, Any] = {}


class CreateWorkflowRequest(BaseModel):
    name: str
    description: str = ""
    definition: str | None = None


class UpdateWorkflowRequest(BaseModel):
    definition: str


class UpdateCronRequest(BaseModel):
    cron: str


class RunWorkflowRequest(BaseModel):
    flow_definition: str | None = None


class PublishWorkflowRequest(BaseModel):
    flow_definition: str


class WorkflowResponse(BaseModel):
    id: str
    name: str
    description: str
    status: str
    definition: str
    credits_cost: int
    cron: str | None = None
    next_run_at: datetime | None = None
    last_run_id: str | None = None
    last_run_status: str | None = None
    last_run_at: datetime | None = None


class ExecutionStartedResponse(BaseModel):
    execution_id: str
    status: str


class LogEntrySchema(BaseModel):
    message: str
    level: str
    timestamp: datetime


class PhaseSchema(BaseModel):
    id: str
    number: int
    name: str
    status: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    inputs: dict[str, Any] | None = None
    outputs: dict[str, Any] | None = None
    credits_consumed: int = 0
    logs: list[LogEntrySchema] = []


class ExecutionDetailResponse(BaseModel):
    id: str
    workflow_id: str
    status: str
    trigger: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    credits_consumed: int
    phases: list[PhaseSchema]


class MissingInputsSchema(BaseModel):
    node_id: str
    inputs: list[str]


class PlanErrorResponse(BaseModel):
    kind: str
    invalid_elements: list[MissingInputsSchema] = []
