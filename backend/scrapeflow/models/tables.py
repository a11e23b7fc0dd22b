"""SQLModel tables for workflows, executions, phases, logs, credits and credentials."""
from datetime import UTC, datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored timezone-aware; naive values are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def new_id() -> str:
    return str(uuid4())


class WorkflowStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class ExecutionStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ExecutionTrigger(str, Enum):
    MANUAL = "MANUAL"
    SCHEDULED = "SCHEDULED"
    CRON = "CRON"


class PhaseStatus(str, Enum):
    CREATED = "CREATED"
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Workflow(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    description: str = ""
    status: WorkflowStatus = Field(default=WorkflowStatus.DRAFT, index=True)

    # editor graph (flow definition document) and, once published, its compiled plan
    definition: str = "{}"
    execution_plan: Optional[str] = None
    credits_cost: int = 0

    cron: Optional[str] = None
    next_run_at: Optional[datetime] = Field(default=None, index=True)

    last_run_at: Optional[datetime] = None
    last_run_id: Optional[str] = None
    last_run_status: Optional[ExecutionStatus] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class WorkflowExecution(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    workflow_id: str = Field(foreign_key="workflow.id", index=True)
    user_id: str = Field(index=True)

    status: ExecutionStatus = Field(default=ExecutionStatus.PENDING, index=True)
    trigger: ExecutionTrigger = ExecutionTrigger.MANUAL
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    credits_consumed: int = 0

    # snapshot of the flow definition used for this run
    definition: str = "{}"


class ExecutionPhase(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    execution_id: str = Field(foreign_key="workflowexecution.id", index=True)
    user_id: str = Field(index=True)

    number: int
    name: str
    node: str  # serialized NodeInstance
    status: PhaseStatus = Field(default=PhaseStatus.CREATED)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    inputs: Optional[str] = None
    outputs: Optional[str] = None
    credits_consumed: int = 0


class ExecutionLog(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    phase_id: str = Field(foreign_key="executionphase.id", index=True)
    message: str
    level: str
    timestamp: datetime = Field(default_factory=utcnow)


class UserBalance(SQLModel, table=True):
    user_id: str = Field(primary_key=True)
    credits: int = 0


class Credential(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    value: str  # Fernet-encrypted
    created_at: datetime = Field(default_factory=utcnow)
