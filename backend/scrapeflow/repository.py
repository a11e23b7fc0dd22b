"""
Repository Layer
Durable store for workflows, executions, phases and logs, plus the credit
ledger and credential lookup the runtime depends on.
"""
import json
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import Engine, update
from sqlmodel import Session, SQLModel, create_engine, select

from .engine.environment import LogRecord
from .models.tables import (
    Credential,
    ExecutionLog,
    ExecutionPhase,
    ExecutionStatus,
    ExecutionTrigger,
    PhaseStatus,
    UserBalance,
    Workflow,
    WorkflowExecution,
    WorkflowStatus,
    as_utc,
    utcnow,
)
from .security import decrypt_value, encrypt_value


def create_db_engine(url: str) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


class WorkflowRepository:
    """Repository for workflow, execution and ledger operations"""

    def __init__(self, engine: Engine):
        self.engine = engine

    def create_schema(self):
        """Create all database tables"""
        SQLModel.metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def create_workflow(
        self, user_id: str, name: str, description: str = "", definition: str = "{}",
    ) -> Workflow:
        with Session(self.engine) as session:
            workflow = Workflow(
                user_id=user_id, name=name, description=description, definition=definition,
            )
            session.add(workflow)
            session.commit()
            session.refresh(workflow)
            return workflow

    def get_workflow(self, workflow_id: str, user_id: Optional[str] = None) -> Optional[Workflow]:
        with Session(self.engine) as session:
            workflow = session.get(Workflow, workflow_id)
            if workflow is None or (user_id is not None and workflow.user_id != user_id):
                return None
            return workflow

    def _update_workflow(self, workflow_id: str, **values: Any) -> Workflow:
        with Session(self.engine) as session:
            workflow = session.get(Workflow, workflow_id)
            if workflow is None:
                raise LookupError(f"Workflow {workflow_id} not found")
            for key, value in values.items():
                setattr(workflow, key, value)
            workflow.updated_at = utcnow()
            session.add(workflow)
            session.commit()
            session.refresh(workflow)
            return workflow

    def publish_workflow(
        self, workflow_id: str, definition: str, execution_plan: str, credits_cost: int,
    ) -> Workflow:
        return self._update_workflow(
            workflow_id,
            status=WorkflowStatus.PUBLISHED,
            definition=definition,
            execution_plan=execution_plan,
            credits_cost=credits_cost,
        )

    def unpublish_workflow(self, workflow_id: str) -> Workflow:
        return self._update_workflow(
            workflow_id, status=WorkflowStatus.DRAFT, execution_plan=None, credits_cost=0,
        )

    def save_definition(self, workflow_id: str, definition: str) -> Workflow:
        return self._update_workflow(workflow_id, definition=definition)

    def set_schedule(self, workflow_id: str, cron: Optional[str], next_run_at: Optional[datetime]) -> Workflow:
        return self._update_workflow(workflow_id, cron=cron, next_run_at=as_utc(next_run_at))

    # ------------------------------------------------------------------
    # Executions and phases
    # ------------------------------------------------------------------

    def create_execution(
        self,
        workflow_id: str,
        user_id: str,
        trigger: ExecutionTrigger,
        definition: str,
        phases: Iterable[tuple[int, str, str]],
    ) -> WorkflowExecution:
        """Create an execution with one CREATED phase row per (number, name, node) in plan order."""
        with Session(self.engine) as session:
            execution = WorkflowExecution(
                workflow_id=workflow_id,
                user_id=user_id,
                status=ExecutionStatus.PENDING,
                trigger=trigger,
                definition=definition,
            )
            session.add(execution)
            session.flush()
            for number, name, node in phases:
                session.add(ExecutionPhase(
                    execution_id=execution.id,
                    user_id=user_id,
                    number=number,
                    name=name,
                    node=node,
                    status=PhaseStatus.CREATED,
                ))
            session.commit()
            session.refresh(execution)
            return execution

    def get_execution(self, execution_id: str, user_id: Optional[str] = None) -> Optional[WorkflowExecution]:
        with Session(self.engine) as session:
            execution = session.get(WorkflowExecution, execution_id)
            if execution is None or (user_id is not None and execution.user_id != user_id):
                return None
            return execution

    def get_phases(self, execution_id: str) -> list[ExecutionPhase]:
        with Session(self.engine) as session:
            return list(session.exec(
                select(ExecutionPhase)
                .where(ExecutionPhase.execution_id == execution_id)
                .order_by(ExecutionPhase.number)
            ).all())

    def get_phase(self, phase_id: str) -> Optional[ExecutionPhase]:
        with Session(self.engine) as session:
            return session.get(ExecutionPhase, phase_id)

    def get_phase_logs(self, phase_id: str) -> list[ExecutionLog]:
        with Session(self.engine) as session:
            return list(session.exec(
                select(ExecutionLog)
                .where(ExecutionLog.phase_id == phase_id)
                .order_by(ExecutionLog.timestamp)
            ).all())

    def mark_execution_running(
        self, execution_id: str, workflow_id: str, started_at: datetime,
        next_run_at: Optional[datetime] = None,
    ) -> None:
        """Execution -> RUNNING, mirrored onto the workflow's last-run pointers."""
        with Session(self.engine) as session:
            execution = session.get(WorkflowExecution, execution_id)
            execution.status = ExecutionStatus.RUNNING
            execution.started_at = as_utc(started_at)
            session.add(execution)

            workflow = session.get(Workflow, workflow_id)
            if workflow is not None:
                workflow.last_run_at = as_utc(started_at)
                workflow.last_run_status = ExecutionStatus.RUNNING
                workflow.last_run_id = execution_id
                if next_run_at is not None:
                    workflow.next_run_at = as_utc(next_run_at)
                session.add(workflow)
            session.commit()

    def mark_phases_pending(self, phase_ids: list[str]) -> None:
        if not phase_ids:
            return
        with Session(self.engine) as session:
            session.connection().execute(
                update(ExecutionPhase)
                .where(ExecutionPhase.id.in_(phase_ids))
                .values(status=PhaseStatus.PENDING)
            )
            session.commit()

    def start_phase(self, phase_id: str, inputs: dict[str, str], started_at: datetime) -> None:
        with Session(self.engine) as session:
            phase = session.get(ExecutionPhase, phase_id)
            phase.status = PhaseStatus.RUNNING
            phase.started_at = as_utc(started_at)
            phase.inputs = json.dumps(inputs)
            session.add(phase)
            session.commit()

    def finish_phase(
        self,
        phase_id: str,
        status: PhaseStatus,
        outputs: dict[str, str],
        credits_consumed: int,
        logs: list[LogRecord],
        completed_at: datetime,
    ) -> None:
        """Final phase state plus a bulk insert of its collected logs."""
        with Session(self.engine) as session:
            phase = session.get(ExecutionPhase, phase_id)
            phase.status = status
            phase.completed_at = as_utc(completed_at)
            phase.outputs = json.dumps(outputs)
            phase.credits_consumed = credits_consumed
            session.add(phase)
            session.add_all([
                ExecutionLog(
                    phase_id=phase_id,
                    message=record.message,
                    level=record.level.value,
                    timestamp=record.timestamp,
                )
                for record in logs
            ])
            session.commit()

    def fail_phase(self, phase_id: str, completed_at: datetime) -> None:
        with Session(self.engine) as session:
            phase = session.get(ExecutionPhase, phase_id)
            phase.status = PhaseStatus.FAILED
            phase.completed_at = as_utc(completed_at)
            session.add(phase)
            session.commit()

    def finalize_execution(
        self, execution_id: str, status: ExecutionStatus, credits_consumed: int,
        completed_at: datetime,
    ) -> None:
        with Session(self.engine) as session:
            execution = session.get(WorkflowExecution, execution_id)
            execution.status = status
            execution.completed_at = as_utc(completed_at)
            execution.credits_consumed = credits_consumed
            session.add(execution)
            session.commit()

    def update_last_run_status(
        self, workflow_id: str, execution_id: str, status: ExecutionStatus,
    ) -> bool:
        """Set lastRunStatus only while the workflow's lastRunId still points at this execution."""
        with Session(self.engine) as session:
            result = session.connection().execute(
                update(Workflow)
                .where(Workflow.id == workflow_id, Workflow.last_run_id == execution_id)
                .values(last_run_status=status)
            )
            session.commit()
            return result.rowcount == 1

    # ------------------------------------------------------------------
    # Credits
    # ------------------------------------------------------------------

    def get_balance(self, user_id: str) -> int:
        with Session(self.engine) as session:
            balance = session.get(UserBalance, user_id)
            return balance.credits if balance else 0

    def set_balance(self, user_id: str, credits: int) -> None:
        with Session(self.engine) as session:
            balance = session.get(UserBalance, user_id) or UserBalance(user_id=user_id)
            balance.credits = credits
            session.add(balance)
            session.commit()

    def try_decrement_credits(self, user_id: str, amount: int) -> bool:
        """Atomically take `amount` credits; False (and no change) if the balance is short."""
        with Session(self.engine) as session:
            result = session.connection().execute(
                update(UserBalance)
                .where(UserBalance.user_id == user_id, UserBalance.credits >= amount)
                .values(credits=UserBalance.credits - amount)
            )
            session.commit()
            return result.rowcount == 1

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def create_credential(self, user_id: str, name: str, value: str) -> Credential:
        with Session(self.engine) as session:
            credential = Credential(user_id=user_id, name=name, value=encrypt_value(value))
            session.add(credential)
            session.commit()
            session.refresh(credential)
            return credential

    def get_credential_value(self, user_id: str, credential_id: str) -> Optional[str]:
        with Session(self.engine) as session:
            credential = session.get(Credential, credential_id)
            if credential is None or credential.user_id != user_id:
                return None
            return decrypt_value(credential.value)
