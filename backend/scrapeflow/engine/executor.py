"""Execution runtime: runs a persisted execution phase by phase, fail-fast."""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Mapping

from sqlalchemy.exc import SQLAlchemyError

from ..models.tables import ExecutionPhase, ExecutionStatus, PhaseStatus, utcnow
from ..tasks.base import TaskParamType, TaskType
from ..tasks.catalog import get_task_definition
from ..tasks.registry import ExecutorFn, ExecutorRegistry
from .environment import Environment, ExecutionEnvironment, LogCollector
from .graph import Edge, NodeInstance, find_input_edge, load_definition, load_node

if TYPE_CHECKING:
    from ..repository import WorkflowRepository

logger = logging.getLogger(__name__)


class ExecutionNotFoundError(LookupError):
    pass


@dataclass
class PhaseResult:
    success: bool
    credits_consumed: int


def phases_total_cost(phases: list[ExecutionPhase]) -> int:
    return sum(phase.credits_consumed or 0 for phase in phases)


async def execute_workflow(
    repo: "WorkflowRepository",
    execution_id: str,
    next_run_at: datetime | None = None,
    executors: Mapping[TaskType, ExecutorFn] | None = None,
) -> None:
    """Run every phase of an execution in plan order, stopping at the first failure.

    The execution row and its phase rows must already exist. Phases after a
    failure are left PENDING. Repository calls run in worker threads so the
    event loop keeps serving requests while a run is in progress.
    """
    execution = await asyncio.to_thread(repo.get_execution, execution_id)
    if execution is None:
        raise ExecutionNotFoundError(f"Execution {execution_id} not found")
    phases = await asyncio.to_thread(repo.get_phases, execution_id)
    edges = load_definition(execution.definition).edges
    nodes = [load_node(phase.node) for phase in phases]
    if executors is None:
        executors = ExecutorRegistry.all()

    environment = Environment(
        credentials=lambda credential_id: repo.get_credential_value(execution.user_id, credential_id),
    )

    await asyncio.to_thread(
        repo.mark_execution_running, execution_id, execution.workflow_id, utcnow(), next_run_at,
    )
    await asyncio.to_thread(repo.mark_phases_pending, [p.id for p in phases])
    logger.info("Execution %s started with %d phase(s)", execution_id, len(phases))

    credits_consumed = 0
    execution_failed = False
    try:
        for phase, node in zip(phases, nodes):
            try:
                result = await execute_phase(
                    repo, phase, node, environment, edges, execution.user_id, executors,
                )
            except Exception:
                logger.exception("Execution %s aborted in phase %d (%s)", execution_id, phase.number, phase.name)
                await _abort_phase(repo, phase)
                execution_failed = True
                break
            credits_consumed += result.credits_consumed
            if not result.success:
                execution_failed = True
                logger.info("Execution %s halted at phase %d (%s)", execution_id, phase.number, phase.name)
                break

        status = ExecutionStatus.FAILED if execution_failed else ExecutionStatus.COMPLETED
        await asyncio.to_thread(repo.finalize_execution, execution_id, status, credits_consumed, utcnow())
        try:
            await asyncio.to_thread(repo.update_last_run_status, execution.workflow_id, execution_id, status)
        except SQLAlchemyError:
            pass  # the execution row is already final; last-run status is a summary
        logger.info("Execution %s finished: %s (%d credits)", execution_id, status.value, credits_consumed)
    finally:
        await environment.close()


async def _abort_phase(repo: "WorkflowRepository", phase: ExecutionPhase) -> None:
    """Best-effort FAILED marker for a phase interrupted by an unexpected error."""
    try:
        await asyncio.to_thread(repo.fail_phase, phase.id, utcnow())
    except Exception:
        logger.exception("Failed to mark phase %s as failed", phase.id)


async def execute_phase(
    repo: "WorkflowRepository",
    phase: ExecutionPhase,
    node: NodeInstance,
    environment: Environment,
    edges: list[Edge],
    user_id: str,
    executors: Mapping[TaskType, ExecutorFn],
) -> PhaseResult:
    log = LogCollector()
    state = environment.node(node.id)

    resolve_inputs(node, environment, edges, log)
    await asyncio.to_thread(repo.start_phase, phase.id, state.inputs, utcnow())

    credits_required = get_task_definition(node.task_type).credits
    if await asyncio.to_thread(repo.try_decrement_credits, user_id, credits_required):
        credits_consumed = credits_required
        success = await run_executor(node, environment, log, executors)
    else:
        log.error("Insufficient credits")
        credits_consumed = 0
        success = False

    await asyncio.to_thread(
        repo.finish_phase,
        phase.id,
        PhaseStatus.COMPLETED if success else PhaseStatus.FAILED,
        state.outputs,
        credits_consumed,
        log.get_all(),
        utcnow(),
    )
    return PhaseResult(success=success, credits_consumed=credits_consumed)


def resolve_inputs(
    node: NodeInstance, environment: Environment, edges: list[Edge], log: LogCollector,
) -> dict[str, str]:
    """Fill environment inputs for a node from static values or upstream outputs."""
    inputs = environment.node(node.id).inputs
    for param in get_task_definition(node.task_type).inputs:
        if param.type == TaskParamType.BROWSER_INSTANCE:
            continue
        value = node.static_value(param.name)
        if value is not None:
            inputs[param.name] = value
            continue
        edge = find_input_edge(edges, node.id, param.name)
        if edge is None:
            log.error(f"Missing input: {param.name}")
            continue
        upstream = environment.node(edge.source).outputs
        if edge.source_handle not in upstream:
            log.error(f"Missing input: {param.name} (no output '{edge.source_handle}' from {edge.source})")
            continue
        inputs[param.name] = upstream[edge.source_handle]
    return inputs


async def run_executor(
    node: NodeInstance,
    environment: Environment,
    log: LogCollector,
    executors: Mapping[TaskType, ExecutorFn],
) -> bool:
    executor = executors.get(node.task_type)
    if executor is None:
        log.error(f"Executor not found for task type {node.task_type.value}")
        return False
    try:
        return bool(await executor(ExecutionEnvironment(environment, node.id, log)))
    except Exception as exc:
        logger.warning("Executor for node %s raised: %s", node.id, exc)
        log.error(str(exc))
        return False
