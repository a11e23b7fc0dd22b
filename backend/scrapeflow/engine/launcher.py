"""Create executions from workflows: plan selection, row creation, schedule bookkeeping."""
import json
import logging
from datetime import datetime

from croniter import croniter

from ..models.tables import (
    ExecutionTrigger, Workflow, WorkflowExecution, WorkflowStatus, utcnow,
)
from ..repository import WorkflowRepository
from ..tasks.catalog import calculate_workflow_cost, get_task_definition
from .graph import dump_node, load_definition
from .planner import ExecutionPlan, compile_plan

logger = logging.getLogger(__name__)


class WorkflowNotFoundError(LookupError):
    pass


class WorkflowStateError(Exception):
    pass


def next_run_after(cron: str, base: datetime | None = None) -> datetime:
    """Next fire time of a cron expression, evaluated in UTC."""
    if not croniter.is_valid(cron):
        raise ValueError(f"Invalid cron expression: {cron}")
    return croniter(cron, base or utcnow()).get_next(datetime)


def compile_definition(definition: str) -> ExecutionPlan:
    return compile_plan(load_definition(definition))


def create_execution(
    repo: WorkflowRepository,
    workflow: Workflow,
    user_id: str,
    trigger: ExecutionTrigger,
    definition: str,
    plan: ExecutionPlan,
) -> WorkflowExecution:
    phases = [
        (number, get_task_definition(node.task_type).label, dump_node(node))
        for number, node in plan.iter_nodes()
    ]
    return repo.create_execution(workflow.id, user_id, trigger, definition, phases)


def _get_workflow(repo: WorkflowRepository, workflow_id: str, user_id: str | None = None) -> Workflow:
    workflow = repo.get_workflow(workflow_id, user_id)
    if workflow is None:
        raise WorkflowNotFoundError(f"Workflow {workflow_id} not found")
    return workflow


def run_workflow(
    repo: WorkflowRepository,
    workflow_id: str,
    user_id: str,
    flow_definition: str | None = None,
) -> WorkflowExecution:
    """Prepare a manual run. The caller starts the runtime with the returned execution id.

    Published workflows run their stored plan and definition; drafts compile
    the submitted definition, and compile errors propagate before any row is
    created.
    """
    workflow = _get_workflow(repo, workflow_id, user_id)

    if workflow.status == WorkflowStatus.PUBLISHED:
        if not workflow.execution_plan:
            raise WorkflowStateError("No execution plan found in published workflow")
        plan = ExecutionPlan.from_list(json.loads(workflow.execution_plan))
        definition = workflow.definition
    else:
        if not flow_definition:
            raise WorkflowStateError("Flow definition is not defined")
        plan = compile_definition(flow_definition)
        definition = flow_definition

    return create_execution(repo, workflow, user_id, ExecutionTrigger.MANUAL, definition, plan)


def update_workflow(
    repo: WorkflowRepository, workflow_id: str, user_id: str, flow_definition: str,
) -> Workflow:
    """Save an edited definition. Only drafts can be edited; the document must parse."""
    workflow = _get_workflow(repo, workflow_id, user_id)
    if workflow.status != WorkflowStatus.DRAFT:
        raise WorkflowStateError("Workflow is not a draft")
    load_definition(flow_definition)
    return repo.save_definition(workflow.id, flow_definition)


def publish_workflow(
    repo: WorkflowRepository, workflow_id: str, user_id: str, flow_definition: str,
) -> Workflow:
    workflow = _get_workflow(repo, workflow_id, user_id)
    if workflow.status != WorkflowStatus.DRAFT:
        raise WorkflowStateError("Workflow is not a draft")

    graph = load_definition(flow_definition)
    plan = compile_plan(graph)
    cost = calculate_workflow_cost(n.task_type for n in graph.nodes)
    return repo.publish_workflow(workflow.id, flow_definition, json.dumps(plan.to_list()), cost)


def unpublish_workflow(repo: WorkflowRepository, workflow_id: str, user_id: str) -> Workflow:
    workflow = _get_workflow(repo, workflow_id, user_id)
    if workflow.status != WorkflowStatus.PUBLISHED:
        raise WorkflowStateError("Workflow is not published")
    return repo.unpublish_workflow(workflow.id)


def update_schedule(repo: WorkflowRepository, workflow_id: str, user_id: str, cron: str) -> Workflow:
    workflow = _get_workflow(repo, workflow_id, user_id)
    return repo.set_schedule(workflow.id, cron, next_run_after(cron))


def remove_schedule(repo: WorkflowRepository, workflow_id: str, user_id: str) -> Workflow:
    workflow = _get_workflow(repo, workflow_id, user_id)
    return repo.set_schedule(workflow.id, None, None)


def prepare_scheduled_run(
    repo: WorkflowRepository, workflow_id: str,
) -> tuple[WorkflowExecution, datetime]:
    """Create a CRON execution of a published workflow and compute its next fire time."""
    workflow = _get_workflow(repo, workflow_id)
    if not workflow.execution_plan:
        raise WorkflowStateError("Execution plan not found")
    if not workflow.cron:
        raise WorkflowStateError("Workflow has no schedule")

    next_run = next_run_after(workflow.cron)
    plan = ExecutionPlan.from_list(json.loads(workflow.execution_plan))
    execution = create_execution(
        repo, workflow, workflow.user_id, ExecutionTrigger.CRON, workflow.definition, plan,
    )
    logger.info("Scheduled run %s created for workflow %s", execution.id, workflow_id)
    return execution, next_run
