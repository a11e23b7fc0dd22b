"""REST API routes."""
import json

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from ..engine.executor import execute_workflow
from ..engine.launcher import (
    prepare_scheduled_run,
    publish_workflow,
    remove_schedule,
    run_workflow,
    unpublish_workflow,
    update_schedule,
    update_workflow,
)
from ..models.schemas import (
    CreateWorkflowRequest,
    ExecutionDetailResponse,
    ExecutionStartedResponse,
    LogEntrySchema,
    PhaseSchema,
    PlanErrorResponse,
    PublishWorkflowRequest,
    RunWorkflowRequest,
    UpdateCronRequest,
    UpdateWorkflowRequest,
    WorkflowResponse,
)
from ..models.tables import Workflow
from ..repository import WorkflowRepository
from ..tasks.catalog import all_definitions
from .deps import current_user_id, get_repository, require_api_secret

router = APIRouter(prefix="/api")


def _workflow_response(workflow: Workflow) -> WorkflowResponse:
    return WorkflowResponse(
        id=workflow.id,
        name=workflow.name,
        description=workflow.description,
        status=workflow.status.value,
        definition=workflow.definition,
        credits_cost=workflow.credits_cost,
        cron=workflow.cron,
        next_run_at=workflow.next_run_at,
        last_run_id=workflow.last_run_id,
        last_run_status=workflow.last_run_status.value if workflow.last_run_status else None,
        last_run_at=workflow.last_run_at,
    )


@router.get("/tasks")
async def list_tasks():
    """Return the task catalog."""
    return [definition.to_dict() for definition in all_definitions()]


@router.post("/workflows", response_model=WorkflowResponse, status_code=201)
async def create_workflow(
    body: CreateWorkflowRequest,
    user_id: str = Depends(current_user_id),
    repo: WorkflowRepository = Depends(get_repository),
):
    workflow = repo.create_workflow(user_id, body.name, body.description, body.definition or "{}")
    return _workflow_response(workflow)


@router.get("/workflows/execute", dependencies=[Depends(require_api_secret)])
async def execute_scheduled(
    workflowId: str,
    repo: WorkflowRepository = Depends(get_repository),
):
    """Cron hook: run a published workflow now and advance its next fire time."""
    execution, next_run = prepare_scheduled_run(repo, workflowId)
    await execute_workflow(repo, execution.id, next_run_at=next_run)
    return {"execution_id": execution.id, "next_run_at": next_run.isoformat()}


@router.get("/workflows/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(
    workflow_id: str,
    user_id: str = Depends(current_user_id),
    repo: WorkflowRepository = Depends(get_repository),
):
    workflow = repo.get_workflow(workflow_id, user_id)
    if workflow is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return _workflow_response(workflow)


@router.put("/workflows/{workflow_id}", response_model=WorkflowResponse)
async def save_workflow(
    workflow_id: str,
    body: UpdateWorkflowRequest,
    user_id: str = Depends(current_user_id),
    repo: WorkflowRepository = Depends(get_repository),
):
    """Save the editor graph of a draft workflow."""
    return _workflow_response(update_workflow(repo, workflow_id, user_id, body.definition))


@router.post(
    "/workflows/{workflow_id}/run",
    response_model=ExecutionStartedResponse,
    status_code=202,
    responses={422: {"model": PlanErrorResponse}},
)
async def run(
    workflow_id: str,
    body: RunWorkflowRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(current_user_id),
    repo: WorkflowRepository = Depends(get_repository),
):
    """Create the execution rows now; the runtime runs after the response is sent."""
    execution = run_workflow(repo, workflow_id, user_id, body.flow_definition)
    background_tasks.add_task(execute_workflow, repo, execution.id)
    return ExecutionStartedResponse(execution_id=execution.id, status=execution.status.value)


@router.post(
    "/workflows/{workflow_id}/publish",
    response_model=WorkflowResponse,
    responses={422: {"model": PlanErrorResponse}},
)
async def publish(
    workflow_id: str,
    body: PublishWorkflowRequest,
    user_id: str = Depends(current_user_id),
    repo: WorkflowRepository = Depends(get_repository),
):
    return _workflow_response(publish_workflow(repo, workflow_id, user_id, body.flow_definition))


@router.post("/workflows/{workflow_id}/unpublish", response_model=WorkflowResponse)
async def unpublish(
    workflow_id: str,
    user_id: str = Depends(current_user_id),
    repo: WorkflowRepository = Depends(get_repository),
):
    return _workflow_response(unpublish_workflow(repo, workflow_id, user_id))


@router.put("/workflows/{workflow_id}/schedule", response_model=WorkflowResponse)
async def set_schedule(
    workflow_id: str,
    body: UpdateCronRequest,
    user_id: str = Depends(current_user_id),
    repo: WorkflowRepository = Depends(get_repository),
):
    try:
        workflow = update_schedule(repo, workflow_id, user_id, body.cron)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _workflow_response(workflow)


@router.delete("/workflows/{workflow_id}/schedule", response_model=WorkflowResponse)
async def delete_schedule(
    workflow_id: str,
    user_id: str = Depends(current_user_id),
    repo: WorkflowRepository = Depends(get_repository),
):
    return _workflow_response(remove_schedule(repo, workflow_id, user_id))


@router.get("/executions/{execution_id}", response_model=ExecutionDetailResponse)
async def get_execution(
    execution_id: str,
    user_id: str = Depends(current_user_id),
    repo: WorkflowRepository = Depends(get_repository),
):
    execution = repo.get_execution(execution_id, user_id)
    if execution is None:
        raise HTTPException(status_code=404, detail="Execution not found")

    phases = []
    for phase in repo.get_phases(execution_id):
        phases.append(PhaseSchema(
            id=phase.id,
            number=phase.number,
            name=phase.name,
            status=phase.status.value,
            started_at=phase.started_at,
            completed_at=phase.completed_at,
            inputs=json.loads(phase.inputs) if phase.inputs else None,
            outputs=json.loads(phase.outputs) if phase.outputs else None,
            credits_consumed=phase.credits_consumed,
            logs=[
                LogEntrySchema(message=log.message, level=log.level, timestamp=log.timestamp)
                for log in repo.get_phase_logs(phase.id)
            ],
        ))

    return ExecutionDetailResponse(
        id=execution.id,
        workflow_id=execution.workflow_id,
        status=execution.status.value,
        trigger=execution.trigger.value,
        started_at=execution.started_at,
        completed_at=execution.completed_at,
        credits_consumed=execution.credits_consumed,
        phases=phases,
    )
