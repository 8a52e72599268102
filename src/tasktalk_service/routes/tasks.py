"""Task parsing, listing and creation endpoints."""

from fastapi import APIRouter, Depends, status

from ..dependencies import ServiceContainer, enforce_nlp_rate_limit, get_services, get_session_id
from ..models.task import Task, TaskListResponse, TaskParseRequest

router = APIRouter(tags=["tasks"])


@router.post("/parse", response_model=Task, dependencies=[Depends(enforce_nlp_rate_limit)])
async def parse_task(
    request: TaskParseRequest,
    services: ServiceContainer = Depends(get_services),
) -> Task:
    """
    Parse natural language task input into a structured task.

    Extracts title, due date, priority (0-3) and tags. Identical text
    (ignoring case and surrounding whitespace) is answered from cache.
    Requires a signed-in session in the X-Session-Id header.

    Example input: "high priority report due tomorrow"
    """
    return await services.interpreter.interpret(request.text)


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    session_id: str | None = Depends(get_session_id),
    services: ServiceContainer = Depends(get_services),
) -> TaskListResponse:
    """List the signed-in user's tasks from the task provider."""
    tasks = await services.gateway.list_tasks(session_id)
    return TaskListResponse(tasks=tasks)


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(
    task: Task,
    session_id: str | None = Depends(get_session_id),
    services: ServiceContainer = Depends(get_services),
) -> Task:
    """Create a task with the task provider and return it with its assigned id."""
    return await services.gateway.create_task(session_id, task)


@router.post(
    "/capture",
    response_model=Task,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_nlp_rate_limit)],
)
async def capture_task(
    request: TaskParseRequest,
    session_id: str | None = Depends(get_session_id),
    services: ServiceContainer = Depends(get_services),
) -> Task:
    """
    Parse and create a task in one step.

    Convenience endpoint that combines /parse and POST /tasks.
    """
    parsed = await services.interpreter.interpret(request.text)
    return await services.gateway.create_task(session_id, parsed)
