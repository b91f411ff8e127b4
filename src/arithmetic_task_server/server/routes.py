"""HTTP routes: the public expression API and the internal worker API."""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from arithmetic_task_server.common.logger import logger
from arithmetic_task_server.common.models import (
    CalculateRequest,
    CalculateResponse,
    Expression,
    ExpressionList,
    Task,
    TaskResult,
)
from arithmetic_task_server.server.service import CalculatorService


# Handlers are plain functions: FastAPI runs each request on its own worker thread
router = APIRouter()


def get_service(request: Request) -> CalculatorService:
    return request.app.state.service


@router.post(
    "/api/v1/calculate",
    status_code=status.HTTP_201_CREATED,
    response_model=CalculateResponse,
    tags=["expressions"],
)
def calculate(payload: CalculateRequest, service: CalculatorService = Depends(get_service)) -> CalculateResponse:
    """Submit an expression for evaluation."""
    expression = service.submit(payload.expression)
    logger.info(f"📥 Expression {expression.id} accepted: {expression.expression!r}")
    return CalculateResponse(id=expression.id)


@router.get(
    "/api/v1/expressions",
    response_model=ExpressionList,
    response_model_exclude_none=True,
    tags=["expressions"],
)
def list_expressions(service: CalculatorService = Depends(get_service)) -> ExpressionList:
    return ExpressionList(expressions=service.list_expressions())


@router.get(
    "/api/v1/expressions/{expression_id}",
    response_model=Expression,
    response_model_exclude_none=True,
    tags=["expressions"],
)
def get_expression(expression_id: str, service: CalculatorService = Depends(get_service)) -> Expression:
    return service.get_expression(expression_id)


@router.get("/internal/task", response_model=Task, tags=["internal"])
def get_task(service: CalculatorService = Depends(get_service)):
    """Hand one queued task to a polling worker; 404 when there is none."""
    task = service.next_task()
    if task is None:
        logger.debug("📭 Task poll: queue empty")
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": {"code": "NO_TASK", "message": "no task available"}},
        )
    logger.info(f"📤 Task {task.id} handed to a remote worker")
    return task


@router.post("/internal/task", tags=["internal"])
def post_task_result(payload: TaskResult, service: CalculatorService = Depends(get_service)) -> dict[str, str]:
    """Accept the result of a task computed by a remote worker."""
    service.complete_task(payload.id, payload.result)
    return {"status": "accepted"}


@router.get("/api/v1/health", tags=["health"])
def health(request: Request, service: CalculatorService = Depends(get_service)) -> dict:
    agent = getattr(request.app.state, "agent", None)
    return {
        "status": "ok",
        "expressions": len(service.registry),
        "queued_tasks": len(service.queue),
        "in_flight_tasks": service.scheduler.in_flight,
        "agent_running": bool(agent and agent.running),
    }
