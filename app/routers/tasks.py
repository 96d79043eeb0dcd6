import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from ..models import ErrorResponse, MemoryTestResult, ProcessedUserData, StressTestResult, TaskFailure
from ..services.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


def _error(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, exclude_none=True))


@router.get("/user/{user_id}", response_model=ProcessedUserData)
async def get_user(user_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)):
    [result] = await orchestrator.run_batch([orchestrator.user_spec(user_id)])
    if isinstance(result, TaskFailure):
        return _error(500, ErrorResponse(
            error="Internal server error",
            request_id=result.request_id,
            message=result.error,
        ))
    return result


@router.get("/stress-test", response_model=StressTestResult)
async def stress_test(orchestrator: Orchestrator = Depends(get_orchestrator)):
    logger.info("STRESS TEST: Starting multiple concurrent requests...")
    try:
        results = await orchestrator.run_batch(orchestrator.stress_specs())
        return StressTestResult(
            message="Stress test completed",
            results=results,
            total_requests=len(results),
        )
    except Exception as exc:
        logger.exception("Stress test failed")
        return _error(500, ErrorResponse(error="Stress test failed", message=str(exc) or "Unknown error"))


@router.get("/memory-test", response_model=MemoryTestResult)
async def memory_test_default(orchestrator: Orchestrator = Depends(get_orchestrator)):
    return await orchestrator.run_memory_test(None)


@router.get("/memory-test/{concurrent}", response_model=MemoryTestResult)
async def memory_test(concurrent: str, orchestrator: Orchestrator = Depends(get_orchestrator)):
    return await orchestrator.run_memory_test(concurrent)
