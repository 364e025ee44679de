"""
Salary Benchmark Routes

GET  /salary-benchmark      - Latest salary requests of the caller
POST /salary-benchmark      - Save a salary request
GET  /salary-benchmark/{id} - Benchmark a saved request (RAG, cached)
"""

from fastapi import APIRouter, Depends

from karirkit.core.auth import get_current_user_id
from karirkit.core.errors import NotFoundError
from karirkit.services.mongo_service import SalaryRequestService
from karirkit.services.benchmark_service import get_benchmark_service
from karirkit.schemas.schemas import (
    SalaryRequestCreate, SalaryRequestCreated, SalaryHistoryResponse, SalaryBenchmarkResponse
)

router = APIRouter(prefix="/salary-benchmark", tags=["Salary Benchmark"])

HISTORY_LIMIT = 10


@router.get("", response_model=SalaryHistoryResponse)
def get_history(user_id: str = Depends(get_current_user_id)):
    """Latest salary requests of the current user, newest first."""
    history = SalaryRequestService().get_by_user(user_id, HISTORY_LIMIT)
    return SalaryHistoryResponse(message="History retrieved", data=history)


@router.post("", response_model=SalaryRequestCreated, status_code=201)
def create_request(data: SalaryRequestCreate, user_id: str = Depends(get_current_user_id)):
    """Save a salary request. Benchmark it with GET /salary-benchmark/{id}."""
    created = SalaryRequestService().create(user_id, data.model_dump())
    return SalaryRequestCreated(message="Request saved", request=created)


@router.get("/{request_id}", response_model=SalaryBenchmarkResponse)
def get_benchmark(request_id: str, user_id: str = Depends(get_current_user_id)):
    """
    Salary benchmark for a saved request.

    Process:
    1. Serve from cache when the same request was benchmarked recently
    2. Hybrid search the knowledge base (vector + keyword)
    3. Generate the benchmark from the retrieved context
    """
    request_doc = SalaryRequestService().get_by_id(request_id)
    if not request_doc:
        raise NotFoundError("Request not found")

    result, cached = get_benchmark_service().benchmark(request_doc)

    message = "Benchmark retrieved from cache" if cached else "Benchmark generated successfully"
    return SalaryBenchmarkResponse(message=message, data=result, cached=cached)
