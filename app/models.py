from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Union


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_id: str
    user_delay_ms: int = Field(ge=0)
    preferences_delay_ms: int = Field(ge=0)
    ballast: int = Field(default=0, ge=0)  # filler items held across the await
    user_label: Optional[str] = None
    preferences_label: Optional[str] = None


class TaskContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_id: str
    request_id: str
    start_time: float  # epoch seconds
    is_active: bool = True


class DBResult(CamelModel):
    id: int
    query: str
    timestamp: str
    data: str


class ProcessedUserData(DBResult):
    preferences: DBResult
    processing_time: int
    request_id: str


class TaskFailure(CamelModel):
    error: str
    task_id: str
    request_id: str


TaskResult = Union[ProcessedUserData, TaskFailure]


class StressTestResult(CamelModel):
    message: str
    results: List[TaskResult]
    total_requests: int


class MemoryTestResult(CamelModel):
    message: str
    memory_before: int
    memory_after: int
    results: int


class ErrorResponse(CamelModel):
    error: str
    message: str
    request_id: Optional[str] = None
