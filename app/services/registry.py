from typing import Dict


class ActiveTaskRegistry:
    """In-flight tasks keyed by request id, valued by start time (epoch seconds).

    Mutations are single synchronous steps on the event loop, so no other task
    can observe a half-applied update.
    """

    def __init__(self):
        self._active: Dict[str, float] = {}

    def register(self, request_id: str, start_time: float) -> None:
        if request_id in self._active:
            raise ValueError(f"Request id already in flight: {request_id}")
        self._active[request_id] = start_time

    def unregister(self, request_id: str) -> None:
        self._active.pop(request_id, None)

    def size(self) -> int:
        return len(self._active)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._active
