from app.config import Settings
from app.services.diagnostics import DiagnosticReporter
from app.services.simulator import QuerySimulator


def fast_settings(**overrides) -> Settings:
    values = dict(
        user_delay_ms=20,
        preferences_delay_ms=10,
        stress_test_size=5,
        memory_test_default=10,
        memory_test_base_delay_ms=10,
        memory_test_step_ms=1,
        memory_test_ballast=50,
        memory_probe_delay_ms=5,
        collect_garbage=False,
    )
    values.update(overrides)
    return Settings(**values)


class RecordingReporter(DiagnosticReporter):
    def __init__(self):
        super().__init__(collect_garbage=False)
        self.events = []

    def request_received(self, path, active):
        self.events.append(("request", path, active))

    def context_started(self, ctx):
        self.events.append(("started", ctx))

    def suspending(self, ctx, ballast=0):
        self.events.append(("suspending", ctx, ballast))

    def resumed(self, before, after, elapsed_ms, ballast=0):
        self.events.append(("resumed", before, after, elapsed_ms, ballast))

    def task_failed(self, ctx, exc):
        self.events.append(("failed", ctx, str(exc)))

    def memory_probe(self, active):
        self.events.append(("probe", active))

    def batch_completed(self, size, active):
        self.events.append(("batch", size, active))

    def memory_mb(self):
        return 42

    def of(self, kind):
        return [e for e in self.events if e[0] == kind]


class BrokenReporter(DiagnosticReporter):
    def _explode(self, *args, **kwargs):
        raise RuntimeError("reporter exploded")

    request_received = context_started = suspending = resumed = _explode
    task_failed = memory_probe = batch_completed = memory_mb = collect_garbage_now = _explode


class FailingSimulator(QuerySimulator):
    """Fails any query whose label mentions one of the given ids."""

    def __init__(self, failing_ids, message="connection reset", exc_type=RuntimeError):
        super().__init__()
        self.failing_ids = set(failing_ids)
        self.message = message
        self.exc_type = exc_type

    async def query(self, label, delay_ms=3000):
        if any(label.endswith(f"id={task_id}") for task_id in self.failing_ids):
            raise self.exc_type(self.message)
        return await super().query(label, delay_ms)
