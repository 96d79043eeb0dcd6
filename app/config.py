from pydantic import BaseModel
import logging
import os

LOGGING_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def _env_bool(key: str, default: str) -> bool:
    return os.getenv(key, default).lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", 3000))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    user_delay_ms: int = int(os.getenv("USER_DELAY_MS", 3000))
    preferences_delay_ms: int = int(os.getenv("PREFERENCES_DELAY_MS", 2000))
    stress_test_size: int = int(os.getenv("STRESS_TEST_SIZE", 5))
    memory_test_default: int = int(os.getenv("MEMORY_TEST_DEFAULT", 10))
    memory_test_base_delay_ms: int = int(os.getenv("MEMORY_TEST_BASE_DELAY_MS", 2000))
    memory_test_step_ms: int = int(os.getenv("MEMORY_TEST_STEP_MS", 100))
    memory_test_ballast: int = int(os.getenv("MEMORY_TEST_BALLAST", 1000))
    memory_probe_delay_ms: int = int(os.getenv("MEMORY_PROBE_DELAY_MS", 1000))
    collect_garbage: bool = _env_bool("COLLECT_GARBAGE", "true")

settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or settings.log_level).upper(), format=LOGGING_FORMAT)
