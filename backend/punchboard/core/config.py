import re
from datetime import time

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Published Google Sheet (File → Share → Publish to web → CSV)
    SHEET_CSV_URL: str = ""
    SHEET_FETCH_TIMEOUT_SEC: float = 10.0
    SHEET_CACHE_TTL_SEC: float = 30.0

    WORK_START_TIME: time = time(9, 0)
    GRACE_MINUTES: int = 15

    COMPLIANT_DISTANCE_M: float = 50.0
    WARNING_DISTANCE_M: float = 100.0
    CRITICAL_DISTANCE_M: float = 200.0

    OPEN_SESSION_WARNING_HOURS: float = 8.0
    OPEN_SESSION_CRITICAL_HOURS: float = 12.0

    # (regex, replacement) pairs applied to whitespace-stripped employee IDs,
    # case-insensitively, before uppercasing. Env value is JSON.
    EMPLOYEE_ID_CORRECTIONS: list[tuple[str, str]] = [(r"^LYLB", "AYLB")]

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    @model_validator(mode="after")
    def check_thresholds(self) -> "Settings":
        for field in (
            "GRACE_MINUTES",
            "COMPLIANT_DISTANCE_M",
            "WARNING_DISTANCE_M",
            "CRITICAL_DISTANCE_M",
            "OPEN_SESSION_WARNING_HOURS",
            "OPEN_SESSION_CRITICAL_HOURS",
        ):
            if getattr(self, field) < 0:
                raise ValueError(f"{field} must not be negative")

        if not (
            self.COMPLIANT_DISTANCE_M
            <= self.WARNING_DISTANCE_M
            <= self.CRITICAL_DISTANCE_M
        ):
            raise ValueError(
                "Distance thresholds must satisfy "
                "COMPLIANT_DISTANCE_M <= WARNING_DISTANCE_M <= CRITICAL_DISTANCE_M"
            )
        if self.OPEN_SESSION_WARNING_HOURS > self.OPEN_SESSION_CRITICAL_HOURS:
            raise ValueError(
                "OPEN_SESSION_WARNING_HOURS must not exceed OPEN_SESSION_CRITICAL_HOURS"
            )

        for pattern, _ in self.EMPLOYEE_ID_CORRECTIONS:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(
                    f"Invalid EMPLOYEE_ID_CORRECTIONS pattern {pattern!r}: {exc}"
                ) from exc
        return self

    @property
    def work_start_minutes(self) -> int:
        return self.WORK_START_TIME.hour * 60 + self.WORK_START_TIME.minute

    @property
    def late_threshold_minutes(self) -> int:
        return self.work_start_minutes + self.GRACE_MINUTES


settings = Settings()
