from pydantic import BaseModel


class ApplicationInfo(BaseModel):
    name: str
    version: str


class WorkerPoolStatus(BaseModel):
    size: int
    pending: int
    max_pending: int
    timeout_s: float | None = None


class HealthStatus(BaseModel):
    status: str
    application: ApplicationInfo
    uptime_seconds: float
    scenarios_loaded: int
    worker_pool: WorkerPoolStatus


class ConfigurationSummary(BaseModel):
    name: str
    author: str
    date: str
    description: str = ""
    scenarios: list[str]


class ServerConfiguration(BaseModel):
    configurations: list[ConfigurationSummary]
    gui_enabled: bool


class ErrorDetail(BaseModel):
    code: str
    message: str
