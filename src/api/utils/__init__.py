from .executors import PoolSaturatedError, WorkerPool, WorkerTimeoutError

__all__ = ["PoolSaturatedError", "WorkerPool", "WorkerTimeoutError"]
