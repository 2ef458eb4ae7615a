from app.workers.tasks.grants_maintenance import expire_stale_grants

__all__ = [
    "expire_stale_grants",
]
