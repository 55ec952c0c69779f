from .scheduler import MaintenanceJob, MaintenanceScheduler

__all__ = ["MaintenanceJob", "MaintenanceScheduler"]
