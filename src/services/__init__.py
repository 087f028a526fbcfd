"""Services that orchestrate the monitor's long-running components."""

from src.services.monitor_service import MonitorService

__all__ = ["MonitorService"]
