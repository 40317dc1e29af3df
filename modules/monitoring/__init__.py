from .monitoring_module import MonitoringModule

__all__ = ["MonitoringModule"]
