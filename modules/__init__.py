from .logger import LoggerModule
from .monitoring import MonitoringModule

__all__ = ["LoggerModule", "MonitoringModule"]
