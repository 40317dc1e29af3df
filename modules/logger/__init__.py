"""
Logger Module - встроенный модуль логирования (сервис logger.log).
"""

from .module import LoggerModule

__all__ = ["LoggerModule"]
