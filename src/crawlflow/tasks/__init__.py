"""
CrawlFlow Tasks Module - Task handlers selected by task type
"""

from .base import BaseTaskHandler, TaskHandlerFactory
from .http import HttpTaskHandler

__all__ = ["BaseTaskHandler", "TaskHandlerFactory", "HttpTaskHandler"]
