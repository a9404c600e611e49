"""Data models for server requests."""

from .request import AddQueueRequest, OutputInfo, QueueItem, nullable
