"""Scheduling helpers."""

from .apsched_adapter import COLLECTION_JOB_ID, SWEEP_JOB_ID, APSchedulerAdapter

__all__ = ["APSchedulerAdapter", "COLLECTION_JOB_ID", "SWEEP_JOB_ID"]
