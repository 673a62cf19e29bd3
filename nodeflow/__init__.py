"""Workflow execution engine: run order, action dispatch, schedule triggers and execution log."""

__version__ = "1.0.0"
