"""Workflow definitions module."""

from workflows.injection_workflow import InjectionRunWorkflow, InjectionRunInput, TASK_QUEUE

__all__ = ["InjectionRunWorkflow", "InjectionRunInput", "TASK_QUEUE"]
