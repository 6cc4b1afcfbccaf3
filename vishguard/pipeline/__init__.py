"""Pipeline orchestration module."""

from .orchestrator import PipelineOrchestrator, PipelineRun, create_orchestrator

__all__ = ["PipelineOrchestrator", "PipelineRun", "create_orchestrator"]
