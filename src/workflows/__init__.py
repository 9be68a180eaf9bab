"""
Workflows module - Category pipelines and the daily brief orchestrator.
"""
from workflows.base import BriefPipeline
from workflows.orchestrator import DailyBriefOrchestrator, build_orchestrator
from workflows.pipeline_factory import CategoryPipeline, create_pipelines_from_config

__all__ = [
    "BriefPipeline",
    "CategoryPipeline",
    "DailyBriefOrchestrator",
    "build_orchestrator",
    "create_pipelines_from_config",
]
