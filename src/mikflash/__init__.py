from .model import PipelineRequest, PipelineResult, PipelineState, ResolvedResource, ResourceKind, Stage, Tier
from .resolver import Resolver
from .runner import run_pipeline, StageSequencer
from .scaffold import create_project

__all__ = [
    "PipelineRequest",
    "PipelineResult",
    "PipelineState",
    "ResolvedResource",
    "ResourceKind",
    "Stage",
    "Tier",
    "Resolver",
    "run_pipeline",
    "StageSequencer",
    "create_project",
]
