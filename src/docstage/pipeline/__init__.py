"""Stage orchestration."""

from docstage.pipeline.orchestrator import (
    PipelineOrchestrator,
    PipelineResult,
    StageOutcome,
)

__all__ = ["PipelineOrchestrator", "PipelineResult", "StageOutcome"]
