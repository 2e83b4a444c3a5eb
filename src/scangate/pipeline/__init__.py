"""Gate pipeline — engine and result."""

from scangate.pipeline.engine import PipelineResult, run

__all__ = ["PipelineResult", "run"]
