"""Build pipeline — sequential external commands with per-step timeouts."""

from .supervisor import (
    DEFAULT_STEPS,
    BuildSupervisor,
    PipelineStep,
    PipelineSummary,
    StepResult,
    StepState,
)
