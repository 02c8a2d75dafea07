"""Job layer package for workflow orchestration boundaries."""

from .engine import (
	ENRICHMENT_EXHAUSTED,
	VALIDATION_REJECTED,
	CandidateResult,
	CandidateState,
	ChangeProcessingResult,
	TransformationEngine,
)
from .interfaces import JobExecutionResult, JobOrchestratorPort
from .lanes import LaneWorkerPool, job_lane_index_for
from .metrics import PIPELINE_COUNTER_NAMES, PipelineCounters
from .retry import RetryBackoffPolicy
from .transformation_orchestrator import TransformationJobOrchestrator, TransformationOrchestratorConfig
from .watermark import WatermarkTracker

__all__ = [
	"CandidateResult",
	"CandidateState",
	"ChangeProcessingResult",
	"ENRICHMENT_EXHAUSTED",
	"JobExecutionResult",
	"JobOrchestratorPort",
	"LaneWorkerPool",
	"PIPELINE_COUNTER_NAMES",
	"PipelineCounters",
	"RetryBackoffPolicy",
	"TransformationEngine",
	"TransformationJobOrchestrator",
	"TransformationOrchestratorConfig",
	"VALIDATION_REJECTED",
	"WatermarkTracker",
	"job_lane_index_for",
]
