"""Statistics over generated workflows and corpora."""
from .statistics import CorpusStatistics, SummaryStats, WorkflowStatistics, compute_statistics, tib_weeks

__all__ = ["CorpusStatistics", "SummaryStats", "WorkflowStatistics", "compute_statistics", "tib_weeks"]
