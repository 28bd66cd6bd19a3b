"""
SEO Content Assistant

Client-side workflow that helps an author optimize a draft for a keyword:
- Benchmarks the keyword against the current search results
- Scores the draft against the benchmarks, rescoring as the author types
- Applies AI-authored fixes to the draft with a single-level undo
"""

__version__ = "1.0.0"
__author__ = "SEO Content Assistant Team"

from .config import WorkflowConfig

from .errors import (
    AssistantError,
    ValidationError,
    PreconditionError,
    OracleError,
    StaleResponseDiscard,
)

from .models import (
    AnalysisSession,
    Benchmarks,
    BenchmarkRange,
    SerpCompetitor,
    NlpTerms,
    TermStat,
    ContentBreakdown,
    ScoreCategory,
    ContentMetrics,
    ContentAnalysisResponse,
    SuggestionBundle,
    DocumentState,
    UndoSnapshot,
    WorkflowState,
)

# Oracle transport and adapters
from .oracle_client import OracleClient
from .adapters import (
    run_analysis,
    score_content,
    request_suggestions,
    parse_keyword_list,
)

# Rescoring, patching and orchestration
from .scheduler import DebounceTimer, RescoreScheduler
from .patch_applier import PatchResult, apply_suggestions
from .controller import WorkflowController
from .panel_view import PanelView, build_panel_view

__all__ = [
    # Configuration
    "WorkflowConfig",
    # Errors
    "AssistantError",
    "ValidationError",
    "PreconditionError",
    "OracleError",
    "StaleResponseDiscard",
    # Models
    "AnalysisSession",
    "Benchmarks",
    "BenchmarkRange",
    "SerpCompetitor",
    "NlpTerms",
    "TermStat",
    "ContentBreakdown",
    "ScoreCategory",
    "ContentMetrics",
    "ContentAnalysisResponse",
    "SuggestionBundle",
    "DocumentState",
    "UndoSnapshot",
    "WorkflowState",
    # Oracle
    "OracleClient",
    "run_analysis",
    "score_content",
    "request_suggestions",
    "parse_keyword_list",
    # Workflow
    "DebounceTimer",
    "RescoreScheduler",
    "PatchResult",
    "apply_suggestions",
    "WorkflowController",
    "PanelView",
    "build_panel_view",
]
