"""Task selection - graph analysis, scoring strategies and the selector.

This module provides the selection pipeline:
- Dependency graph analysis (cycles, closures, integrity, metrics)
- Scoring strategies (dependency-aware, depth-first, priority, ...)
- Strategy recommendation from project characteristics
- Next-task selection with rationale and alternatives
"""

from knot.selection.analyzer import ProjectAnalyzer, analyze_project_and_recommend_strategy
from knot.selection.graph import (
    ChainEntry,
    DependencyAnalyzer,
    IntegrityIssue,
    are_dependencies_met,
    detect_cycles,
    validate_referential_integrity,
)
from knot.selection.models import (
    BehaviorConfig,
    ProjectCharacteristics,
    ProjectComplexity,
    ScoreBreakdown,
    SelectionConfig,
    SelectionResult,
    Strategy,
    Weights,
    load_selection_config,
    save_selection_config,
)
from knot.selection.selector import TaskSelector, select_next_actionable_task
from knot.selection.strategies import (
    ScoringStrategy,
    StrategyFactory,
    parse_strategy,
    resolve_strategy,
)

__all__ = [
    # Graph
    "DependencyAnalyzer",
    "ChainEntry",
    "IntegrityIssue",
    "are_dependencies_met",
    "detect_cycles",
    "validate_referential_integrity",
    # Models
    "Strategy",
    "Weights",
    "BehaviorConfig",
    "SelectionConfig",
    "ScoreBreakdown",
    "SelectionResult",
    "ProjectCharacteristics",
    "ProjectComplexity",
    "load_selection_config",
    "save_selection_config",
    # Strategies
    "ScoringStrategy",
    "StrategyFactory",
    "parse_strategy",
    "resolve_strategy",
    # Selection
    "ProjectAnalyzer",
    "analyze_project_and_recommend_strategy",
    "TaskSelector",
    "select_next_actionable_task",
]
