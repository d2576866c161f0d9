"""
Scoring strategies for task selection.

Strategy pattern implementation: each strategy turns a candidate's graph
metrics into a primary score plus a tie-break chain. Every ranking key ends
with creation time and task id, so two candidates never tie.
"""

from abc import ABC, abstractmethod

from loguru import logger

from knot.core.errors import ConfigurationError
from knot.selection.graph import DependencyAnalyzer
from knot.selection.models import (
    CONFIG_TEMPLATES,
    ScoreBreakdown,
    SelectionConfig,
    Strategy,
    Weights,
)
from knot.tasks.models import Task


def created_ts(task: Task) -> float:
    return task.created_at.timestamp()


class ScoringStrategy(ABC):
    """Base class for selection strategies."""

    strategy: Strategy
    description: str = ""

    def score(
        self,
        task: Task,
        analyzer: DependencyAnalyzer,
        config: SelectionConfig,
    ) -> ScoreBreakdown:
        """
        Compute metrics and scores for one candidate.

        Args:
            task: Candidate task.
            analyzer: Analyzer over the full project snapshot.
            config: Selection configuration (weights are applied here).

        Returns:
            ScoreBreakdown with the primary and weighted scores.
        """
        unblocked = analyzer.unblocked_count(task.id)
        path_length = analyzer.critical_path_length(task.id)
        weights = config.weights

        metrics = ScoreBreakdown(
            task=task,
            unblocked_count=unblocked,
            dependent_count=len(analyzer.dependents(task.id)),
            critical_path_length=path_length,
            hierarchy_depth=task.depth,
            priority=task.priority.weight,
            weighted_score=(
                weights.dependent_count * unblocked
                + weights.priority * task.priority.weight
                + weights.depth_first * (task.depth + 1)
                + weights.critical_path * path_length
            ),
        )
        return metrics.model_copy(update={"score": self.primary_score(metrics)})

    @abstractmethod
    def primary_score(self, metrics: ScoreBreakdown) -> float:
        """Primary score; higher ranks first."""
        pass

    @abstractmethod
    def tiebreak(self, metrics: ScoreBreakdown) -> tuple:
        """Secondary ordering, ascending; negate values that should win high."""
        pass

    @abstractmethod
    def explain(self, metrics: ScoreBreakdown) -> str:
        """Human-readable reason the candidate ranks where it does."""
        pass

    def rank_key(self, metrics: ScoreBreakdown) -> tuple:
        """Ascending sort key: best candidate first."""
        return (
            -metrics.score,
            *self.tiebreak(metrics),
            created_ts(metrics.task),
            metrics.task.id,
        )


class DependencyAwareStrategy(ScoringStrategy):
    """Favour tasks that unblock the most waiting work."""

    strategy = Strategy.DEPENDENCY_AWARE
    description = "Unblocks the most waiting tasks, then most dependents, then priority"

    def primary_score(self, metrics: ScoreBreakdown) -> float:
        return float(metrics.unblocked_count)

    def tiebreak(self, metrics: ScoreBreakdown) -> tuple:
        return (-metrics.dependent_count, -metrics.priority)

    def explain(self, metrics: ScoreBreakdown) -> str:
        if metrics.unblocked_count:
            return (
                f"completing it unblocks {metrics.unblocked_count} task(s) "
                f"and {metrics.dependent_count} task(s) depend on it"
            )
        if metrics.dependent_count:
            return f"{metrics.dependent_count} task(s) depend on it"
        return f"{metrics.task.priority.value} priority and ready to start"


class DepthFirstStrategy(ScoringStrategy):
    """Finish deep subtasks before moving to shallower work."""

    strategy = Strategy.DEPTH_FIRST
    description = "Deepest subtasks first, then priority"

    def primary_score(self, metrics: ScoreBreakdown) -> float:
        return float(metrics.hierarchy_depth)

    def tiebreak(self, metrics: ScoreBreakdown) -> tuple:
        return (-metrics.priority,)

    def explain(self, metrics: ScoreBreakdown) -> str:
        return f"deepest ready subtask (depth {metrics.hierarchy_depth})"


class PriorityStrategy(ScoringStrategy):
    """Highest priority first."""

    strategy = Strategy.PRIORITY
    description = "Highest priority first, then oldest"

    def primary_score(self, metrics: ScoreBreakdown) -> float:
        return float(metrics.priority)

    def tiebreak(self, metrics: ScoreBreakdown) -> tuple:
        return ()

    def explain(self, metrics: ScoreBreakdown) -> str:
        return f"highest ready priority ({metrics.task.priority.value})"


class CreationOrderStrategy(ScoringStrategy):
    """Oldest task first."""

    strategy = Strategy.CREATION_ORDER
    description = "Oldest task first"

    def primary_score(self, metrics: ScoreBreakdown) -> float:
        return -created_ts(metrics.task)

    def tiebreak(self, metrics: ScoreBreakdown) -> tuple:
        return ()

    def explain(self, metrics: ScoreBreakdown) -> str:
        return "oldest ready task"


class CriticalPathStrategy(ScoringStrategy):
    """Shorten the longest remaining chain of work."""

    strategy = Strategy.CRITICAL_PATH
    description = "Longest remaining dependent chain, then unblocked count, then priority"

    def primary_score(self, metrics: ScoreBreakdown) -> float:
        return float(metrics.critical_path_length)

    def tiebreak(self, metrics: ScoreBreakdown) -> tuple:
        return (-metrics.unblocked_count, -metrics.priority)

    def explain(self, metrics: ScoreBreakdown) -> str:
        return f"heads a chain of {metrics.critical_path_length} unfinished task(s)"


# =============================================================================
# FACTORY
# =============================================================================


class StrategyFactory:
    """Create strategies by name and describe the available ones."""

    _registry: dict[Strategy, type[ScoringStrategy]] = {
        Strategy.DEPENDENCY_AWARE: DependencyAwareStrategy,
        Strategy.DEPTH_FIRST: DepthFirstStrategy,
        Strategy.PRIORITY: PriorityStrategy,
        Strategy.CREATION_ORDER: CreationOrderStrategy,
        Strategy.CRITICAL_PATH: CriticalPathStrategy,
    }

    @classmethod
    def create(cls, strategy: Strategy) -> ScoringStrategy:
        return cls._registry[strategy]()

    @classmethod
    def available_strategies(cls) -> dict[Strategy, str]:
        """Map each strategy to its one-line description."""
        return {name: impl.description for name, impl in cls._registry.items()}

    @staticmethod
    def default_weights(strategy: Strategy) -> Weights:
        """Suggested weights for a strategy, taken from its built-in template."""
        template_names = {
            Strategy.PRIORITY: "priority-driven",
            Strategy.DEPTH_FIRST: "depth-first",
            Strategy.CRITICAL_PATH: "critical-path",
        }
        template = CONFIG_TEMPLATES.get(template_names.get(strategy, "default"), {})
        return Weights.model_validate(template.get("weights", {}))

    @staticmethod
    def validate_weights(strategy: Strategy, weights: Weights) -> None:
        """
        Check that dependency-aware weights sum to roughly one.

        Raises:
            ConfigurationError: If the total is outside 0.9-1.1.
        """
        if strategy != Strategy.DEPENDENCY_AWARE:
            return
        if abs(weights.total - 1.0) > 0.1:
            raise ConfigurationError(
                f"Dependency-aware weights must sum to 1.0 (+/- 0.1), got {weights.total:.2f}"
            )


# =============================================================================
# STRATEGY NAMES
# =============================================================================


def parse_strategy(name: str) -> Strategy | None:
    """
    Look up a strategy by name.

    Matching ignores case and surrounding whitespace and accepts ``_`` for
    ``-``.

    Returns:
        The strategy, or None when the name is not recognized.

    Example:
        >>> parse_strategy("Depth_First")
        <Strategy.DEPTH_FIRST: 'depth-first'>
        >>> parse_strategy("fastest") is None
        True
    """
    normalized = name.strip().lower().replace("_", "-")
    for strategy in Strategy:
        if strategy.value == normalized:
            return strategy
    return None


def resolve_strategy(name: str | None, default: Strategy) -> Strategy:
    """
    Turn an optional strategy name into a strategy.

    No preference (None or blank) gives the default silently; an
    unrecognized name gives the default with a warning.
    """
    if name is None or not name.strip():
        return default
    strategy = parse_strategy(name)
    if strategy is None:
        logger.warning(f"Unknown selection strategy {name!r}, using {default.value}")
        return default
    return strategy
