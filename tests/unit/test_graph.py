"""Unit tests for the dependency graph analyzer."""

import pytest

from knot.selection.graph import (
    DependencyAnalyzer,
    are_dependencies_met,
    detect_cycles,
    validate_referential_integrity,
)
from knot.tasks.models import TaskState


class TestCycleDetection:
    """Tests for detect_cycles."""

    def test_acyclic_graph(self, sample_tasks: list) -> None:
        """Test that an acyclic graph reports no cycles."""
        assert detect_cycles(sample_tasks) == []

    def test_two_node_cycle(self, cyclic_tasks: list) -> None:
        """Test A <-> B with an independent C gives exactly one cycle."""
        cycles = detect_cycles(cyclic_tasks)

        assert len(cycles) == 1
        assert set(cycles[0]) == {"a", "b"}
        assert "c" not in cycles[0]

    def test_disconnected_cycles(self, make_task) -> None:
        """Test that cycles in separate components are all found."""
        tasks = [
            make_task("a", dependencies=["b"]),
            make_task("b", dependencies=["a"]),
            make_task("x", dependencies=["y"]),
            make_task("y", dependencies=["z"]),
            make_task("z", dependencies=["x"]),
        ]

        cycles = detect_cycles(tasks)

        assert len(cycles) == 2
        assert {frozenset(c) for c in cycles} == {
            frozenset({"a", "b"}),
            frozenset({"x", "y", "z"}),
        }

    def test_cycle_is_path_suffix(self, make_task) -> None:
        """Test that a tail leading into a cycle is not part of it."""
        tasks = [
            make_task("entry", dependencies=["a"]),
            make_task("a", dependencies=["b"]),
            make_task("b", dependencies=["a"]),
        ]

        cycles = detect_cycles(tasks)

        assert cycles == [["a", "b"]]

    def test_dangling_edges_skipped(self, make_task) -> None:
        """Test that edges to missing tasks do not break the search."""
        tasks = [make_task("a", dependencies=["ghost"])]

        assert detect_cycles(tasks) == []

    def test_long_chain(self, make_task) -> None:
        """Test a chain longer than the default recursion limit."""
        tasks = [make_task("t0")]
        tasks += [make_task(f"t{i}", dependencies=[f"t{i - 1}"]) for i in range(1, 3000)]

        assert detect_cycles(tasks) == []


class TestReferentialIntegrity:
    """Tests for validate_referential_integrity."""

    def test_reports_missing_targets(self, make_task) -> None:
        """Test one issue per missing dependency id."""
        tasks = [
            make_task("a", dependencies=["ghost", "b"]),
            make_task("b", dependencies=["phantom"]),
        ]

        issues = validate_referential_integrity(tasks)

        assert [(i.task_id, i.missing_id) for i in issues] == [
            ("a", "ghost"),
            ("b", "phantom"),
        ]
        assert "ghost" in issues[0].message

    def test_consistent_graph(self, sample_tasks: list) -> None:
        """Test that a consistent graph has no issues."""
        assert validate_referential_integrity(sample_tasks) == []


class TestClosures:
    """Tests for direct and transitive relations."""

    def test_direct_relations(self, sample_tasks: list) -> None:
        """Test dependencies and dependents of one task."""
        analyzer = DependencyAnalyzer(sample_tasks)

        assert analyzer.dependencies("api") == ["models"]
        assert sorted(analyzer.dependents("api")) == ["frontend", "tests"]

    def test_transitive_dependents(self, sample_tasks: list) -> None:
        """Test everything downstream of models."""
        analyzer = DependencyAnalyzer(sample_tasks)

        assert sorted(analyzer.transitive_dependents("models")) == ["api", "frontend", "tests"]

    def test_transitive_dependencies(self, sample_tasks: list) -> None:
        """Test everything upstream of frontend."""
        analyzer = DependencyAnalyzer(sample_tasks)

        assert analyzer.transitive_dependencies("frontend") == ["api", "models", "setup"]

    def test_closure_terminates_inside_cycle(self, cyclic_tasks: list) -> None:
        """Test that a root on a cycle is not part of its own closure."""
        analyzer = DependencyAnalyzer(cyclic_tasks)

        assert analyzer.transitive_dependents("a") == ["b"]
        assert analyzer.transitive_dependencies("b") == ["a"]

    def test_unknown_task(self, sample_tasks: list) -> None:
        """Test that unknown ids have no relations."""
        analyzer = DependencyAnalyzer(sample_tasks)

        assert analyzer.dependencies("nope") == []
        assert analyzer.transitive_dependents("nope") == []


class TestChains:
    """Tests for upstream and downstream chain listings."""

    def test_upstream_chain_depths(self, sample_tasks: list) -> None:
        """Test that each level is indented one deeper."""
        entries = DependencyAnalyzer(sample_tasks).upstream_chain("frontend")

        assert [(e.depth, e.task.id) for e in entries] == [
            (1, "api"),
            (2, "models"),
            (3, "setup"),
        ]

    def test_downstream_chain_in_cycle(self, cyclic_tasks: list) -> None:
        """Test that the chain listing terminates on cyclic data."""
        entries = DependencyAnalyzer(cyclic_tasks).downstream_chain("a")

        assert [e.task.id for e in entries] == ["b"]

    def test_max_depth(self, sample_tasks: list) -> None:
        """Test that max_depth cuts the listing."""
        entries = DependencyAnalyzer(sample_tasks).upstream_chain("frontend", max_depth=1)

        assert [e.task.id for e in entries] == ["api"]

    def test_long_chain(self, make_task) -> None:
        """Test chain listings deeper than the default recursion limit."""
        tasks = [make_task("t0")]
        tasks += [make_task(f"t{i}", dependencies=[f"t{i - 1}"]) for i in range(1, 3000)]
        analyzer = DependencyAnalyzer(tasks)

        upstream = analyzer.upstream_chain("t2999")
        downstream = analyzer.downstream_chain("t0")

        assert len(upstream) == 2999
        assert (upstream[-1].depth, upstream[-1].task.id) == (2999, "t0")
        assert len(downstream) == 2999
        assert (downstream[0].depth, downstream[0].task.id) == (1, "t1")
        assert (downstream[-1].depth, downstream[-1].task.id) == (2999, "t2999")


class TestMetrics:
    """Tests for unblocked count, critical path and blocking reasons."""

    def test_unblocked_count(self, sample_tasks: list) -> None:
        """Test that api would unblock frontend and tests."""
        analyzer = DependencyAnalyzer(sample_tasks)

        assert analyzer.unblocked_count("api") == 2
        assert analyzer.unblocked_count("models") == 1
        assert analyzer.unblocked_count("docs") == 0

    def test_unblocked_count_needs_other_dependencies_done(self, make_task) -> None:
        """Test that a dependent still waiting on something else is not counted."""
        tasks = [
            make_task("a"),
            make_task("b"),
            make_task("c", dependencies=["a", "b"]),
        ]

        assert DependencyAnalyzer(tasks).unblocked_count("a") == 0

    def test_critical_path_length(self, sample_tasks: list) -> None:
        """Test the longest unfinished chain from models."""
        analyzer = DependencyAnalyzer(sample_tasks)

        assert analyzer.critical_path_length("models") == 3
        assert analyzer.critical_path_length("docs") == 1
        assert analyzer.critical_path_length("missing") == 0

    def test_critical_path_length_in_cycle(self, cyclic_tasks: list) -> None:
        """Test that the metric terminates on cyclic data."""
        assert DependencyAnalyzer(cyclic_tasks).critical_path_length("a") == 2

    def test_critical_path(self, sample_tasks: list) -> None:
        """Test the longest chain in the project, upstream first."""
        path = DependencyAnalyzer(sample_tasks).critical_path()

        assert path[:3] == ["setup", "models", "api"]
        assert len(path) == 4

    def test_critical_path_long_chain(self, make_task) -> None:
        """Test the longest chain over a project deeper than the recursion limit."""
        tasks = [make_task("t0")]
        tasks += [make_task(f"t{i}", dependencies=[f"t{i - 1}"]) for i in range(1, 3000)]

        path = DependencyAnalyzer(tasks).critical_path()

        assert len(path) == 3000
        assert (path[0], path[-1]) == ("t0", "t2999")

    def test_critical_path_empty(self) -> None:
        """Test that an empty project has no critical path."""
        assert DependencyAnalyzer([]).critical_path() == []

    def test_blocking_reasons(self, make_task) -> None:
        """Test reasons for a task that waits on work and on a missing task."""
        tasks = [
            make_task("dep", state=TaskState.IN_PROGRESS),
            make_task("task", dependencies=["dep", "ghost"]),
            make_task("child", parent_id="task", depth=1),
        ]

        reasons = DependencyAnalyzer(tasks).blocking_reasons("task")

        assert len(reasons) == 3
        assert any("in_progress" in r for r in reasons)
        assert any("missing task ghost" in r for r in reasons)
        assert any("unfinished subtasks" in r for r in reasons)


class TestDependenciesMet:
    """Tests for are_dependencies_met."""

    @pytest.mark.parametrize(
        ("dep_state", "expected"),
        [
            (TaskState.COMPLETED, True),
            (TaskState.IN_PROGRESS, False),
            (TaskState.CANCELLED, False),
        ],
    )
    def test_dependency_state(self, make_task, dep_state: TaskState, expected: bool) -> None:
        """Test that only completed dependencies count as met."""
        dep = make_task("dep", state=dep_state)
        task = make_task("task", dependencies=["dep"])

        assert are_dependencies_met(task, {"dep": dep, "task": task}) is expected

    def test_missing_dependency_not_met(self, make_task) -> None:
        """Test that a dangling dependency counts as unmet."""
        task = make_task("task", dependencies=["ghost"])

        assert not are_dependencies_met(task, {"task": task})
