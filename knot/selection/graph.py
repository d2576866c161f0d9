"""Dependency graph analysis over a project's task snapshot.

The analyzer indexes tasks into id-keyed maps once and answers cycle,
closure, integrity and metric queries against them. Every traversal keeps
its own visited set, so cyclic or dangling data never causes unbounded
work; cycles and missing references are reported, not raised.
"""

from collections import defaultdict, deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from loguru import logger

from knot.tasks.models import Task, TaskState


@dataclass(frozen=True)
class IntegrityIssue:
    """A dependency id with no matching task."""

    task_id: str
    missing_id: str

    @property
    def message(self) -> str:
        return f"Task {self.task_id} depends on missing task {self.missing_id}"

    def to_dict(self) -> dict[str, str]:
        return {
            "task_id": self.task_id,
            "missing_id": self.missing_id,
            "message": self.message,
        }


@dataclass(frozen=True)
class ChainEntry:
    """One line of an upstream or downstream chain listing."""

    depth: int
    task: Task


def are_dependencies_met(task: Task, task_map: dict[str, Task]) -> bool:
    """Check whether every dependency resolves to a completed task.

    A dependency on an unknown id counts as unmet.
    """
    for dep_id in task.dependencies:
        dep = task_map.get(dep_id)
        if dep is None or dep.state != TaskState.COMPLETED:
            return False
    return True


class DependencyAnalyzer:
    """
    Answer graph questions about one project's tasks.

    Example:
        >>> analyzer = DependencyAnalyzer(tasks)
        >>> analyzer.detect_cycles()
        [['task-a', 'task-b']]
        >>> analyzer.transitive_dependents("task-c")
        ['task-d', 'task-e']
    """

    def __init__(self, tasks: Iterable[Task]) -> None:
        self._tasks: dict[str, Task] = {}
        self._dependents: dict[str, list[str]] = defaultdict(list)
        self._children: dict[str, list[str]] = defaultdict(list)
        self._path_lengths: dict[str, int] = {}

        for task in tasks:
            self._tasks[task.id] = task

        for task in self._tasks.values():
            for dep_id in task.dependencies:
                self._dependents[dep_id].append(task.id)
            if task.parent_id is not None:
                self._children[task.parent_id].append(task.id)

        logger.debug(f"Indexed {len(self._tasks)} tasks for dependency analysis")

    @property
    def tasks(self) -> dict[str, Task]:
        """Tasks keyed by id."""
        return self._tasks

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    # =========================================================================
    # CYCLE DETECTION
    # =========================================================================

    def detect_cycles(self) -> list[list[str]]:
        """
        Find dependency cycles using an iterative depth-first search.

        A dependency that is still on the search stack closes a cycle; the
        cycle is the current path from that dependency to the top. The
        search restarts from every unvisited task, so cycles in
        disconnected components are all found. Edges to unknown ids are
        skipped.

        Returns:
            Cycle paths, empty when the graph is acyclic.

        Example:
            >>> DependencyAnalyzer([a_needs_b, b_needs_a, c]).detect_cycles()
            [['a', 'b']]
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        colors: dict[str, int] = {task_id: WHITE for task_id in self._tasks}
        cycles: list[list[str]] = []

        for root in self._tasks:
            if colors[root] != WHITE:
                continue

            path: list[str] = [root]
            stack: list[Iterator[str]] = [iter(self._tasks[root].dependencies)]
            colors[root] = GRAY

            while stack:
                for dep_id in stack[-1]:
                    if dep_id not in colors:
                        continue  # Skip dangling dependencies
                    if colors[dep_id] == GRAY:
                        cycles.append(path[path.index(dep_id):])
                    elif colors[dep_id] == WHITE:
                        colors[dep_id] = GRAY
                        path.append(dep_id)
                        stack.append(iter(self._tasks[dep_id].dependencies))
                        break
                else:
                    colors[path.pop()] = BLACK
                    stack.pop()

        if cycles:
            logger.debug(f"Detected {len(cycles)} dependency cycles")
        return cycles

    def cyclic_task_ids(self) -> set[str]:
        """Ids of all tasks that sit on a detected cycle."""
        return {task_id for cycle in self.detect_cycles() for task_id in cycle}

    # =========================================================================
    # REFERENTIAL INTEGRITY
    # =========================================================================

    def validate_referential_integrity(self) -> list[IntegrityIssue]:
        """Report every dependency id that has no matching task.

        Nothing is pruned; callers decide what to do with the issues.
        """
        issues = [
            IntegrityIssue(task_id=task.id, missing_id=dep_id)
            for task in self._tasks.values()
            for dep_id in task.dependencies
            if dep_id not in self._tasks
        ]
        if issues:
            logger.warning(f"Found {len(issues)} dangling dependency references")
        return issues

    # =========================================================================
    # CLOSURES
    # =========================================================================

    def dependencies(self, task_id: str) -> list[str]:
        """Ids of known tasks the given task directly depends on."""
        task = self._tasks.get(task_id)
        if task is None:
            return []
        return [dep_id for dep_id in task.dependencies if dep_id in self._tasks]

    def dependents(self, task_id: str) -> list[str]:
        """Ids of tasks that directly depend on the given task."""
        return list(self._dependents.get(task_id, []))

    def transitive_dependencies(self, task_id: str) -> list[str]:
        """All tasks the given task depends on, directly or not."""
        return self._closure(task_id, self.dependencies)

    def transitive_dependents(self, task_id: str) -> list[str]:
        """All tasks that depend on the given task, directly or not."""
        return self._closure(task_id, self.dependents)

    def _closure(self, task_id: str, neighbours) -> list[str]:
        # Breadth-first; the root never appears in its own closure
        visited = {task_id}
        order: list[str] = []
        queue = deque(neighbours(task_id))

        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            order.append(current)
            queue.extend(neighbours(current))

        return order

    def children(self, task_id: str) -> list[str]:
        """Ids of direct subtasks."""
        return list(self._children.get(task_id, []))

    def has_unfinished_children(self, task_id: str) -> bool:
        return any(
            not self._tasks[child_id].is_finished
            for child_id in self._children.get(task_id, [])
        )

    # =========================================================================
    # CHAIN DISPLAY
    # =========================================================================

    def upstream_chain(self, task_id: str, max_depth: int | None = None) -> list[ChainEntry]:
        """List what the task waits on, depth-first, for indented display."""
        return self._chain(task_id, self.dependencies, max_depth)

    def downstream_chain(self, task_id: str, max_depth: int | None = None) -> list[ChainEntry]:
        """List what waits on the task, depth-first, for indented display."""
        return self._chain(task_id, self.dependents, max_depth)

    def _chain(self, task_id: str, neighbours, max_depth: int | None) -> list[ChainEntry]:
        entries: list[ChainEntry] = []
        visited = {task_id}
        if max_depth is not None and max_depth < 1:
            return entries

        # Preorder walk; each frame is (depth of the children, children iterator)
        stack = [(1, iter(neighbours(task_id)))]
        while stack:
            depth, children = stack[-1]
            for next_id in children:
                if next_id in visited:
                    continue
                visited.add(next_id)
                entries.append(ChainEntry(depth=depth, task=self._tasks[next_id]))
                if max_depth is None or depth < max_depth:
                    stack.append((depth + 1, iter(neighbours(next_id))))
                    break
            else:
                stack.pop()

        return entries

    # =========================================================================
    # METRICS
    # =========================================================================

    def unblocked_count(self, task_id: str) -> int:
        """
        Count waiting tasks that completing this one would make ready.

        A dependent counts when it is pending or blocked and every one of
        its other dependencies is already completed.
        """
        count = 0
        for dependent_id in self._dependents.get(task_id, []):
            dependent = self._tasks[dependent_id]
            if dependent.state not in (TaskState.PENDING, TaskState.BLOCKED):
                continue
            others = [dep_id for dep_id in dependent.dependencies if dep_id != task_id]
            if all(
                dep_id in self._tasks and self._tasks[dep_id].state == TaskState.COMPLETED
                for dep_id in others
            ):
                count += 1
        return count

    def critical_path_length(self, task_id: str) -> int:
        """Longest chain of unfinished dependents from this task, counting itself.

        Lengths are cached per analyzer. On cyclic data the value is an
        approximation, since cycle members are cut where the walk re-enters
        them.
        """
        if task_id not in self._tasks:
            return 0

        cache = self._path_lengths
        if task_id in cache:
            return cache[task_id]

        # Each frame is [task id, dependents iterator, longest child chain so far]
        on_path = {task_id}
        stack: list[list] = [[task_id, iter(self._dependents.get(task_id, [])), 0]]

        while stack:
            frame = stack[-1]
            for dependent_id in frame[1]:
                if dependent_id in on_path or self._tasks[dependent_id].is_finished:
                    continue
                if dependent_id in cache:
                    frame[2] = max(frame[2], cache[dependent_id])
                    continue
                on_path.add(dependent_id)
                stack.append([dependent_id, iter(self._dependents.get(dependent_id, [])), 0])
                break
            else:
                stack.pop()
                on_path.discard(frame[0])
                cache[frame[0]] = frame[2] + 1
                if stack:
                    stack[-1][2] = max(stack[-1][2], cache[frame[0]])

        return cache[task_id]

    def critical_path(self) -> list[str]:
        """
        Longest dependency chain in the project, upstream task first.

        Chains start at tasks with no known dependencies. Returns an empty
        list for an empty project or one where every task sits on a cycle.
        """
        lengths: dict[str, int] = {}
        successors: dict[str, str | None] = {}

        def longest_from(start: str) -> None:
            # Each frame is [task id, dependents iterator, best length, best next id]
            on_path = {start}
            stack: list[list] = [[start, iter(self._dependents.get(start, [])), 0, None]]
            while stack:
                frame = stack[-1]
                for dependent_id in frame[1]:
                    if dependent_id in on_path:
                        continue
                    if dependent_id in lengths:
                        if lengths[dependent_id] > frame[2]:
                            frame[2], frame[3] = lengths[dependent_id], dependent_id
                        continue
                    on_path.add(dependent_id)
                    stack.append(
                        [dependent_id, iter(self._dependents.get(dependent_id, [])), 0, None]
                    )
                    break
                else:
                    stack.pop()
                    on_path.discard(frame[0])
                    lengths[frame[0]] = frame[2] + 1
                    successors[frame[0]] = frame[3]
                    if stack and lengths[frame[0]] > stack[-1][2]:
                        stack[-1][2], stack[-1][3] = lengths[frame[0]], frame[0]

        best_start: str | None = None
        for task_id in self._tasks:
            if self.dependencies(task_id):
                continue
            if task_id not in lengths:
                longest_from(task_id)
            if best_start is None or lengths[task_id] > lengths[best_start]:
                best_start = task_id

        path: list[str] = []
        current = best_start
        while current is not None:
            path.append(current)
            current = successors[current]
        return path

    def blocking_reasons(self, task_id: str) -> list[str]:
        """Explain why a task cannot be worked on right now."""
        task = self._tasks.get(task_id)
        if task is None:
            return [f"Task {task_id} does not exist"]

        reasons: list[str] = []
        if task.state not in (TaskState.PENDING, TaskState.IN_PROGRESS):
            reasons.append(f"Task is {task.state.value}")

        for dep_id in task.dependencies:
            dep = self._tasks.get(dep_id)
            if dep is None:
                reasons.append(f"Depends on missing task {dep_id}")
            elif dep.state != TaskState.COMPLETED:
                reasons.append(f"Waiting on '{dep.title}' ({dep_id}), which is {dep.state.value}")

        unfinished = [
            child_id
            for child_id in self._children.get(task_id, [])
            if not self._tasks[child_id].is_finished
        ]
        if unfinished:
            reasons.append(f"Has {len(unfinished)} unfinished subtasks")

        return reasons


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def detect_cycles(tasks: Iterable[Task]) -> list[list[str]]:
    """
    Find dependency cycles in a task list.

    Args:
        tasks: Tasks of one project.

    Returns:
        Cycle paths, empty when acyclic.
    """
    return DependencyAnalyzer(tasks).detect_cycles()


def validate_referential_integrity(tasks: Iterable[Task]) -> list[IntegrityIssue]:
    """Report dependency ids with no matching task."""
    return DependencyAnalyzer(tasks).validate_referential_integrity()
