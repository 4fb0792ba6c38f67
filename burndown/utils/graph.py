import networkx as nx

from burndown.domain.diagnostics import CYCLE, MISSING_DEPENDENCY


def as_lookup(source, default=None):
    """
    Turn a mapping or a callable into a callable lookup.

    The scheduling functions accept either `{task_id: [...]}` dictionaries or
    store-style getters such as `store.get_task_dependencies`.
    """
    if source is None:
        return lambda key: [] if default is None else default
    if callable(source):
        return source
    return lambda key: source.get(key, [] if default is None else default)


def dependency_ids(dependencies):
    """Dependency lookups may return task ids or Task objects."""
    return [getattr(dep, "id", dep) for dep in dependencies or []]


def build_dependency_graph(tasks, dependencies_of, diagnostics=None):
    """
    Build a directed graph of task dependencies (edges point prerequisite -> task).

    Dependencies on unknown tasks are dropped and reported. Cycles are kept in
    the graph; callers decide how to break them.
    """
    lookup = as_lookup(dependencies_of)
    G = nx.DiGraph()

    for task in tasks:
        G.add_node(task.id, node_type="task", task=task)

    for task in tasks:
        for dep_id in dependency_ids(lookup(task.id)):
            if dep_id in G:
                G.add_edge(dep_id, task.id)
            elif diagnostics is not None:
                diagnostics.warn(
                    MISSING_DEPENDENCY,
                    f"Task {task.id} depends on unknown task {dep_id}; dependency ignored",
                    task_id=task.id,
                    dependency_id=dep_id,
                )

    return G


def find_dependency_cycles(graph):
    """List every elementary dependency cycle, each as a list of task ids."""
    return [list(cycle) for cycle in nx.simple_cycles(graph)]


def dependency_depth(graph):
    """Length of the longest dependency chain, or None when the graph has cycles."""
    if not nx.is_directed_acyclic_graph(graph):
        return None
    return nx.dag_longest_path_length(graph)


def order_tasks(graph, diagnostics=None, back_edges=None):
    """
    Order tasks so every prerequisite comes before its dependents.

    Depth-first post-order over the graph's insertion order, so independent
    tasks keep the order they were given in. That order is the tie-break the
    leveling simulator uses when two tasks compete for a resource.

    A prerequisite that is still on the recursion stack closes a cycle; that
    edge is skipped and reported instead of recursing forever. Skipped edges
    are added to `back_edges` as (prerequisite, task) pairs when a set is given.
    """
    ordered = []
    visited = set()
    visiting = set()

    def visit(task_id):
        if task_id in visited:
            return
        visiting.add(task_id)
        for dep_id in graph.predecessors(task_id):
            if dep_id in visiting:
                if back_edges is not None:
                    back_edges.add((dep_id, task_id))
                if diagnostics is not None:
                    diagnostics.warn(
                        CYCLE,
                        f"Dependency cycle through {dep_id} -> {task_id}; edge ignored",
                        task_id=task_id,
                        dependency_id=dep_id,
                    )
                continue
            visit(dep_id)
        visiting.discard(task_id)
        visited.add(task_id)
        ordered.append(graph.nodes[task_id]["task"])

    for task_id in graph.nodes():
        visit(task_id)

    return ordered
