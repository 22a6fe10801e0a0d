import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

import rustworkx as rx

from core.node_client import NodeClient, NodeHealthStatus
from core.node_registry import NodeRegistry
from core.types_registry import (
    BadRequestError,
    EngineError,
    ExecutionResults,
    ExecutionStatus,
    GraphDefinition,
    GraphExecutionRequest,
    GraphExecutionResponse,
    InternalError,
    NodeExecutionResult,
    NodeInputs,
    NodeOutputs,
    OutputsCache,
)

logger = logging.getLogger(__name__)

TARGET_DIRECTORY_KEY = "target_directory"


class _Mark(Enum):
    UNVISITED = 0
    IN_PROGRESS = 1
    DONE = 2


# ============================================================================
# Ordering
# ============================================================================


class ExecutionPlanner:
    """Computes execution order for a validated graph."""

    @staticmethod
    def dependencies(graph: GraphDefinition) -> dict[str, list[str]]:
        """Map each instance to the instances it receives data from."""
        deps: dict[str, list[str]] = {node.instance_id: [] for node in graph.nodes}
        for conn in graph.connections:
            deps[conn.to_node].append(conn.from_node)
        return deps

    def build_execution_order(self, graph: GraphDefinition) -> list[str]:
        """Depth-first post-order over the dependency map.

        Instances are visited in declaration order; each one is appended after
        all of its dependencies.

        Raises:
            BadRequestError: If the connections form a cycle.
        """
        deps = self.dependencies(graph)
        marks = {instance_id: _Mark.UNVISITED for instance_id in deps}
        order: list[str] = []

        for node in graph.nodes:
            root = node.instance_id
            if marks[root] is not _Mark.UNVISITED:
                continue

            marks[root] = _Mark.IN_PROGRESS
            # Iterative DFS: (instance, index of next dependency to visit)
            stack: list[tuple[str, int]] = [(root, 0)]
            while stack:
                current, dep_index = stack[-1]
                current_deps = deps[current]
                if dep_index < len(current_deps):
                    stack[-1] = (current, dep_index + 1)
                    dep = current_deps[dep_index]
                    if marks[dep] is _Mark.IN_PROGRESS:
                        path = [entry[0] for entry in stack]
                        logger.error(f"Cycle detected: {' <- '.join(path + [dep])}")
                        raise BadRequestError("Circular dependency detected in graph")
                    if marks[dep] is _Mark.UNVISITED:
                        marks[dep] = _Mark.IN_PROGRESS
                        stack.append((dep, 0))
                    continue

                stack.pop()
                marks[current] = _Mark.DONE
                order.append(current)

        return order

    def build_levels(self, graph: GraphDefinition) -> list[list[str]]:
        """Group instances into generations whose dependencies all lie in
        earlier generations. Within a generation, declaration order is kept.

        Raises:
            BadRequestError: If the connections form a cycle.
        """
        # Same cycle semantics and message as the sequential order
        self.build_execution_order(graph)

        dag = rx.PyDiGraph()
        id_to_idx: dict[str, int] = {}
        declared: dict[str, int] = {}
        for position, node in enumerate(graph.nodes):
            id_to_idx[node.instance_id] = dag.add_node(node.instance_id)
            declared[node.instance_id] = position
        for conn in graph.connections:
            dag.add_edge(id_to_idx[conn.from_node], id_to_idx[conn.to_node], None)

        levels: list[list[str]] = []
        for generation in rx.topological_generations(dag):
            level = sorted((dag[idx] for idx in generation), key=lambda i: declared[i])
            levels.append(level)
        return levels


# ============================================================================
# Schedulers
# ============================================================================


class Scheduler(ABC):
    """Turns a graph into stages. Every instance of a stage may start once
    all previous stages completed."""

    name: str = "base"

    @abstractmethod
    def plan(self, planner: ExecutionPlanner, graph: GraphDefinition) -> list[list[str]]:
        pass


class SequentialScheduler(Scheduler):
    """One instance per stage, strictly in topological order."""

    name = "sequential"

    def plan(self, planner: ExecutionPlanner, graph: GraphDefinition) -> list[list[str]]:
        return [[instance_id] for instance_id in planner.build_execution_order(graph)]


class LevelScheduler(Scheduler):
    """Independent instances of the same generation run concurrently."""

    name = "levels"

    def plan(self, planner: ExecutionPlanner, graph: GraphDefinition) -> list[list[str]]:
        return planner.build_levels(graph)


SCHEDULERS: dict[str, type[Scheduler]] = {
    SequentialScheduler.name: SequentialScheduler,
    LevelScheduler.name: LevelScheduler,
}


def get_scheduler(name: str) -> Scheduler:
    if name not in SCHEDULERS:
        raise ValueError(f"Unknown scheduler: {name}")
    return SCHEDULERS[name]()


# ============================================================================
# Orchestrator
# ============================================================================


class Orchestrator:
    """Validates graphs against the registry and drives their execution."""

    def __init__(
        self,
        registry: NodeRegistry,
        client: NodeClient | None = None,
        scheduler: Scheduler | None = None,
    ):
        self.registry = registry
        self.client = client or NodeClient()
        self.scheduler = scheduler or SequentialScheduler()
        self.planner = ExecutionPlanner()

    def validate_graph(self, graph: GraphDefinition) -> None:
        """Check node types and connection endpoints before any network call.

        Handle names are not checked against the descriptors.

        Raises:
            BadRequestError: On unknown node type, duplicate instance id, or a
                connection naming an undeclared instance.
        """
        instance_ids: set[str] = set()
        for node in graph.nodes:
            if not self.registry.contains(node.node_type_id):
                raise BadRequestError(f"Unknown node type: {node.node_type_id}")
            if node.instance_id in instance_ids:
                raise BadRequestError(f"Duplicate node instance: {node.instance_id}")
            instance_ids.add(node.instance_id)

        for conn in graph.connections:
            if conn.from_node not in instance_ids:
                raise BadRequestError(f"Connection references unknown node: {conn.from_node}")
            if conn.to_node not in instance_ids:
                raise BadRequestError(f"Connection references unknown node: {conn.to_node}")

    def build_execution_order(self, graph: GraphDefinition) -> list[str]:
        return self.planner.build_execution_order(graph)

    async def execute_graph(self, request: GraphExecutionRequest) -> GraphExecutionResponse:
        """Execute a graph and report per-instance outcomes.

        Validation and cycle errors propagate to the caller. The first failing
        instance halts execution; its failure is reported in the response
        together with the results accumulated so far.
        """
        execution_id = request.execution_id or str(uuid.uuid4())
        graph = request.graph

        logger.info(f"Starting graph execution: {execution_id}")

        self.validate_graph(graph)
        stages = self.scheduler.plan(self.planner, graph)

        logger.info(f"Execution order ({self.scheduler.name}): {stages}")

        node_results: ExecutionResults = {}
        outputs_cache: OutputsCache = {}

        for stage in stages:
            failure = await self._execute_stage(stage, graph, outputs_cache, node_results)
            if failure is not None:
                return GraphExecutionResponse(
                    execution_id=execution_id,
                    status=ExecutionStatus.FAILED,
                    node_results=node_results,
                    error=failure,
                )

        logger.info(f"Graph execution completed: {execution_id}")

        return GraphExecutionResponse(
            execution_id=execution_id,
            status=ExecutionStatus.SUCCESS,
            node_results=node_results,
        )

    async def _execute_stage(
        self,
        stage: list[str],
        graph: GraphDefinition,
        outputs_cache: OutputsCache,
        node_results: ExecutionResults,
    ) -> str | None:
        """Run one stage, recording results. Returns the first error, if any."""
        if len(stage) == 1:
            outcomes: list[Any] = [await self._run_guarded(stage[0], graph, outputs_cache)]
        else:
            outcomes = await asyncio.gather(
                *(self._run_guarded(instance_id, graph, outputs_cache) for instance_id in stage)
            )

        first_error: str | None = None
        for instance_id, outcome in zip(stage, outcomes):
            if isinstance(outcome, EngineError):
                logger.error(f"Node {instance_id} failed: {outcome}")
                node_results[instance_id] = NodeExecutionResult(
                    instance_id=instance_id,
                    status=ExecutionStatus.FAILED,
                    error=str(outcome),
                )
                if first_error is None:
                    first_error = str(outcome)
                continue

            outputs_cache[instance_id] = outcome
            node_results[instance_id] = NodeExecutionResult(
                instance_id=instance_id,
                status=ExecutionStatus.SUCCESS,
                outputs=outcome,
            )
        return first_error

    async def _run_guarded(
        self, instance_id: str, graph: GraphDefinition, outputs_cache: OutputsCache
    ) -> NodeOutputs | EngineError:
        try:
            return await self.execute_node(instance_id, graph, outputs_cache)
        except EngineError as e:
            return e

    def gather_inputs(
        self, instance_id: str, graph: GraphDefinition, outputs_cache: OutputsCache
    ) -> NodeInputs:
        """Collect inputs for an instance from its upstream outputs.

        A source output handle that is missing is logged and omitted.

        Raises:
            InternalError: If a source instance has not executed yet.
        """
        inputs: NodeInputs = {}
        for conn in graph.connections:
            if conn.to_node != instance_id:
                continue
            source_outputs = outputs_cache.get(conn.from_node)
            if source_outputs is None:
                raise InternalError(
                    f"Node '{conn.from_node}' has not executed yet, "
                    f"but is a dependency of '{instance_id}'"
                )
            if conn.from_handle not in source_outputs:
                logger.warning(
                    f"Output handle '{conn.from_handle}' not found in node '{conn.from_node}'"
                )
                continue
            inputs[conn.to_handle] = source_outputs[conn.from_handle]
        return inputs

    async def execute_node(
        self, instance_id: str, graph: GraphDefinition, outputs_cache: OutputsCache
    ) -> NodeOutputs:
        logger.info(f"Executing node: {instance_id}")

        graph_node = graph.get_node(instance_id)
        if graph_node is None:
            raise InternalError(f"Node {instance_id} not found in graph")

        node_info = self.registry.get_node(graph_node.node_type_id)
        if node_info is None:
            raise InternalError(f"Node type {graph_node.node_type_id} not in registry")

        inputs = self.gather_inputs(instance_id, graph, outputs_cache)

        target_directory = graph_node.input_values.get(TARGET_DIRECTORY_KEY)
        if not isinstance(target_directory, str):
            target_directory = None

        return await self.client.run(instance_id, node_info.port, inputs, target_directory)

    async def check_nodes_health(self) -> list[NodeHealthStatus]:
        """Probe every registered node's ``/health`` endpoint."""
        logger.info("Performing system-wide health check")
        nodes = self.registry.get_all_nodes()
        return list(await asyncio.gather(*(self.client.check_health(n) for n in nodes)))

    async def aclose(self) -> None:
        await self.client.aclose()
