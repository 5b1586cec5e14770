"""Loading dialogue graphs and registries from YAML.

Graph files list their nodes; the loader keys them by node id and rejects
duplicate ids, since a duplicate would otherwise silently shadow the first
node. Everything else about graph integrity is left to the validators.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, ValidationError
from ruamel.yaml import YAML

from wayfinder.errors import ContentLoadError, DuplicateNodeError
from wayfinder.models.dialogue import DialogueGraph
from wayfinder.models.registry import PatternAffinity, SimulationContentEntry, SimulationEngineEntry
from wayfinder.observability.logging import get_logger

if TYPE_CHECKING:
    from wayfinder.config import WayfinderConfig

log = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

GRAPH_SUFFIXES = (".yaml", ".yml")


@dataclass
class ContentBundle:
    """Everything loaded from one content directory.

    Attributes:
        graphs: Dialogue graphs keyed by graph id.
        affinities: Affinity registry keyed by character id, or None to use
            the built-in registry.
        simulation_content: Authoring-side simulation registry.
        simulation_engine: Engine-side simulation registry.
    """

    graphs: dict[str, DialogueGraph] = field(default_factory=dict)
    affinities: dict[str, PatternAffinity] | None = None
    simulation_content: list[SimulationContentEntry] | None = None
    simulation_engine: list[SimulationEngineEntry] | None = None

    def graph_for_character(self, character_id: str) -> DialogueGraph | None:
        """The character's primary graph: the one keyed by the character id, else the first owned."""
        if character_id in self.graphs:
            return self.graphs[character_id]
        for graph in self.graphs.values():
            if graph.character_id == character_id:
                return graph
        return None

    def graphs_by_character(self) -> dict[str, DialogueGraph]:
        """One graph per character, as used by the runtime position check."""
        result: dict[str, DialogueGraph] = {}
        for graph in self.graphs.values():
            if graph.character_id not in result:
                primary = self.graph_for_character(graph.character_id)
                if primary is not None:
                    result[graph.character_id] = primary
        return result


def _read_yaml(path: Path) -> Any:
    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except FileNotFoundError as e:
        raise ContentLoadError(path, "File not found") from e
    except Exception as e:
        raise ContentLoadError(path, str(e)) from e
    if data is None:
        raise ContentLoadError(path, "Empty file")
    return data


def _validate(model: type[T], data: Any, path: Path) -> T:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ContentLoadError(path, str(e)) from e


def load_graph(path: Path) -> DialogueGraph:
    """Load one dialogue graph file.

    Raises:
        ContentLoadError: If the file is unreadable or fails validation.
        DuplicateNodeError: If two nodes share an id.
    """
    data = _read_yaml(path)
    if not isinstance(data, dict):
        raise ContentLoadError(path, "Top level must be a mapping")

    raw_nodes = data.get("nodes", [])
    if isinstance(raw_nodes, list):
        nodes: dict[str, Any] = {}
        for raw in raw_nodes:
            node_id = raw.get("node_id") if isinstance(raw, dict) else None
            if not isinstance(node_id, str):
                raise ContentLoadError(path, f"Node without node_id: {raw!r}")
            if node_id in nodes:
                raise DuplicateNodeError(path, node_id)
            nodes[node_id] = raw
        data = {**data, "nodes": nodes}

    graph = _validate(DialogueGraph, data, path)
    log.debug("graph_loaded", graph_id=graph.graph_id, nodes=len(graph.nodes), path=str(path))
    return graph


def load_graphs(directory: Path) -> dict[str, DialogueGraph]:
    """Load every graph file in ``directory``, keyed by graph id."""
    if not directory.is_dir():
        raise ContentLoadError(directory, "Graphs directory not found")

    graphs: dict[str, DialogueGraph] = {}
    for path in sorted(directory.iterdir()):
        if path.suffix not in GRAPH_SUFFIXES:
            continue
        graph = load_graph(path)
        if graph.graph_id in graphs:
            raise ContentLoadError(path, f"duplicate graph id '{graph.graph_id}'")
        graphs[graph.graph_id] = graph
    return graphs


def _load_entries(path: Path, key: str, model: type[T]) -> list[T]:
    data = _read_yaml(path)
    entries = data.get(key) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ContentLoadError(path, f"Expected a list under '{key}'")
    return [_validate(model, entry, path) for entry in entries]


def load_affinities(path: Path) -> dict[str, PatternAffinity]:
    return {a.character_id: a for a in _load_entries(path, "affinities", PatternAffinity)}


def load_simulation_content(path: Path) -> list[SimulationContentEntry]:
    return _load_entries(path, "simulations", SimulationContentEntry)


def load_simulation_engine(path: Path) -> list[SimulationEngineEntry]:
    return _load_entries(path, "simulations", SimulationEngineEntry)


def load_content(content_dir: Path, config: WayfinderConfig) -> ContentBundle:
    """Load graphs and whichever registries ``config`` names."""
    bundle = ContentBundle(graphs=load_graphs(content_dir / config.graphs_dir))

    registries = config.registries
    if registries.affinities:
        bundle.affinities = load_affinities(content_dir / registries.affinities)
    if registries.simulation_content:
        bundle.simulation_content = load_simulation_content(content_dir / registries.simulation_content)
    if registries.simulation_engine:
        bundle.simulation_engine = load_simulation_engine(content_dir / registries.simulation_engine)

    log.info("content_loaded", graphs=len(bundle.graphs), content_dir=str(content_dir))
    return bundle
