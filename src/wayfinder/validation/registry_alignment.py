"""Alignment check between the two simulation registries.

The content registry (authoring metadata: phase, difficulty) and the engine
registry (wiring: entry node, completion flag) describe the same
simulations but are maintained separately. Rather than merging them, this
validator checks per character that:

- every id follows the ``<character_id>_<slug>`` scheme,
- both registries use the same id for the character's simulation,
- a shared id belongs to the same character in both registries,
- each engine entry node exists in that character's graph,
- phase and difficulty are present on every content entry,
- the entry node's simulation descriptor agrees with the content metadata.
"""

from __future__ import annotations

import re
from collections import defaultdict
from typing import TYPE_CHECKING

from wayfinder.observability.logging import get_logger
from wayfinder.validation.types import RegistryAlignmentResult, RegistryIssue, RegistryIssueType

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from wayfinder.models.dialogue import DialogueGraph, DialogueNode
    from wayfinder.models.registry import SimulationContentEntry, SimulationEngineEntry

log = get_logger(__name__)

_SLUG = re.compile(r"^[a-z0-9]+(?:_[a-z0-9]+)*$")


def follows_id_scheme(simulation_id: str, character_id: str) -> bool:
    prefix = f"{character_id}_"
    return simulation_id.startswith(prefix) and bool(_SLUG.match(simulation_id[len(prefix) :]))


def _graphs_by_character(graphs: Mapping[str, DialogueGraph]) -> dict[str, list[DialogueGraph]]:
    by_character: dict[str, list[DialogueGraph]] = defaultdict(list)
    for graph in graphs.values():
        by_character[graph.character_id].append(graph)
    return by_character


def _find_node(graphs: Iterable[DialogueGraph], node_id: str) -> DialogueNode | None:
    for graph in graphs:
        node = graph.get_node(node_id)
        if node is not None:
            return node
    return None


def _check_content_metadata(entry: SimulationContentEntry) -> list[RegistryIssue]:
    issues = []
    if entry.phase is None:
        issues.append(
            RegistryIssue(
                entry.character_id,
                entry.id,
                RegistryIssueType.MISSING_PHASE,
                f"Content entry '{entry.id}' has no phase",
            )
        )
    if entry.difficulty is None:
        issues.append(
            RegistryIssue(
                entry.character_id,
                entry.id,
                RegistryIssueType.MISSING_DIFFICULTY,
                f"Content entry '{entry.id}' has no difficulty",
            )
        )
    return issues


def _check_descriptor(
    content: SimulationContentEntry,
    node: DialogueNode,
) -> list[RegistryIssue]:
    descriptor = node.simulation
    if descriptor is None:
        return []
    mismatches = []
    if content.phase is not None and descriptor.phase != content.phase:
        mismatches.append(f"phase {descriptor.phase} != {content.phase}")
    if content.difficulty is not None and descriptor.difficulty != content.difficulty:
        mismatches.append(f"difficulty {descriptor.difficulty.value} != {content.difficulty.value}")
    if descriptor.simulation_id is not None and descriptor.simulation_id != content.id:
        mismatches.append(f"simulation_id {descriptor.simulation_id} != {content.id}")
    if not mismatches:
        return []
    return [
        RegistryIssue(
            content.character_id,
            content.id,
            RegistryIssueType.METADATA_MISMATCH,
            f"Node '{node.node_id}' simulation descriptor disagrees with registry: {'; '.join(mismatches)}",
            severity="warning",
        )
    ]


def validate_simulation_registries(
    content: Sequence[SimulationContentEntry],
    engine: Sequence[SimulationEngineEntry],
    graphs: Mapping[str, DialogueGraph],
) -> RegistryAlignmentResult:
    """Cross-check both simulation registries against each other and the graphs.

    Args:
        content: Authoring-side registry entries.
        engine: Engine-side registry entries.
        graphs: All dialogue graphs; entry nodes are looked up in the graphs
            owned by the entry's character.
    """
    issues: list[RegistryIssue] = []
    graphs_by_character = _graphs_by_character(graphs)

    content_by_character: dict[str, dict[str, SimulationContentEntry]] = defaultdict(dict)
    engine_by_character: dict[str, dict[str, SimulationEngineEntry]] = defaultdict(dict)

    for entry in [*content, *engine]:
        if not follows_id_scheme(entry.id, entry.character_id):
            issues.append(
                RegistryIssue(
                    entry.character_id,
                    entry.id,
                    RegistryIssueType.ID_SCHEME_VIOLATION,
                    f"Id '{entry.id}' does not follow '{entry.character_id}_<slug>'",
                )
            )
    content_owner = {entry.id: entry.character_id for entry in content}
    engine_owner = {entry.id: entry.character_id for entry in engine}
    # shared ids owned by different characters are reported once and kept out of pairing
    shared = content_owner.keys() & engine_owner.keys()
    crossed = sorted(sim_id for sim_id in shared if content_owner[sim_id] != engine_owner[sim_id])
    for sim_id in crossed:
        issues.append(
            RegistryIssue(
                content_owner[sim_id],
                sim_id,
                RegistryIssueType.CHARACTER_MISMATCH,
                f"'{sim_id}' belongs to '{content_owner[sim_id]}' in the content registry "
                f"but '{engine_owner[sim_id]}' in the engine registry",
            )
        )

    for content_entry in content:
        issues.extend(_check_content_metadata(content_entry))
        if content_entry.id in crossed:
            continue
        content_by_character[content_entry.character_id][content_entry.id] = content_entry
    for engine_entry in engine:
        if engine_entry.id in crossed:
            continue
        engine_by_character[engine_entry.character_id][engine_entry.id] = engine_entry

    characters = sorted(set(content_by_character) | set(engine_by_character))
    for character_id in characters:
        content_entries = content_by_character.get(character_id, {})
        engine_entries = engine_by_character.get(character_id, {})
        character_graphs = graphs_by_character.get(character_id, [])

        content_only = sorted(set(content_entries) - set(engine_entries))
        engine_only = sorted(set(engine_entries) - set(content_entries))
        if len(content_only) == 1 and len(engine_only) == 1:
            issues.append(
                RegistryIssue(
                    character_id,
                    content_only[0],
                    RegistryIssueType.ID_MISMATCH,
                    f"Content registry uses '{content_only[0]}' but engine registry uses '{engine_only[0]}'",
                )
            )
        else:
            for sim_id in content_only:
                issues.append(
                    RegistryIssue(
                        character_id,
                        sim_id,
                        RegistryIssueType.UNPAIRED_ENTRY,
                        f"'{sim_id}' is in the content registry only",
                    )
                )
            for sim_id in engine_only:
                issues.append(
                    RegistryIssue(
                        character_id,
                        sim_id,
                        RegistryIssueType.UNPAIRED_ENTRY,
                        f"'{sim_id}' is in the engine registry only",
                    )
                )

        for sim_id, engine_entry in sorted(engine_entries.items()):
            if not character_graphs:
                issues.append(
                    RegistryIssue(
                        character_id,
                        sim_id,
                        RegistryIssueType.MISSING_GRAPH,
                        f"No dialogue graph for character '{character_id}'",
                    )
                )
                continue
            node = _find_node(character_graphs, engine_entry.entry_node_id)
            if node is None:
                issues.append(
                    RegistryIssue(
                        character_id,
                        sim_id,
                        RegistryIssueType.MISSING_ENTRY_NODE,
                        f"Entry node '{engine_entry.entry_node_id}' does not exist in {character_id} graphs",
                    )
                )
                continue
            if sim_id in content_entries:
                issues.extend(_check_descriptor(content_entries[sim_id], node))

    result = RegistryAlignmentResult(issues=issues, checked_characters=characters)
    log.debug("registries_validated", characters=len(characters), issues=len(issues))
    return result
