"""Wayfinder CLI - typer application entry point."""

from __future__ import annotations

import atexit
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from wayfinder.config import (
    DEFAULT_LOGS_DIR,
    ENV_CONTENT_DIR,
    WayfinderConfig,
    load_config,
    resolve_content_dir,
)
from wayfinder.content.loader import ContentBundle, load_content
from wayfinder.engine.conditions import choice_text_for, evaluate_choices
from wayfinder.engine.navigator import select_content
from wayfinder.engine.orbs import (
    dominant_pattern,
    get_orb_tier_progress,
    get_unlocked_abilities,
    total_orbs,
)
from wayfinder.engine.session import resolve_choice, start_conversation
from wayfinder.errors import NodeNotFoundError, WayfinderError
from wayfinder.models.state import create_new_game_state
from wayfinder.observability import close_file_logging, configure_logging, get_logger
from wayfinder.persistence.store import JsonSaveStore
from wayfinder.validation.dialogue import validate_all_dialogue_graphs
from wayfinder.validation.registry_alignment import validate_simulation_registries
from wayfinder.validation.required_state import build_required_state_guarding_report
from wayfinder.validation.types import ContentReport

if TYPE_CHECKING:
    from wayfinder.models.state import GameState

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="wf",
    help="Wayfinder: conditional dialogue graphs, player state and content validation.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

# Set by the callback, used by commands
_verbose: int = 0
_log_enabled: bool = False

ContentDirOption = Annotated[
    Path | None,
    typer.Option(
        "--content-dir",
        "-c",
        help="Content directory holding wayfinder.yaml and graphs/.",
        envvar=ENV_CONTENT_DIR,
    ),
]


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_to_file: Annotated[
        bool,
        typer.Option(
            "--log",
            help="Enable file logging to {content}/logs/engine.jsonl.",
        ),
    ] = False,
) -> None:
    """Wayfinder: conditional dialogue graphs, player state and content validation."""
    global _verbose, _log_enabled
    _verbose = verbose
    _log_enabled = log_to_file

    configure_logging(verbosity=verbose)


def _load(content_dir: Path | None) -> tuple[Path, WayfinderConfig, ContentBundle]:
    """Resolve the content directory and load its config and content."""
    resolved = resolve_content_dir(content_dir)
    if _log_enabled:
        configure_logging(verbosity=_verbose, log_to_file=True, log_dir=resolved / DEFAULT_LOGS_DIR)
        atexit.register(close_file_logging)
    try:
        config = load_config(resolved)
        bundle = load_content(resolved, config)
    except WayfinderError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    return resolved, config, bundle


def _store(content_dir: Path, config: WayfinderConfig) -> JsonSaveStore:
    return JsonSaveStore(content_dir / config.saves_dir)


def _load_save(store: JsonSaveStore, player_id: str) -> GameState:
    try:
        state = store.load(player_id)
    except WayfinderError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    if state is None:
        console.print(f"[red]Error:[/red] No save for player '{player_id}'")
        raise typer.Exit(1)
    return state


@app.command()
def version() -> None:
    """Show version information."""
    from wayfinder import __version__

    console.print(f"Wayfinder v{__version__}")


@app.command()
def validate(
    content_dir: ContentDirOption = None,
    guarding: Annotated[
        bool,
        typer.Option("--guarding", help="Also report entry gates not guarded by incoming edges."),
    ] = False,
) -> None:
    """Validate every dialogue graph and the simulation registries."""
    _, config, bundle = _load(content_dir)

    report = ContentReport(
        graphs=validate_all_dialogue_graphs(
            bundle.graphs,
            affinities=bundle.affinities,
            allow_listed=config.allow_listed_nodes,
        )
    )
    if bundle.simulation_content is not None and bundle.simulation_engine is not None:
        report.registry = validate_simulation_registries(
            bundle.simulation_content,
            bundle.simulation_engine,
            bundle.graphs,
        )

    table = Table(title="Content Issues")
    table.add_column("Severity", style="bold")
    table.add_column("Character", style="cyan")
    table.add_column("Issue")
    table.add_column("Where")
    table.add_column("Details", style="dim")

    severity_display = {"error": "[red]error[/red]", "warning": "[yellow]warning[/yellow]"}
    for result in report.graphs.values():
        for issue in result.gating_issues:
            table.add_row(
                severity_display[issue.severity],
                issue.character_id,
                issue.issue_type.value,
                issue.node_id,
                issue.details,
            )
        for unlock_issue in result.pattern_unlock_issues:
            table.add_row(
                severity_display[unlock_issue.severity],
                unlock_issue.character_id,
                unlock_issue.issue_type.value,
                unlock_issue.node_id,
                unlock_issue.details,
            )
    if report.registry is not None:
        for registry_issue in report.registry.issues:
            table.add_row(
                severity_display[registry_issue.severity],
                registry_issue.character_id,
                registry_issue.issue_type.value,
                registry_issue.simulation_id,
                registry_issue.details,
            )

    if table.row_count:
        console.print(table)
    for result in report.graphs.values():
        console.print(f"  {result.summary}")

    if guarding:
        guarding_report = build_required_state_guarding_report(bundle.graphs)
        console.print(
            f"Entry gates: {guarding_report.nodes_with_required_state} gated nodes, "
            f"{len(guarding_report.unguarded)} reachable through unguarded edges"
        )
        for node in guarding_report.unguarded:
            console.print(
                f"  [yellow]![/yellow] {node.graph_key}/{node.node_id} "
                f"({node.unguarded_incoming_count} unguarded incoming)"
            )

    console.print(report.summary)
    strict = config.effective_strict
    log.info("validation_finished", failures=report.has_failures, warnings=report.has_warnings, strict=strict)
    if report.has_failures or (strict and report.has_warnings):
        console.print("[red]✗[/red] Validation failed")
        raise typer.Exit(1)
    console.print("[green]✓[/green] Validation passed")


@app.command("new-save")
def new_save(
    player_id: Annotated[str, typer.Argument(help="Player id for the save file.")],
    character_id: Annotated[str, typer.Argument(help="Character whose graph to start in.")],
    content_dir: ContentDirOption = None,
) -> None:
    """Create a fresh save positioned at a character's start node."""
    resolved, config, bundle = _load(content_dir)
    graph = bundle.graph_for_character(character_id)
    if graph is None:
        console.print(f"[red]Error:[/red] No graph for character '{character_id}'")
        raise typer.Exit(1)

    store = _store(resolved, config)
    state = create_new_game_state(player_id, character_id)
    try:
        state = start_conversation(graph, state, store)
    except WayfinderError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    console.print(f"Created save for [bold]{player_id}[/bold] at {state.current_node_id}")


@app.command()
def choices(
    player_id: Annotated[str, typer.Argument(help="Player whose save to evaluate.")],
    content_dir: ContentDirOption = None,
) -> None:
    """Show the current node's choices with visibility and lock reasons."""
    resolved, config, bundle = _load(content_dir)
    state = _load_save(_store(resolved, config), player_id)

    graph = bundle.graph_for_character(state.current_character_id)
    if graph is None:
        console.print(f"[red]Error:[/red] No graph for character '{state.current_character_id}'")
        raise typer.Exit(1)
    try:
        node = graph.require_node(state.current_node_id, context=f"save of {player_id}")
    except NodeNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    content = select_content(node)
    console.print(f"[bold]{node.speaker}[/bold] [dim]({content.emotion})[/dim]: {content.text}")

    table = Table(title=f"{node.speaker}: {node.node_id}")
    table.add_column("Choice", style="cyan")
    table.add_column("Text")
    table.add_column("Status", style="bold")
    table.add_column("Reason", style="dim")

    for evaluated in evaluate_choices(node, state, graph.character_id):
        if not evaluated.visible:
            status = "[dim]hidden[/dim]"
        elif evaluated.enabled:
            status = "[green]available[/green]"
        else:
            status = f"[yellow]locked[/yellow] ({evaluated.reason_code})"
        table.add_row(
            evaluated.choice.choice_id,
            choice_text_for(evaluated.choice, state.patterns),
            status,
            evaluated.reason,
        )
    console.print(table)


@app.command()
def choose(
    player_id: Annotated[str, typer.Argument(help="Player whose save to advance.")],
    choice_id: Annotated[str, typer.Argument(help="Choice to take on the current node.")],
    content_dir: ContentDirOption = None,
) -> None:
    """Take a choice, apply its consequences and commit the save."""
    resolved, config, bundle = _load(content_dir)
    store = _store(resolved, config)
    state = _load_save(store, player_id)

    graph = bundle.graph_for_character(state.current_character_id)
    if graph is None:
        console.print(f"[red]Error:[/red] No graph for character '{state.current_character_id}'")
        raise typer.Exit(1)

    try:
        resolution = resolve_choice(graph, state, choice_id, store, affinities=bundle.affinities)
    except WayfinderError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if not resolution.moved:
        reason = f" ({resolution.reason_code})" if resolution.reason_code else ""
        console.print(f"[yellow]Stayed on {state.current_node_id}[/yellow]{reason}")
        raise typer.Exit(1)

    console.print(f"Moved to [bold]{resolution.state.current_node_id}[/bold]")
    if resolution.trust_change:
        console.print(f"  Trust {resolution.trust_change:+d}")
    if resolution.resonance_description:
        console.print(f"  [italic]{resolution.resonance_description}[/italic]")
    if resolution.unlocked_dialogue_node:
        console.print(f"  [magenta]Tier reached:[/magenta] {resolution.unlocked_dialogue_node}")


@app.command()
def progress(
    player_id: Annotated[str, typer.Argument(help="Player whose orbs to show.")],
    content_dir: ContentDirOption = None,
) -> None:
    """Show orb totals, tier progress and unlocked abilities."""
    resolved = resolve_content_dir(content_dir)
    try:
        config = load_config(resolved)
    except WayfinderError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    state = _load_save(_store(resolved, config), player_id)

    total = total_orbs(state.patterns)
    tier_progress = get_orb_tier_progress(total)
    dominant = dominant_pattern(state.patterns)

    table = Table(title=f"Orbs: {player_id}")
    table.add_column("Pattern", style="cyan")
    table.add_column("Orbs", justify="right")
    for pattern, count in state.patterns.as_dict().items():
        marker = " ★" if pattern is dominant else ""
        table.add_row(f"{pattern.value}{marker}", str(count))
    console.print(table)

    next_tier = tier_progress.next_tier.value if tier_progress.next_tier else "-"
    console.print(
        f"Total {total} · tier [bold]{tier_progress.current_tier.value}[/bold] · "
        f"next {next_tier} in {tier_progress.orbs_to_next} ({tier_progress.progress}%)"
    )
    abilities = get_unlocked_abilities(state.patterns)
    if abilities:
        console.print("Abilities: " + ", ".join(ability.name for ability in abilities))
