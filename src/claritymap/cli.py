"""CLI commands for walking through and managing a Clarity Map journal."""

from __future__ import annotations

import atexit
import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

import typer
import yaml

from .diagram import RelationshipDiagram, SurfaceRegistry
from .insights import GeminiClient, InsightRequestor
from .insights.client import DEFAULT_BASE_URL, DEFAULT_MODEL, DEFAULT_TIMEOUT
from .journal import JournalDocument, ProgressLedger, Step, StepController, StepView
from .journal.controller import view_rows
from .journal.document import EXPORT_FORMATS, UnsupportedExportFormat
from .journal.sections import PATTERN_CARDS, FieldKind
from .storage import SlotStore
from .storage.debounce import DEFAULT_DELAY_SECONDS

APP_HELP = "Clarity Map: a nine-step self-reflection journal."
DEFAULT_CONFIG_NAME = "config.yaml"

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "paths": {
        "data": "data",
        "db_path": "data/claritymap.sqlite",
        "exports": "exports",
    },
    "autosave": {
        "enabled": True,
        "delay_seconds": DEFAULT_DELAY_SECONDS,
    },
    "diagram": {
        "width": 600,
        "height": 400,
        "min_width": 320,
        "min_height": 240,
    },
    "insights": {
        "model": DEFAULT_MODEL,
        "base_url": DEFAULT_BASE_URL,
        "timeout": DEFAULT_TIMEOUT,
    },
}

EXPORT_EXTENSIONS = {"json": "json", "text": "txt"}


class InsightKind(str, Enum):
    INFLUENCES = "influences"
    SUMMARY = "summary"


@dataclass(slots=True)
class Session:
    """Components wired together for a single command invocation."""

    config: Dict[str, Any]
    config_path: Path
    store: SlotStore
    controller: StepController

    @property
    def document(self) -> JournalDocument:
        return self.controller.document


def _copy_config_template() -> Dict[str, Any]:
    """Return a deep copy of the default configuration template."""
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def _write_config(config_path: Path, config_data: Dict[str, Any]) -> None:
    """Persist configuration data to disk with stable formatting."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config_data, handle, sort_keys=False)


app = typer.Typer(help=APP_HELP)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr."),
) -> None:
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def load_config(config_path: Path) -> Dict[str, Any]:
    """Load YAML configuration from disk and return it as a dictionary."""
    if not config_path.exists():
        raise typer.BadParameter(f"Config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        typer.echo(f"Failed to parse config: {error}")
        raise typer.Exit(code=1) from error

    if not isinstance(data, dict):
        typer.echo("Configuration must be a mapping at the top level.")
        raise typer.Exit(code=1)

    return data


def _config_or_default(config_path: Path) -> Dict[str, Any]:
    if config_path.exists():
        return load_config(config_path)
    LOGGER.debug("No config at %s; using defaults", config_path)
    return _copy_config_template()


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    defaults = DEFAULT_CONFIG_TEMPLATE.get(name, {})
    value = config.get(name)
    merged = dict(defaults)
    if isinstance(value, dict):
        merged.update(value)
    return merged


def _resolve_path(value: Any, base: Path) -> Path:
    candidate = Path(str(value))
    if not candidate.is_absolute():
        candidate = (base / candidate).resolve()
    return candidate


def _store_config(config: Dict[str, Any], config_path: Path) -> Dict[str, Any]:
    """Anchor relative storage paths at the directory holding the config file."""
    base = config_path.parent.resolve()
    paths_cfg = _section(config, "paths")
    db_path = paths_cfg.get("db_path")
    if db_path:
        return {"paths": {"db_path": str(_resolve_path(db_path, base))}}
    return {"paths": {"data": str(_resolve_path(paths_cfg.get("data") or "data", base))}}


def _float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _build_session(config: Dict[str, Any], config_path: Path) -> Session:
    store = SlotStore.from_config(_store_config(config, config_path))

    autosave_cfg = _section(config, "autosave")
    document = JournalDocument(
        store,
        autosave_delay=_float(autosave_cfg.get("delay_seconds"), DEFAULT_DELAY_SECONDS),
    )
    document.set_autosave(bool(autosave_cfg.get("enabled", True)))

    diagram_cfg = _section(config, "diagram")
    surfaces = SurfaceRegistry(
        min_width=_float(diagram_cfg.get("min_width"), 0.0),
        min_height=_float(diagram_cfg.get("min_height"), 0.0),
    )

    insights_cfg = _section(config, "insights")
    client = GeminiClient(
        model=str(insights_cfg.get("model") or DEFAULT_MODEL),
        base_url=str(insights_cfg.get("base_url") or DEFAULT_BASE_URL),
        timeout=_float(insights_cfg.get("timeout"), DEFAULT_TIMEOUT),
    )

    controller = StepController(
        document,
        ProgressLedger(store),
        RelationshipDiagram(surfaces),
        InsightRequestor(store, client=client),
        surfaces=surfaces,
        surface_size=(
            _float(diagram_cfg.get("width"), 600.0),
            _float(diagram_cfg.get("height"), 400.0),
        ),
    )
    return Session(config=config, config_path=config_path, store=store, controller=controller)


@contextmanager
def _session(config: str) -> Iterator[Session]:
    """Open the journal, resume the last step and flush everything on the way out."""
    config_path = Path(config)
    session = _build_session(_config_or_default(config_path), config_path)
    closed = False

    def teardown() -> None:
        nonlocal closed
        if closed:
            return
        closed = True
        try:
            session.controller.close()
        finally:
            session.store.close()

    atexit.register(teardown)
    try:
        session.controller.start()
        yield session
    finally:
        teardown()
        atexit.unregister(teardown)


def _toast(message: str, kind: str = "info") -> None:
    colours = {"success": typer.colors.GREEN, "error": typer.colors.RED, "info": typer.colors.CYAN}
    typer.secho(message, fg=colours.get(kind, typer.colors.CYAN), err=kind == "error")


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "[x]" if value else "[ ]"
    if isinstance(value, list):
        return ", ".join(str(item) for item in value) or "-"
    text = str(value or "").strip()
    return text or "-"


def _render_navigation(controller: StepController) -> None:
    parts = []
    for entry in controller.navigation():
        marker = ">" if entry.active else ("x" if entry.locked else " ")
        parts.append(f"{marker}{entry.label} {entry.progress}%")
    typer.echo(" | ".join(parts))


def _render_view(controller: StepController, view: Optional[StepView]) -> None:
    if view is None:
        typer.echo("No step is shown.")
        return
    position = controller.steps.index(view.step) + 1
    typer.secho(f"[{position}/{len(controller.steps)}] {view.template.title}", bold=True)
    if view.template.intro:
        typer.echo(view.template.intro)
    for spec, value in view_rows(view):
        suffix = " (read-only)" if spec.readonly or not spec.captured else ""
        typer.echo(f"- {spec.id}: {spec.label}{suffix}")
        if spec.kind is FieldKind.CHECKBOX_GROUP:
            chosen = set(value or [])
            for option, label in spec.options:
                typer.echo(f"    [{'x' if option in chosen else ' '}] {option}: {label}")
        elif spec.kind is FieldKind.HIDDEN and spec.options:
            labels = dict(spec.options)
            typer.echo(f"    {labels.get(value, _format_value(value))}")
        else:
            typer.echo(f"    {_format_value(value)}")
    if view.pledge:
        typer.echo("")
        typer.echo(view.pledge)
    typer.echo("")
    _render_navigation(controller)


def _parse_step(value: str) -> Step:
    step = Step.parse(value)
    if step is None:
        choices = ", ".join(item.value for item in Step)
        raise typer.BadParameter(f"Unknown step '{value}'. Choose one of: {choices}")
    return step


CONFIG_OPTION_HELP = "Path to the journal configuration file."


@app.command()
def init(
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Write a default configuration and create the journal store."""
    config_path = Path(config)
    config_exists = config_path.exists()
    config_data = load_config(config_path) if config_exists else _copy_config_template()
    if not config_exists:
        _write_config(config_path, config_data)
        typer.echo(f"Created configuration at {config_path}.")
    else:
        typer.echo(f"Using existing configuration at {config_path}.")

    with _session(config) as session:
        typer.echo(f"Journal store: {session.store.db_path}")
        typer.echo(f"Current step: {session.document.get_current_section()}")


@app.command()
def status(
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Summarise where the journal stands."""
    with _session(config) as session:
        summary = session.document.get_data_summary()
        controller = session.controller
        typer.echo(f"Current step: {summary['currentSection']}")
        typer.echo(f"Created: {summary['created']}")
        typer.echo(f"Last modified: {summary['lastModified']}")
        typer.echo(f"Journal completion: {summary['completion']}%")
        typer.echo(f"Key answers: {controller.ledger.overall_completion}%")
        typer.echo(f"Autosave: {'on' if session.document.autosave_enabled else 'off'}")
        typer.echo(f"AI insights: {'available' if controller.insights.is_available() else 'no API key'}")


@app.command()
def show(
    step: Optional[str] = typer.Argument(None, help="Step to show; defaults to the current one."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Show a step with its current answers."""
    target = _parse_step(step) if step else None
    with _session(config) as session:
        controller = session.controller
        if target is not None:
            controller.show_step(target)
        _render_view(controller, controller.current_view)


@app.command("set")
def set_field(
    field_id: str = typer.Argument(..., metavar="FIELD", help="Field identifier on the current step."),
    value: str = typer.Argument(..., help="New value."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Answer a field on the current step."""
    with _session(config) as session:
        controller = session.controller
        if not controller.edit_field(field_id, value):
            step = controller.current_step.value if controller.current_step else "-"
            _toast(f"Field '{field_id}' cannot be edited on step '{step}'.", "error")
            raise typer.Exit(code=1)
        _toast(f"Saved {field_id}.", "success")


@app.command()
def check(
    field_id: str = typer.Argument(..., metavar="FIELD", help="Checkbox group on the current step."),
    option: str = typer.Argument(..., help="Option identifier to toggle."),
    off: bool = typer.Option(False, "--off", help="Uncheck instead of check."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Check or uncheck one option of a multi-select field."""
    with _session(config) as session:
        controller = session.controller
        if not controller.toggle_option(field_id, option, checked=not off):
            _toast(f"Cannot toggle '{option}' on '{field_id}'.", "error")
            raise typer.Exit(code=1)
        view = controller.current_view
        selected = view.values.get(field_id) if view is not None else []
        _toast(f"{field_id}: {_format_value(selected)}", "success")


@app.command()
def pattern(
    pattern_id: str = typer.Argument(..., metavar="ID", help="Pattern card identifier."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Pick the common life-system pattern that fits best."""
    with _session(config) as session:
        if not session.controller.select_pattern(pattern_id):
            choices = ", ".join(value for value, _ in PATTERN_CARDS)
            _toast(f"Unknown pattern '{pattern_id}'. Choose one of: {choices}", "error")
            raise typer.Exit(code=1)
        _toast(f"Selected pattern: {dict(PATTERN_CARDS)[pattern_id]}", "success")


@app.command("next")
def next_step(
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Move to the next step."""
    with _session(config) as session:
        controller = session.controller
        if controller.next() is None:
            _toast("You are already on the last step.")
        _render_view(controller, controller.current_view)


@app.command("prev")
def previous_step(
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Move back one step."""
    with _session(config) as session:
        controller = session.controller
        if controller.previous() is None:
            _toast("You are already on the first step.")
        _render_view(controller, controller.current_view)


@app.command()
def goto(
    step: str = typer.Argument(..., help="Step identifier."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Jump to a visited step or the one right after the current step."""
    target = _parse_step(step)
    with _session(config) as session:
        controller = session.controller
        if not controller.go_to(target):
            _toast(f"Step '{target.value}' is locked. Visit the steps before it first.", "error")
            raise typer.Exit(code=1)
        _render_view(controller, controller.current_view)


@app.command()
def progress(
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Show per-step progress."""
    with _session(config) as session:
        ledger = session.controller.ledger
        typer.echo(ledger.render_progress_bar())
        summary = ledger.completion_summary()
        for entry in summary["sections"]:
            visited = "visited" if entry.step.value in ledger.visited else "not visited"
            typer.echo(
                f"  {entry.step.value:<12} {entry.completed}/{entry.total} required"
                f" ({entry.percentage}%), {visited}"
            )
        typer.echo(f"Overall: {summary['overall']}%")


@app.command("map")
def map_command(
    move: Tuple[str, float, float] = typer.Option(
        (None, None, None),
        "--move",
        help="Drag a node (NODE X Y) after the map is drawn.",
    ),
    resize: Tuple[float, float] = typer.Option(
        (None, None),
        "--resize",
        help="Resize the drawing surface (W H).",
    ),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Draw the relationship map from the mapping answers."""
    with _session(config) as session:
        diagram = session.controller.diagram
        interactive = session.controller.generate_map()
        if not interactive:
            _toast("Interactive map unavailable; showing a static summary.")
        if interactive and move[0] is not None:
            node, x, y = move
            if not diagram.move_element(node, x, y):
                _toast(f"Node '{node}' cannot be moved.", "error")
        if interactive and resize[0] is not None:
            diagram.resize(resize[0], resize[1])
        for line in diagram.describe():
            typer.echo(line)


@app.command()
def insight(
    kind: InsightKind = typer.Argument(..., help="influences or summary."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Ask for AI insight on your influences or a summary of the whole journey."""
    with _session(config) as session:
        controller = session.controller
        if kind is InsightKind.INFLUENCES:
            text = controller.uncover_hidden_patterns()
        else:
            text = controller.summarize_reflection()
        typer.echo(text)


@app.command("api-key")
def api_key(
    value: Optional[str] = typer.Argument(None, help="API key to store."),
    clear: bool = typer.Option(False, "--clear", help="Remove the stored key."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Store, clear or check the AI insight API key."""
    with _session(config) as session:
        insights = session.controller.insights
        if clear:
            insights.clear_credential()
            _toast("API key removed.", "success")
            return
        if value is None:
            state = "configured" if insights.is_available() else "not configured"
            typer.echo(f"API key {state}.")
            return
        if not insights.set_credential(value):
            _toast("API key must not be empty.", "error")
            raise typer.Exit(code=1)
        _toast("API key saved. AI insights are now available.", "success")


@app.command()
def export(
    format: str = typer.Option("text", "--format", "-f", help="json or text."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Destination file."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Export the journal to a file."""
    with _session(config) as session:
        session.controller.save_current_step()
        try:
            content = session.document.export_data(format)
        except UnsupportedExportFormat as error:
            _toast(f"{error}. Choose one of: {', '.join(EXPORT_FORMATS)}", "error")
            raise typer.Exit(code=1) from error

        if output is None:
            exports_dir = _resolve_path(
                _section(session.config, "paths").get("exports") or ".",
                session.config_path.parent.resolve(),
            )
            output = exports_dir / f"clarity-map-{date.today().isoformat()}.{EXPORT_EXTENSIONS[format]}"
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(content, encoding="utf-8")
        _toast(f"Journal exported to {output}", "success")


@app.command("import")
def import_journal(
    path: Path = typer.Argument(..., help="JSON export to load."),
    merge: bool = typer.Option(False, "--merge", help="Merge onto the default structure."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Replace the journal with a previously exported JSON file."""
    if not path.exists():
        raise typer.BadParameter(f"File not found: {path}")
    try:
        payload = path.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError) as error:
        _toast(f"Import failed: could not read {path}: {error}", "error")
        raise typer.Exit(code=1)
    with _session(config) as session:
        result = session.document.import_data(payload, merge=merge)
        if not result:
            _toast(f"Import failed: {result.reason}", "error")
            raise typer.Exit(code=1)
        session.controller.reload()
        _toast(result.reason or "Journal imported.", "success")


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Erase every answer and start over."""
    if not yes:
        typer.confirm(
            "Are you sure you want to reset your journal? This will delete all your entries.",
            abort=True,
        )
    with _session(config) as session:
        session.controller.reset_journal()
        _toast("Journal reset.", "success")


def _prompt_field(controller: StepController, view: StepView, field_id: str) -> None:
    spec = view.template.get(field_id)
    if spec is None:
        return
    current = view.values.get(spec.id, spec.empty_value())
    if spec.kind is FieldKind.CHECKBOX:
        controller.edit_field(spec.id, typer.confirm(spec.label, default=bool(current)))
        return
    if spec.kind is FieldKind.CHECKBOX_GROUP:
        typer.echo(spec.label)
        for option, label in spec.options:
            typer.echo(f"  {option}: {label}")
        answer = typer.prompt("Comma-separated options", default=", ".join(current), show_default=bool(current))
        chosen = [item.strip() for item in answer.split(",") if item.strip() in spec.option_values]
        controller.edit_field(spec.id, chosen)
        return
    if spec.kind is FieldKind.SELECT:
        choices = "/".join(spec.option_values)
        answer = typer.prompt(f"{spec.label} ({choices})", default=current or "", show_default=bool(current))
        if answer and answer not in spec.option_values:
            _toast(f"Ignoring unknown option '{answer}'.", "error")
            return
        controller.edit_field(spec.id, answer)
        return
    if spec.kind is FieldKind.HIDDEN:
        for option, label in spec.options:
            typer.echo(f"  {option}: {label}")
        answer = typer.prompt(spec.label, default=current or "", show_default=bool(current))
        if answer:
            controller.select_pattern(answer)
        return
    answer = typer.prompt(spec.label, default=current or "", show_default=bool(current))
    if answer != current:
        controller.edit_field(spec.id, answer)


@app.command()
def journal(
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Walk through the journal interactively, one step at a time."""
    with _session(config) as session:
        controller = session.controller
        while True:
            view = controller.current_view
            _render_view(controller, view)
            if view is not None:
                for spec in view.template.fields:
                    if not spec.captured or spec.readonly:
                        continue
                    _prompt_field(controller, view, spec.id)
                if view.step is Step.MAPPING and typer.confirm("Draw your map now?", default=True):
                    controller.generate_map()
                    for line in controller.diagram.describe():
                        typer.echo(line)
            controller.save_current_step()
            if controller.current_step is Step.COMMITMENT:
                _toast("You've reached the end of your Clarity Map.", "success")
                break
            if not typer.confirm("Continue to the next step?", default=True):
                break
            controller.next()


__all__ = ["DEFAULT_CONFIG_TEMPLATE", "app", "load_config"]
