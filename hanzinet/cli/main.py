"""
Typer CLI for HanziNet.

Commands:
    hanzinet import-dict <cedict>  - Import CC-CEDICT entries with frequency ranks
    hanzinet stats                 - Show learning statistics and recent sessions
    hanzinet unlock                - Unlock new items if pacing allows
    hanzinet learn                 - Initial study of items ready to learn
    hanzinet review                - Review due items
    hanzinet practice              - Self-study recent items (schedule untouched)
    hanzinet validate <set>        - Validate a flashcard set file
    hanzinet route <set>           - Route arrows and place labels
    hanzinet study-set <set>       - Study a flashcard network
    hanzinet template create|list|apply

Usage:
    hanzinet import-dict cedict_ts.u8 --chars SUBTLEX-CH-CHR.txt --words SUBTLEX-CH-WF.txt
    hanzinet unlock
    hanzinet learn --count 5
    hanzinet study-set deck.json --mode multiple-choice
"""

from __future__ import annotations

import os
import sys

# Fix Windows encoding issues for hanzi and tone marks
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")

from pathlib import Path
from typing import Callable, Optional

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from config import Settings, get_settings
from hanzinet import verification
from hanzinet.documents import (
    KeyedProgressStorage,
    ProgressStore,
    StorageCapabilities,
    load_flashcard_set,
    save_flashcard_set,
)
from hanzinet.documents.store import list_templates, load_template, save_template
from hanzinet.documents.templates import apply_template, create_template_from_flashcard, template_preview
from hanzinet.errors import HanziNetError, PersistenceError
from hanzinet.geometry import EdgeRouter, LabelPlacer, determine_edge
from hanzinet.scheduling import CharacterScheduler, SM2Scheduler, UnlockGate
from hanzinet.scheduling.unlock import BLOCKED_INCOMPLETE, BLOCKED_QUEUE_FULL
from hanzinet.store import StateStore
from hanzinet.store.cedict import merge_entries, parse_cedict, parse_frequency_list, read_lines
from hanzinet.study import (
    Complete,
    Feedback,
    NetworkStudySession,
    Presenting,
    SessionMode,
    SessionRunner,
    SessionState,
    StudyMode,
)
from hanzinet.verification import CheckerOptions, QuestionType

app = typer.Typer(
    help="HanziNet: flashcard networks and spaced repetition for Chinese characters",
    no_args_is_help=True,
)
template_app = typer.Typer(help="Flashcard templates", no_args_is_help=True)
app.add_typer(template_app, name="template")

console = Console()

QUIT_COMMAND = ":q"


# ========================================
# Setup
# ========================================


def configure_logging(settings: Settings) -> None:
    """Send warnings (or the configured level) to stderr, everything to the log file if set."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level, format="<level>{message}</level>")
    if settings.log_file:
        logger.add(
            settings.log_file,
            level="DEBUG",
            rotation="10 MB",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
        )


@app.callback()
def main_callback() -> None:
    """Learn Chinese characters with flashcard networks and spaced repetition."""
    settings = get_settings()
    configure_logging(settings)


def _get_store() -> StateStore:
    settings = get_settings()
    return StateStore(
        settings.get_database_path(),
        scheduler=CharacterScheduler(settings.get_character_track_config()),
        gate=UnlockGate(settings.get_unlock_config()),
    )


def _checker_options() -> CheckerOptions:
    return get_settings().get_checker_options()


def _get_progress_store() -> ProgressStore:
    return ProgressStore(
        StorageCapabilities(has_filesystem=True),
        KeyedProgressStorage(get_settings().get_progress_dir()),
    )


def _fail(error: Exception) -> None:
    rprint(f"[red]Error:[/red] {error}")
    raise typer.Exit(code=1)


# ========================================
# Dictionary and stats
# ========================================


@app.command("import-dict")
def import_dict(
    cedict: Path = typer.Argument(..., exists=True, dir_okay=False, help="CC-CEDICT file"),
    chars: Optional[Path] = typer.Option(None, "--chars", exists=True, help="Character frequency list"),
    words: Optional[Path] = typer.Option(None, "--words", exists=True, help="Word frequency list"),
    ranked_only: bool = typer.Option(False, "--ranked-only", help="Skip entries without a frequency rank"),
) -> None:
    """Import dictionary entries and frequency ranks."""
    store = _get_store()
    try:
        entries = merge_entries(parse_cedict(read_lines(cedict)))
        character_ranks = parse_frequency_list(read_lines(chars)) if chars else {}
        word_ranks = parse_frequency_list(read_lines(words)) if words else {}
        written = store.import_items(entries.values(), character_ranks, word_ranks, ranked_only=ranked_only)
    except (HanziNetError, OSError) as e:
        _fail(e)
    finally:
        store.close()
    rprint(f"[green]Imported {written} entries[/green] into {store.db_path}")


@app.command("stats")
def stats() -> None:
    """Show learning statistics."""
    store = _get_store()
    try:
        summary = store.get_stats()
        sessions = store.get_recent_sessions(limit=5)
    except HanziNetError as e:
        _fail(e)
    finally:
        store.close()

    table = Table(title="Learning Progress", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Items in dictionary", str(summary["total_items"]))
    table.add_row("Ready to learn", str(summary["ready_to_learn"]))
    table.add_row("Introduced", str(summary["introduced"]))
    table.add_row("Reached milestone", str(summary["reached_milestone"]))
    table.add_row("Due for review", str(summary["due_for_review"]))
    table.add_row("Retention", f"{summary['retention']:.0%}")
    console.print(table)

    if sessions:
        history = Table(title="Recent Sessions")
        history.add_column("Mode")
        history.add_column("Started")
        history.add_column("Correct", justify="right", style="green")
        history.add_column("Incorrect", justify="right", style="red")
        for session in sessions:
            history.add_row(
                session["mode"],
                session["started_at"][:16],
                str(session["cards_correct"] or 0),
                str(session["cards_incorrect"] or 0),
            )
        console.print(history)


@app.command("unlock")
def unlock() -> None:
    """Unlock new items if pacing allows."""
    store = _get_store()
    try:
        decision = store.check_and_unlock()
    except HanziNetError as e:
        _fail(e)
    finally:
        store.close()

    if decision.unlock_count:
        rprint(f"[green]Unlocked {decision.unlock_count} new items.[/green]")
    elif decision.blocked_reason == BLOCKED_INCOMPLETE:
        rprint("[yellow]Finish studying the items you already started first.[/yellow]")
    elif decision.blocked_reason == BLOCKED_QUEUE_FULL:
        rprint("[yellow]Learn the items that are ready before unlocking more.[/yellow]")
    elif decision.hours_until_next_unlock:
        rprint(f"[yellow]Next unlock in {decision.hours_until_next_unlock}h.[/yellow]")
    else:
        rprint("[yellow]Nothing left to unlock.[/yellow]")
    rprint(f"Ready to learn: {decision.ready_to_learn_count}")


# ========================================
# Study sessions
# ========================================


def _ask(state: Presenting) -> str:
    question = state.question
    kind = "meaning" if question.question_type == QuestionType.MEANING else "pinyin"
    return Prompt.ask(
        f"[bold]{question.prompt}[/bold] {kind}? [dim]({state.remaining} left, {QUIT_COMMAND} to stop)[/dim]",
        default="",
        show_default=False,
    )


def _show_feedback(state: Feedback) -> None:
    result = state.result
    if result.correct:
        rprint(f"[green]Correct![/green] {result.correct_answer}")
    elif state.retry_allowed:
        rprint("[yellow]Right syllables, wrong tones. Try again.[/yellow]")
    else:
        checker = verification.get_checker(state.question.question_type, _checker_options())
        answer = checker.display(result.correct_answer) if checker else result.correct_answer
        rprint(f"[red]Incorrect.[/red] Answer: {answer}")


def _save_with_retry(finish: Callable[[], SessionState]) -> SessionState:
    """Run a step that saves session results, asking to retry when saving fails."""
    while True:
        try:
            return finish()
        except PersistenceError as e:
            rprint(f"[red]Error:[/red] {e}")
            try:
                again = Confirm.ask("Retry saving progress?", default=True)
            except (KeyboardInterrupt, EOFError):
                again = False
            if not again:
                raise e


def _run_session(runner: SessionRunner, items=None) -> None:
    """Drive a session from the terminal until it completes or the learner quits."""
    state = runner.start(items)
    try:
        while not isinstance(state, Complete):
            if isinstance(state, Presenting):
                answer = _ask(state)
                if answer.strip() == QUIT_COMMAND:
                    state = _save_with_retry(runner.exit_early)
                    break
                state = runner.submit_answer(answer)
            if isinstance(state, Feedback):
                _show_feedback(state)
                state = _save_with_retry(runner.advance)
    except (KeyboardInterrupt, EOFError):
        state = _save_with_retry(runner.exit_early)

    stats = state.stats
    if stats.total_cards == 0:
        rprint("[yellow]Nothing to study right now.[/yellow]")
        return

    lines = [
        f"Cards: {stats.total_cards}",
        f"[green]Correct: {stats.cards_correct}[/green]",
        f"[red]Incorrect: {stats.cards_incorrect}[/red]",
        f"Accuracy: {stats.accuracy:.0%}",
    ]
    if runner.unlocked_items:
        unlocked = " ".join(item.character for item in runner.unlocked_items)
        lines.append(f"[cyan]Unlocked: {unlocked}[/cyan]")
    title = "Session ended early" if state.exited_early else "Session complete"
    console.print(Panel("\n".join(lines), title=f"[bold]{title}[/bold]", border_style="blue"))


@app.command("learn")
def learn(count: int = typer.Option(5, "--count", "-n", min=1, help="Items to introduce")) -> None:
    """Introduce new items and study them."""
    store = _get_store()
    try:
        items = store.get_ready_to_learn(limit=count)
        if not items:
            rprint("[yellow]No items ready to learn. Try [cyan]hanzinet unlock[/cyan].[/yellow]")
            return
        for item in items:
            store.introduce_item(item.id)
        _run_session(SessionRunner(store, SessionMode.INITIAL_STUDY, options=_checker_options()), items)
    except HanziNetError as e:
        _fail(e)
    finally:
        store.close()


@app.command("review")
def review(limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Maximum cards")) -> None:
    """Review items that are due."""
    store = _get_store()
    try:
        batch = limit or get_settings().review_batch_size
        _run_session(SessionRunner(store, SessionMode.REVIEW, batch_size=batch, options=_checker_options()))
    except HanziNetError as e:
        _fail(e)
    finally:
        store.close()


@app.command("practice")
def practice() -> None:
    """Practice recently studied items without affecting the schedule."""
    store = _get_store()
    try:
        batch = get_settings().self_study_batch_size
        _run_session(SessionRunner(store, SessionMode.SELF_STUDY, batch_size=batch, options=_checker_options()))
    except HanziNetError as e:
        _fail(e)
    finally:
        store.close()


# ========================================
# Flashcard networks
# ========================================


@app.command("validate")
def validate(path: Path = typer.Argument(..., help="Flashcard set file")) -> None:
    """Validate a flashcard set file."""
    try:
        flashcard_set = load_flashcard_set(path)
    except HanziNetError as e:
        _fail(e)

    table = Table(title=f"{flashcard_set.name}")
    table.add_column("Flashcard")
    table.add_column("Sides", justify="right")
    table.add_column("Arrows", justify="right")
    for card in flashcard_set.flashcards:
        table.add_row(card.name, str(len(card.sides)), str(len(card.arrows)))
    console.print(table)
    rprint("[green]Valid[/green]")


@app.command("route")
def route(
    path: Path = typer.Argument(..., help="Flashcard set file"),
    flashcard_id: Optional[str] = typer.Option(None, "--flashcard", help="Only this flashcard"),
) -> None:
    """Route every arrow and place its label."""
    try:
        flashcard_set = load_flashcard_set(path)
    except HanziNetError as e:
        _fail(e)

    cards = flashcard_set.flashcards
    if flashcard_id:
        cards = [c for c in cards if c.id == flashcard_id]
        if not cards:
            _fail(HanziNetError(f"No flashcard {flashcard_id} in {path}"))

    for card in cards:
        router = EdgeRouter(card.sides, card.arrows)
        placer = LabelPlacer(router)
        table = Table(title=card.name)
        table.add_column("Arrow")
        table.add_column("Label")
        table.add_column("Edges")
        table.add_column("Path")
        table.add_column("Label at", justify="right")
        for arrow in card.arrows:
            ends = router.endpoints(arrow)
            path_points = router.route(arrow)
            placement = placer.place(arrow, path_points)
            edges = ""
            if ends:
                source, destination = ends
                edges = f"{determine_edge(source, destination).value} -> {determine_edge(destination, source).value}"
            table.add_row(
                arrow.id,
                arrow.label,
                edges,
                " ".join(f"({p.x:g},{p.y:g})" for p in path_points),
                f"({placement.position.x:.0f},{placement.position.y:.0f})",
            )
        console.print(table)


@app.command("study-set")
def study_set(
    path: Path = typer.Argument(..., help="Flashcard set file"),
    mode: StudyMode = typer.Option(StudyMode.SELF_TEST, "--mode", "-m"),
    count: int = typer.Option(20, "--count", "-n", min=1),
) -> None:
    """Study the arrows of a flashcard network."""
    try:
        flashcard_set = load_flashcard_set(path)
        session = NetworkStudySession.create(
            flashcard_set,
            mode,
            count,
            progress_store=_get_progress_store(),
            set_path=path,
            scheduler=SM2Scheduler(get_settings().get_sm2_config()),
            options=_checker_options(),
        )
    except HanziNetError as e:
        _fail(e)

    if not session.questions:
        rprint("[yellow]No questions. Connect some sides with arrows first.[/yellow]")
        return

    try:
        question = session.current
        while question is not None:
            rprint(f"\n[bold]{question.source_value}[/bold] --{question.arrow_label}--> ?")
            if mode == StudyMode.FLASH:
                Prompt.ask("[dim]Press enter to reveal[/dim]", default="", show_default=False)
                rprint(f"Answer: [cyan]{question.correct_answer}[/cyan]")
                session.mark(Confirm.ask("Did you know it?"))
            elif mode == StudyMode.MULTIPLE_CHOICE and question.options:
                for i, option in enumerate(question.options, 1):
                    rprint(f"  {i}. {option}")
                choice = IntPrompt.ask(
                    "Choice", choices=[str(i) for i in range(1, len(question.options) + 1)]
                )
                correct = session.answer(question.options[choice - 1])
                rprint("[green]Correct![/green]" if correct else f"[red]Incorrect.[/red] {question.correct_answer}")
            else:
                correct = session.answer(Prompt.ask("Answer", default="", show_default=False))
                rprint("[green]Correct![/green]" if correct else f"[red]Incorrect.[/red] {question.correct_answer}")
            question = session.next()
    except (KeyboardInterrupt, EOFError):
        rprint("\n[yellow]Stopped.[/yellow]")

    result = session.end()
    rprint(f"\n{result.correct}/{result.total} correct")


# ========================================
# Templates
# ========================================


@template_app.command("create")
def template_create(
    path: Path = typer.Argument(..., help="Flashcard set file"),
    name: str = typer.Argument(..., help="Template name"),
    flashcard_id: Optional[str] = typer.Option(None, "--flashcard", help="Source flashcard (default: first)"),
    description: Optional[str] = typer.Option(None, "--description"),
) -> None:
    """Save a flashcard's structure as a template."""
    try:
        flashcard_set = load_flashcard_set(path)
        card = flashcard_set.flashcard(flashcard_id) if flashcard_id else next(iter(flashcard_set.flashcards), None)
        if card is None:
            raise HanziNetError(f"No flashcard to use in {path}")
        template = create_template_from_flashcard(card, name, description)
        saved = save_template(template, get_settings().get_templates_dir())
    except HanziNetError as e:
        _fail(e)
    rprint(f"[green]Saved template[/green] {template.id} to {saved}")


@template_app.command("list")
def template_list() -> None:
    """List saved templates."""
    templates = list_templates(get_settings().get_templates_dir())
    if not templates:
        rprint("[yellow]No templates saved.[/yellow]")
        return
    table = Table(title="Templates")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Sides", justify="right")
    table.add_column("Arrows", justify="right")
    for template in templates:
        preview = template_preview(template)
        table.add_row(template.id, preview["name"], str(preview["side_count"]), str(preview["arrow_count"]))
    console.print(table)


@template_app.command("apply")
def template_apply(
    path: Path = typer.Argument(..., help="Flashcard set file to add the flashcard to"),
    template_id: str = typer.Argument(..., help="Template id"),
    name: str = typer.Argument(..., help="Name of the new flashcard"),
) -> None:
    """Add a new flashcard built from a template."""
    try:
        template = load_template(get_settings().get_templates_dir() / f"{template_id}.json")
        flashcard_set = load_flashcard_set(path)
        card = apply_template(template, name)
        flashcard_set.flashcards = [*flashcard_set.flashcards, card]
        save_flashcard_set(flashcard_set, path)
    except HanziNetError as e:
        _fail(e)
    rprint(f"[green]Added flashcard[/green] {card.name} ({len(card.sides)} sides) to {path}")


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    run()
