"""
Typer CLI for the pathwise learning engine.

Commands:
    pathwise db init                      - Create database tables
    pathwise review LEARNER ITEM QUALITY  - Submit a graded flashcard review
    pathwise answer LEARNER ITEM --correct - Review from a scored answer (quality from speed)
    pathwise queue LEARNER                - Show today's review queue
    pathwise targets LEARNER              - Recommended daily new/review split
    pathwise card LEARNER ITEM            - Review statistics for one card
    pathwise attempt LEARNER TOPIC SCORE  - Record a finished attempt
    pathwise recommend LEARNER            - Study recommendations and alerts
    pathwise interventions LEARNER        - Strengths, weaknesses and struggling topics
    pathwise predict LEARNER              - Exam score prediction
    pathwise questions import FILE        - Import question metadata (JSON)
    pathwise path generate LEARNER        - Generate a learning path
    pathwise path list LEARNER            - List a learner's paths
    pathwise path progress PATH_ID        - Show path progress
    pathwise path log PATH_ID ITEM Q      - Record a question answered on a path
    pathwise path complete|pause|resume|abandon PATH_ID
    pathwise path adjust PATH_ID ACCURACY SAMPLES

Usage:
    pathwise --help
    pathwise review alice card-42 4 --response-ms 3200
    pathwise predict alice --target 90 --full
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table

from config import get_settings
from pathwise.engine import LearningEngine
from pathwise.events import QuestionRecord
from pathwise.exceptions import NotFoundError, PathwiseError
from pathwise.log import configure_logging
from pathwise.models import LearningPath, Question

app = typer.Typer(
    help="pathwise: adaptive learning engine (SM-2 scheduling, analytics, learning paths)",
    no_args_is_help=True,
)
db_app = typer.Typer(help="Database operations")
questions_app = typer.Typer(help="Question bank operations")
path_app = typer.Typer(help="Learning path operations")
app.add_typer(db_app, name="db")
app.add_typer(questions_app, name="questions")
app.add_typer(path_app, name="path")

console = Console()


def _engine() -> LearningEngine:
    return LearningEngine.from_settings(get_settings())


@contextmanager
def _handle_errors() -> Generator[None, None, None]:
    """Turn engine errors into a red message and exit code 1."""
    try:
        yield
    except NotFoundError as e:
        console.print(f"[red]Not found:[/red] {e}")
        raise typer.Exit(code=1)
    except PathwiseError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)


# ========================================
# DATABASE COMMANDS
# ========================================


@db_app.command("init")
def db_init() -> None:
    """
    Initialize database tables from SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    settings = get_settings()
    logger.info(f"Initializing database: {settings.database_url}")
    _engine()
    console.print("[green]✓[/green] Database initialized!")


# ========================================
# FLASHCARD COMMANDS
# ========================================


@app.command()
def review(
    learner_id: Annotated[str, typer.Argument(help="Learner identifier")],
    item_id: Annotated[str, typer.Argument(help="Card identifier")],
    quality: Annotated[int, typer.Argument(help="Recall quality 0-5")],
    response_ms: Annotated[
        int, typer.Option("--response-ms", "-r", help="Response time in milliseconds")
    ] = 0,
    attempt_id: Annotated[
        str | None, typer.Option("--attempt-id", help="Idempotency token for this review")
    ] = None,
) -> None:
    """Submit a graded review and show the new schedule."""
    with _handle_errors():
        outcome = _engine().submit_review(
            {
                "learner_id": learner_id,
                "item_id": item_id,
                "quality": quality,
                "response_time_ms": response_ms,
                "attempt_id": attempt_id,
            }
        )

    state = outcome.state
    if not outcome.applied:
        console.print(f"[yellow]Attempt {attempt_id} was already applied[/yellow]")
    console.print(
        f"[bold]{item_id}[/bold] EF={state.ease_factor:.2f} "
        f"interval={state.interval}d repetition={state.repetition} "
        f"next review {state.next_review_date}"
    )


@app.command()
def answer(
    learner_id: Annotated[str, typer.Argument(help="Learner identifier")],
    item_id: Annotated[str, typer.Argument(help="Card identifier")],
    correct: Annotated[bool, typer.Option("--correct/--wrong", help="Whether the answer was right")],
    response_ms: Annotated[
        int, typer.Option("--response-ms", "-r", help="Response time in milliseconds")
    ] = 0,
    attempt_id: Annotated[
        str | None, typer.Option("--attempt-id", help="Idempotency token for this answer")
    ] = None,
) -> None:
    """Review a card from a scored answer; quality comes from correctness and speed."""
    with _handle_errors():
        outcome = _engine().submit_answer(learner_id, item_id, correct, response_ms, attempt_id)

    state = outcome.state
    if not outcome.applied:
        console.print(f"[yellow]Attempt {attempt_id} was already applied[/yellow]")
    quality = state.review_history[-1].quality if state.review_history else "-"
    console.print(
        f"[bold]{item_id}[/bold] quality={quality} "
        f"EF={state.ease_factor:.2f} interval={state.interval}d next review {state.next_review_date}"
    )


@app.command()
def queue(
    learner_id: Annotated[str, typer.Argument(help="Learner identifier")],
    on: Annotated[
        datetime | None,
        typer.Option("--date", "-d", formats=["%Y-%m-%d"], help="Queue date (default today)"),
    ] = None,
) -> None:
    """Show the review queue: overdue, due today and learning cards."""
    with _handle_errors():
        review_queue = _engine().review_queue(learner_id, on.date() if on else None)

    if review_queue.total_due == 0:
        console.print("[green]No cards due for review.[/green]")
        return

    table = Table(title=f"Review queue for {learner_id}")
    table.add_column("Bucket")
    table.add_column("Card")
    table.add_column("EF", justify="right")
    table.add_column("Rep", justify="right")
    table.add_column("Next review")

    for bucket, style, cards in (
        ("overdue", "red", review_queue.overdue),
        ("today", "yellow", review_queue.today),
        ("learning", "cyan", review_queue.learning),
    ):
        for card in cards:
            table.add_row(
                f"[{style}]{bucket}[/{style}]",
                card.item_id,
                f"{card.ease_factor:.2f}",
                str(card.repetition),
                str(card.next_review_date),
            )

    console.print(table)
    console.print(f"Total due: {review_queue.total_due}")


@app.command()
def targets(
    learner_id: Annotated[str, typer.Argument(help="Learner identifier")],
    review_pct: Annotated[
        float | None, typer.Option("--review-pct", help="Share of the deck due (0-1)")
    ] = None,
) -> None:
    """Recommend today's new/review card split."""
    with _handle_errors():
        daily = _engine().daily_targets(learner_id, review_pct)

    console.print(
        f"New: {daily.new_cards}  Review: {daily.review_cards}  "
        f"Total: {daily.total_daily}  (~{daily.recommended_minutes:g} min)"
    )


@app.command()
def card(
    learner_id: Annotated[str, typer.Argument(help="Learner identifier")],
    item_id: Annotated[str, typer.Argument(help="Card identifier")],
) -> None:
    """Show review statistics for one card."""
    with _handle_errors():
        stats = _engine().card_statistics(learner_id, item_id)

    table = Table(show_header=False)
    table.add_row("Reviews", str(stats.total_reviews))
    table.add_row("Successes", str(stats.success_count))
    table.add_row("Failures", str(stats.failure_count))
    table.add_row("Success rate", f"{stats.success_rate}%" if stats.success_rate is not None else "-")
    table.add_row("Avg response", f"{stats.avg_response_time_ms} ms")
    table.add_row("Ease factor", f"{stats.ease_factor:.2f}")
    table.add_row("Next review", f"{stats.next_review_date} ({stats.days_until_review} days)")
    console.print(table)


# ========================================
# ANALYTICS COMMANDS
# ========================================


@app.command()
def attempt(
    learner_id: Annotated[str, typer.Argument(help="Learner identifier")],
    topic: Annotated[str, typer.Argument(help="Topic of the attempt")],
    score: Annotated[float, typer.Argument(help="Score 0-100")],
    correct: Annotated[
        float | None, typer.Option("--correct", help="Correct percentage, if different from score")
    ] = None,
    bloom: Annotated[str | None, typer.Option("--bloom", help="Bloom level")] = None,
    difficulty: Annotated[int | None, typer.Option("--difficulty", help="Difficulty 1-10")] = None,
    seconds: Annotated[int, typer.Option("--seconds", "-s", help="Time spent")] = 0,
) -> None:
    """Record a finished question or test attempt."""
    with _handle_errors():
        record = _engine().record_attempt(
            {
                "learner_id": learner_id,
                "topic": topic,
                "score": score,
                "correct_percentage": correct,
                "bloom_level": bloom,
                "difficulty": difficulty,
                "time_spent_sec": seconds,
            }
        )
    console.print(f"[green]✓[/green] Recorded {record.topic}: {record.accuracy:g}%")


@app.command()
def recommend(learner_id: Annotated[str, typer.Argument(help="Learner identifier")]) -> None:
    """Show study recommendations."""
    with _handle_errors():
        engine = _engine()
        tips = engine.recommendations(learner_id)
        alerts = engine.performance_alerts(learner_id)

    for alert in alerts:
        console.print(f"[yellow]! {alert}[/yellow]")
    if not tips:
        console.print("[dim]No recommendations right now.[/dim]")
    for tip in tips:
        console.print(f"• {tip}")


@app.command()
def interventions(learner_id: Annotated[str, typer.Argument(help="Learner identifier")]) -> None:
    """Show strengths, weaknesses and struggling topics."""
    with _handle_errors():
        engine = _engine()
        sw = engine.strengths_weaknesses(learner_id)
        needs = engine.intervention_needs(learner_id)

    console.print(f"Strengths: {', '.join(sw.strengths) or '-'}")
    console.print(f"Weaknesses: {', '.join(sw.weaknesses) or '-'}")
    if not needs:
        console.print("[green]No struggling topics.[/green]")
        return

    table = Table(title="Interventions")
    table.add_column("Topic")
    table.add_column("Risk", justify="right")
    table.add_column("Type")
    table.add_column("Resources")
    for need in needs:
        table.add_row(
            need.topic,
            f"{need.struggle_probability:.0%}",
            need.intervention_type.value,
            "\n".join(need.suggested_resources),
        )
    console.print(table)


@app.command()
def predict(
    learner_id: Annotated[str, typer.Argument(help="Learner identifier")],
    target: Annotated[float | None, typer.Option("--target", "-t", help="Target score")] = None,
    full: Annotated[
        bool, typer.Option("--full", help="Include ceiling, projection, ROI and frequency")
    ] = False,
) -> None:
    """Predict exam performance."""
    with _handle_errors():
        engine = _engine()
        if full:
            snapshot = engine.prediction_snapshot(learner_id, target)
            exam = snapshot.exam
        else:
            snapshot = None
            exam = engine.predictions(learner_id, target)

    if not exam.sufficient_data:
        console.print("[yellow]Insufficient data: record at least two attempts.[/yellow]")
        return

    console.print(f"Predicted score: [bold]{exam.predicted_score}[/bold] (confidence {exam.confidence}%)")
    console.print(f"Time to target: {exam.time_to_target}")
    if exam.key_areas:
        console.print(f"Key areas: {', '.join(exam.key_areas)}")

    if snapshot is not None:
        table = Table(show_header=False)
        table.add_row("Ceiling", f"{snapshot.ceiling.ceiling} ({snapshot.ceiling.confidence}%)")
        ttt = snapshot.time_to_target
        table.add_row(
            "Days to target",
            f"{ttt.days_to_target} ({ttt.target_date})" if ttt.is_achievable else "not achievable",
        )
        projection = snapshot.projection
        table.add_row(
            f"{projection.timeframe_days}-day projection",
            f"{projection.predicted_score} ({projection.low}-{projection.high})",
        )
        table.add_row("Score per hour", f"{snapshot.roi.score_per_hour}")
        table.add_row("Exams per week", str(snapshot.frequency.recommended_exams_per_week))
        console.print(table)


# ========================================
# QUESTION BANK COMMANDS
# ========================================


@questions_app.command("import")
def questions_import(
    file: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="JSON list of questions")],
) -> None:
    """Import question metadata ({item_id, subject, difficulty} objects)."""
    try:
        records = TypeAdapter(list[QuestionRecord]).validate_json(file.read_text(encoding="utf-8"))
    except ValidationError as e:
        console.print(f"[red]Invalid question file:[/red] {e.error_count()} error(s)")
        raise typer.Exit(code=1)

    with _handle_errors():
        count = _engine().import_questions(
            [Question(item_id=r.item_id, subject=r.subject, difficulty=r.difficulty) for r in records]
        )
    console.print(f"[green]✓[/green] Imported {count} questions")


# ========================================
# LEARNING PATH COMMANDS
# ========================================


def _print_path(path: LearningPath) -> None:
    console.print(f"[bold]{path.name}[/bold] [dim]{path.path_id}[/dim]")
    console.print(
        f"Status: {path.status.value}  Difficulty: {path.difficulty}  "
        f"Questions: {path.questions_completed}/{path.total_questions}"
    )


@path_app.command("generate")
def path_generate(learner_id: Annotated[str, typer.Argument(help="Learner identifier")]) -> None:
    """Generate a personalised learning path."""
    with _handle_errors():
        path = _engine().generate_path(learner_id)

    _print_path(path)
    console.print(f"Subjects: {', '.join(path.subjects)}")
    console.print(
        f"Estimated duration: {path.estimated_duration_weeks} weeks  "
        f"Success probability: {path.success_probability}%"
    )

    table = Table(title="Milestones")
    table.add_column("Name")
    table.add_column("Target", justify="right")
    table.add_column("Days", justify="right")
    table.add_column("Quota", justify="right")
    for milestone in path.milestones:
        table.add_row(
            milestone.name,
            f"{milestone.target_accuracy:g}%",
            str(milestone.estimated_days),
            str(milestone.questions_quota),
        )
    console.print(table)

    for tip in path.recommendations:
        console.print(f"• {tip}")


@path_app.command("list")
def path_list(learner_id: Annotated[str, typer.Argument(help="Learner identifier")]) -> None:
    """List a learner's learning paths."""
    with _handle_errors():
        paths = _engine().list_paths(learner_id)

    if not paths:
        console.print("[dim]No learning paths.[/dim]")
        return

    table = Table()
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    for path in paths:
        table.add_row(
            path.path_id,
            path.name,
            path.status.value,
            f"{path.questions_completed}/{path.total_questions}",
        )
    console.print(table)


@path_app.command("progress")
def path_progress(path_id: Annotated[str, typer.Argument(help="Learning path id")]) -> None:
    """Show progress on a learning path."""
    with _handle_errors():
        progress = _engine().path_progress(path_id)

    console.print(f"Complete: [bold]{progress.percent_complete}%[/bold]")
    console.print(f"Milestone: {progress.current_milestone} -> {progress.next_milestone}")
    console.print(
        f"Questions: {progress.questions_completed} done, {progress.questions_remaining} remaining"
    )
    console.print(f"Estimated completion: {progress.estimated_completion}")


@path_app.command("log")
def path_log(
    path_id: Annotated[str, typer.Argument(help="Learning path id")],
    item_id: Annotated[str, typer.Argument(help="Question identifier")],
    quality: Annotated[int, typer.Argument(help="Answer quality 0-5")],
    seconds: Annotated[float, typer.Option("--seconds", "-s", help="Time spent")] = 0,
) -> None:
    """Record a question answered on a learning path."""
    with _handle_errors():
        outcome = _engine().log_path_completion(
            {"path_id": path_id, "item_id": item_id, "quality": quality, "time_spent": seconds}
        )

    if outcome.milestone_reached:
        console.print(f"[green]Milestone reached:[/green] {outcome.milestone_reached}")
    if outcome.path_completed:
        console.print("[green]Learning path completed![/green]")
    _print_path(outcome.path)


@path_app.command("complete")
def path_complete(path_id: Annotated[str, typer.Argument(help="Learning path id")]) -> None:
    """Mark a learning path as completed."""
    with _handle_errors():
        _print_path(_engine().complete_path(path_id))


@path_app.command("pause")
def path_pause(path_id: Annotated[str, typer.Argument(help="Learning path id")]) -> None:
    """Pause an active learning path."""
    with _handle_errors():
        _print_path(_engine().pause_path(path_id))


@path_app.command("resume")
def path_resume(path_id: Annotated[str, typer.Argument(help="Learning path id")]) -> None:
    """Resume a paused learning path."""
    with _handle_errors():
        _print_path(_engine().resume_path(path_id))


@path_app.command("abandon")
def path_abandon(path_id: Annotated[str, typer.Argument(help="Learning path id")]) -> None:
    """Abandon a learning path."""
    with _handle_errors():
        _print_path(_engine().abandon_path(path_id))


@path_app.command("adjust")
def path_adjust(
    path_id: Annotated[str, typer.Argument(help="Learning path id")],
    accuracy: Annotated[float, typer.Argument(help="Recent accuracy 0-100")],
    samples: Annotated[int, typer.Argument(help="Number of answers behind the accuracy")],
) -> None:
    """Step path difficulty toward the target accuracy band."""
    with _handle_errors():
        path = _engine().adjust_path_difficulty(path_id, accuracy, samples)
    console.print(f"Difficulty: {path.difficulty}")


def main() -> None:
    """Entry point for the CLI."""
    configure_logging(get_settings())
    app()


if __name__ == "__main__":
    main()
