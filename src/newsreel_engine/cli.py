"""Command-line interface using Typer."""

from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from newsreel_engine import __version__
from newsreel_engine.logging import setup_logging

# Setup logging
setup_logging()

app = typer.Typer(
    name="newsreel-engine",
    help="Newsreel Engine - news story to narrated video CLI",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Newsreel Engine v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Newsreel Engine - generate, render and policy check news videos."""
    pass


def _print_result(title: str, result: dict[str, Any]) -> None:
    table = Table(title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in result.items():
        table.add_row(key, str(value))
    console.print(table)
    if not result.get("success"):
        raise typer.Exit(code=1)


@app.command()
def assets(
    video_id: int = typer.Argument(..., help="Video ID"),
    sync: bool = typer.Option(False, "--sync", "-s", help="Run in this process"),
) -> None:
    """Generate slide images, narration and the asset policy verdict."""
    if sync:
        from newsreel_engine.jobs.asset_pipeline import run_asset_generation

        console.print(f"[bold blue]Generating assets for video {video_id}...[/bold blue]")
        _print_result("Asset Generation", run_asset_generation(video_id))
        return

    from newsreel_engine.jobs.asset_pipeline import generate_assets_task

    task = generate_assets_task.delay(video_id)
    console.print(f"[green]Task enqueued: {task.id}[/green]")


@app.command()
def render(
    video_id: int = typer.Argument(..., help="Video ID"),
    sync: bool = typer.Option(False, "--sync", "-s", help="Run in this process"),
) -> None:
    """Render the final video from generated assets."""
    if sync:
        from newsreel_engine.jobs.render_pipeline import run_video_render

        console.print(f"[bold blue]Rendering video {video_id}...[/bold blue]")
        _print_result("Render", run_video_render(video_id))
        return

    from newsreel_engine.jobs.render_pipeline import render_video_task

    task = render_video_task.delay(video_id)
    console.print(f"[green]Task enqueued: {task.id}[/green]")


@app.command("policy-check")
def policy_check(
    video_id: int = typer.Argument(..., help="Video ID"),
    sync: bool = typer.Option(False, "--sync", "-s", help="Run in this process"),
) -> None:
    """Run the script policy check."""
    if sync:
        from newsreel_engine.jobs.policy_tasks import run_script_policy_check

        _print_result("Script Policy", run_script_policy_check(video_id))
        return

    from newsreel_engine.jobs.policy_tasks import check_script_policy_task

    task = check_script_policy_task.delay(video_id)
    console.print(f"[green]Task enqueued: {task.id}[/green]")


@app.command()
def publish(
    video_id: int = typer.Argument(..., help="Video ID"),
    sync: bool = typer.Option(False, "--sync", "-s", help="Run in this process"),
) -> None:
    """Publish a rendered video that is not policy blocked."""
    if sync:
        from newsreel_engine.jobs.publish_pipeline import run_video_publish

        console.print(f"[bold blue]Publishing video {video_id}...[/bold blue]")
        _print_result("Publish", run_video_publish(video_id))
        return

    from newsreel_engine.jobs.publish_pipeline import publish_video_task

    task = publish_video_task.delay(video_id)
    console.print(f"[green]Task enqueued: {task.id}[/green]")


@app.command()
def status(video_id: int = typer.Argument(..., help="Video ID")) -> None:
    """Show the pipeline and policy status of a video."""
    from newsreel_engine.db.models import VideoModel
    from newsreel_engine.db.session import get_session_context

    with get_session_context() as session:
        video = session.get(VideoModel, video_id)
        if video is None:
            console.print(f"[bold red]Video not found: {video_id}[/bold red]")
            raise typer.Exit(code=1)

        table = Table(title=f"Video {video_id}")
        table.add_column("Stage", style="cyan")
        table.add_column("Status")
        table.add_column("Details")
        table.add_row("Script", video.script_status, "")
        table.add_row("Assets", video.asset_status, video.asset_error or "")
        table.add_row("Render", video.render_status, video.render_error or "")
        table.add_row("Upload", video.upload_status, video.upload_error or video.upload_url or "")
        table.add_row(
            "Policy",
            video.policy_overall_status,
            "; ".join(video.policy_block_reasons or []) or (video.policy_summary or ""),
        )
        if video.policy_error:
            table.add_row("Policy error", "", video.policy_error)
        table.add_row("Cost", f"${video.total_cost or 0:.4f}", "")
        console.print(table)


@app.command()
def health() -> None:
    """Check the health of all services."""
    import httpx

    from newsreel_engine.config import settings

    url = f"http://{settings.api_host}:{settings.api_port}/health/ready"

    try:
        response = httpx.get(url, timeout=10)
        data = response.json()

        table = Table(title="Service Health")
        table.add_column("Component", style="cyan")
        table.add_column("Status")

        table.add_row("Database", "✓" if data.get("database") else "✗")
        table.add_row("Redis", "✓" if data.get("redis") else "✗")
        table.add_row("Object store", "✓" if data.get("object_store") else "✗")
        for component, ok in data.get("credentials", {}).items():
            table.add_row(f"Credentials: {component}", "✓" if ok else "✗")

        console.print(table)

        if data.get("ready"):
            console.print("[bold green]All services healthy![/bold green]")
        else:
            console.print("[bold yellow]Some services unhealthy[/bold yellow]")
            raise typer.Exit(code=1)

    except httpx.RequestError as e:
        console.print(f"[bold red]Cannot connect to API: {e}[/bold red]")
        console.print("[dim]Is the API server running?[/dim]")
        raise typer.Exit(code=1)


@app.command()
def worker() -> None:
    """Start a Celery worker (for development)."""
    console.print("[bold blue]Starting Celery worker...[/bold blue]")

    import subprocess
    import sys

    from newsreel_engine.worker import WORKER_QUEUES

    subprocess.run(
        [
            sys.executable,
            "-m",
            "celery",
            "-A",
            "newsreel_engine.worker",
            "worker",
            "--loglevel=info",
            "-Q",
            ",".join(WORKER_QUEUES),
        ],
        check=True,
    )


if __name__ == "__main__":
    app()
