"""PingCron CLI - command-line interface for the scheduler and its API."""

import json
from pathlib import Path

import httpx
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from pingcron.services.api_client import ApiClientService

# Load .env file from project root (parent of pingcron/ directory)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

app = typer.Typer(help="PingCron CLI")
task_app = typer.Typer(help="Task management commands")
app.add_typer(task_app, name="task")

console = Console()

STATUS_STYLES = {"success": "green", "failed": "red", "timeout": "yellow"}


def _fail(e: httpx.HTTPStatusError) -> None:
    detail = e.response.text
    try:
        detail = e.response.json().get("detail", detail)
    except ValueError:
        pass
    console.print(f"[red]✗[/red] {e.response.status_code}: {detail}")
    raise typer.Exit(1) from e


def _parse_headers(items: list[str] | None) -> dict[str, str]:
    headers = {}
    for item in items or []:
        key, sep, value = item.partition(":")
        if not sep:
            console.print(f"[red]✗[/red] Invalid header: {item}")
            raise typer.Exit(1)
        headers[key.strip()] = value.strip()
    return headers


@app.command("tick")
def tick(
    workers: int = typer.Option(
        None, "--workers", "-w", help="Worker pool size (defaults to settings)"
    ),
):
    """Run one scheduler tick in-process against the configured database."""
    from pingcron.core.database import create_tables
    from pingcron.core.logging import configure_logging
    from pingcron.services import SchedulerService

    configure_logging()
    create_tables()
    summary = SchedulerService.run_tick(max_workers=workers)

    table = Table(title="Tick summary")
    table.add_column("Outcome", style="cyan")
    table.add_column("Count", justify="right")
    for key, value in summary.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)


@app.command("stats")
def stats():
    """Show aggregate statistics."""
    try:
        data = ApiClientService.get_stats()
    except httpx.HTTPStatusError as e:
        _fail(e)

    console.print(f"  Tasks: {data['total_tasks']} ({data['active_tasks']} active)")
    console.print(f"  Executions: {data['total_executions']}")
    console.print(f"  Success rate: {data['success_rate']:.1f}%")
    console.print(f"  Avg response time: {data['avg_response_time']:.0f}ms")


@task_app.command("create")
def create_task(
    name: str = typer.Argument(..., help="Task name"),
    url: str = typer.Argument(..., help="Target URL"),
    every: int = typer.Option(5, "--every", "-e", help="Frequency in minutes"),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method"),
    timeout: int = typer.Option(30, "--timeout", "-t", help="Timeout in seconds"),
    header: list[str] = typer.Option(
        None, "--header", "-H", help="Header as 'Name: value' (repeatable)"
    ),
    body: str = typer.Option(None, "--body", "-d", help="Request body (POST/PUT)"),
):
    """Create a new task."""
    headers = _parse_headers(header)

    payload = {
        "name": name,
        "target_url": url,
        "http_method": method.upper(),
        "frequency_minutes": every,
        "timeout_seconds": timeout,
        "headers": headers or None,
        "body": body,
    }

    try:
        task = ApiClientService.create_task(payload)
    except httpx.HTTPStatusError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Task created: [bold]{task['id']}[/bold]")
    console.print(f"  {task['http_method']} {task['target_url']}")
    console.print(f"  Every {task['frequency_minutes']} min")


@task_app.command("update")
def update_task(
    task_id: str = typer.Argument(..., help="Task ID"),
    name: str = typer.Option(None, "--name", help="New name"),
    url: str = typer.Option(None, "--url", "-u", help="New target URL"),
    every: int = typer.Option(None, "--every", "-e", help="Frequency in minutes"),
    method: str = typer.Option(None, "--method", "-X", help="HTTP method"),
    timeout: int = typer.Option(None, "--timeout", "-t", help="Timeout in seconds"),
    header: list[str] = typer.Option(
        None, "--header", "-H", help="Header as 'Name: value' (repeatable)"
    ),
    body: str = typer.Option(None, "--body", "-d", help="Request body (POST/PUT)"),
):
    """Edit a task. Only the given options change."""
    payload = {
        "name": name,
        "target_url": url,
        "http_method": method.upper() if method else None,
        "frequency_minutes": every,
        "timeout_seconds": timeout,
        "headers": _parse_headers(header) if header else None,
        "body": body,
    }
    payload = {key: value for key, value in payload.items() if value is not None}
    if not payload:
        console.print("[yellow]Nothing to update[/yellow]")
        raise typer.Exit(1)

    try:
        task = ApiClientService.update_task(task_id, payload)
    except httpx.HTTPStatusError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Task updated: [bold]{task['id']}[/bold]")
    console.print(f"  {task['http_method']} {task['target_url']}")
    console.print(f"  Every {task['frequency_minutes']} min")


@task_app.command("list")
def list_tasks(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of tasks to show"),
):
    """List tasks."""
    data = ApiClientService.list_tasks(limit=limit)
    tasks = data["tasks"]

    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    table = Table(title=f"Tasks (showing {len(tasks)} of {data['total']})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Target", style="white")
    table.add_column("Every", justify="right")
    table.add_column("Enabled", style="magenta")
    table.add_column("OK/Fail", justify="right")
    table.add_column("Next run", style="dim")

    for task in tasks:
        target = f"{task['http_method']} {task['target_url']}"
        if len(target) > 50:
            target = target[:50] + "..."

        table.add_row(
            task["id"][:8],  # Show first 8 chars of UUID
            task["name"],
            target,
            f"{task['frequency_minutes']}m",
            "yes" if task["is_enabled"] else "no",
            f"{task['success_count']}/{task['failure_count']}",
            (task["next_execution_at"] or "now")[:19],
        )

    console.print(table)


@task_app.command("get")
def get_task(task_id: str = typer.Argument(..., help="Task ID")):
    """Get task details."""
    try:
        task = ApiClientService.get_task(task_id)
    except httpx.HTTPStatusError as e:
        _fail(e)

    console.print(f"[bold]Task {task['id']}[/bold] {task['name']}")
    console.print(f"  Target: {task['http_method']} {task['target_url']}")
    console.print(f"  Every: {task['frequency_minutes']} min")
    console.print(f"  Timeout: {task['timeout_seconds']}s")
    console.print(f"  Enabled: {task['is_enabled']}")
    console.print(f"  Last run: {task['last_executed_at'] or '-'}")
    console.print(f"  Next run: {task['next_execution_at'] or 'next tick'}")
    console.print(
        f"  Success/Failure: {task['success_count']}/{task['failure_count']}"
    )
    if task["avg_response_time"] is not None:
        console.print(f"  Avg response time: {task['avg_response_time']:.0f}ms")

    if task.get("headers"):
        console.print(f"\n[bold]Headers:[/bold]\n{json.dumps(task['headers'], indent=2)}")
    if task.get("body"):
        console.print(f"\n[bold]Body:[/bold]\n{task['body']}")


@task_app.command("logs")
def get_logs(
    task_id: str = typer.Argument(..., help="Task ID"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries to show"),
):
    """Show recent execution logs for a task."""
    try:
        data = ApiClientService.get_task_logs(task_id, limit=limit)
    except httpx.HTTPStatusError as e:
        _fail(e)

    logs = data["logs"]
    if not logs:
        console.print("[yellow]No logs found[/yellow]")
        return

    table = Table(title=f"Logs for task {task_id} ({data['total']} total)")
    table.add_column("Executed", style="dim")
    table.add_column("Status")
    table.add_column("HTTP", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Error", style="red")

    for log in logs:
        style = STATUS_STYLES.get(log["status"], "white")
        table.add_row(
            log["executed_at"][:19],
            f"[{style}]{log['status']}[/{style}]",
            str(log["http_status_code"] or "-"),
            f"{log['response_time_ms']}ms" if log["response_time_ms"] is not None else "-",
            log["error_message"] or "",
        )

    console.print(table)


@task_app.command("run")
def run_task(task_id: str = typer.Argument(..., help="Task ID")):
    """Execute a task now."""
    try:
        log = ApiClientService.execute_task(task_id)
    except httpx.HTTPStatusError as e:
        _fail(e)

    style = STATUS_STYLES.get(log["status"], "white")
    console.print(f"[{style}]{log['status']}[/{style}] HTTP {log['http_status_code']}")
    if log["response_time_ms"] is not None:
        console.print(f"  Time: {log['response_time_ms']}ms")
    if log["error_message"]:
        console.print(f"  Error: {log['error_message']}")


@task_app.command("enable")
def enable_task(task_id: str = typer.Argument(..., help="Task ID")):
    """Enable a task."""
    try:
        ApiClientService.set_task_enabled(task_id, True)
    except httpx.HTTPStatusError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Task {task_id} enabled")


@task_app.command("disable")
def disable_task(task_id: str = typer.Argument(..., help="Task ID")):
    """Disable a task."""
    try:
        ApiClientService.set_task_enabled(task_id, False)
    except httpx.HTTPStatusError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Task {task_id} disabled")


@task_app.command("delete")
def delete_task(task_id: str = typer.Argument(..., help="Task ID")):
    """Delete a task and its logs."""
    try:
        ApiClientService.delete_task(task_id)
    except httpx.HTTPStatusError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Task {task_id} deleted")


if __name__ == "__main__":
    app()
