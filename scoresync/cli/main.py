"""
scoresync CLI main module.

Runs the API server and inspects the daily rate.
"""

import subprocess
import sys
from datetime import date, datetime

import typer

app = typer.Typer(help="scoresync shared score service CLI")

ASGI_FACTORY = "scoresync.core.app:create_app"


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to bind to (default: PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
    workers: int = typer.Option(1, "--workers", "-w", help="Number of worker processes"),
):
    """
    Run the API server with uvicorn.

    Examples:
        scoresync serve
        scoresync serve --port 8080 --reload
    """
    from ..core.config.settings import settings

    port = port or settings.port

    cmd = [
        sys.executable,
        "-m",
        "uvicorn",
        ASGI_FACTORY,
        "--factory",
        "--host",
        host,
        "--port",
        str(port),
    ]
    if reload:
        cmd.append("--reload")
    else:
        cmd.extend(["--workers", str(workers)])

    typer.echo("🚀 Starting scoresync server...")
    typer.echo(f"🌐 Server: http://{host}:{port}")
    typer.echo(f"📝 Docs: http://{host}:{port}/docs")
    typer.echo(f"🗄️ Store: {settings.remote_store} / cache: {settings.local_cache}")
    typer.echo("💡 Press CTRL+C to stop")
    typer.echo()

    try:
        subprocess.run(cmd, check=True)
    except subprocess.CalledProcessError as e:
        typer.echo(f"❌ Server failed to start (exit code: {e.returncode})", err=True)
        typer.echo("", err=True)
        typer.echo("Common issues:", err=True)
        typer.echo(f"• Port {port} already in use (try --port)", err=True)
        typer.echo("• REDIS_URL missing while REMOTE_STORE=redis", err=True)
        raise typer.Exit(1) from e
    except KeyboardInterrupt:
        typer.echo("👋 Server stopped")


@app.command()
def rate(
    day: str | None = typer.Option(None, "--date", "-d", help="Calendar date YYYY-MM-DD (default: today)"),
):
    """
    Print the derived rate and the up/down split for a date.

    Examples:
        scoresync rate
        scoresync rate --date 2026-01-01
    """
    from ..core.config.settings import settings
    from ..core.rate import RateDerivation, RateTracker

    rates = RateTracker(RateDerivation.from_settings(), tz=settings.time_zone)

    if day:
        try:
            target = date.fromisoformat(day)
        except ValueError:
            typer.echo(f"❌ Invalid date: {day} (expected YYYY-MM-DD)", err=True)
            raise typer.Exit(1) from None
    else:
        target = rates.today(datetime.now(rates.tz))

    snapshot = rates.derivation.snapshot(target)
    up, down = rates.derivation.split(snapshot.value)

    typer.echo(f"📅 {snapshot.computed_for.isoformat()}")
    typer.echo(f"📈 Rate: {snapshot.value}")
    typer.echo(f"⬆️ Increase: +{up}")
    typer.echo(f"⬇️ Decrease: -{down}")


if __name__ == "__main__":
    app()
