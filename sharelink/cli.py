"""
Command Line Interface for ShareLink.
"""

from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import get_settings
from .db.base import get_session_local, init_database
from .db.repositories import SqlLinkRepository
from .errors import NotFoundError
from .lifecycle import LinkLifecycleManager
from .routes import blob_store_from_settings

app = typer.Typer(help="ShareLink - share uploaded files through links")
console = Console()


def _manager(db) -> LinkLifecycleManager:
    return LinkLifecycleManager(
        SqlLinkRepository(db), blob_store_from_settings(get_settings())
    )


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Start the ShareLink API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    rprint(Panel.fit(f"Starting ShareLink on http://{host}:{port}", style="bold blue"))
    uvicorn.run("sharelink.main:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db():
    """Create the database tables."""
    init_database()
    console.print("Database initialized")


@app.command()
def links(
    email: Optional[str] = typer.Option(None, help="Only links owned by this email"),
):
    """List links."""
    db = get_session_local()()
    try:
        rows = _manager(db).list(owner_email=email)
    finally:
        db.close()

    if not rows:
        console.print("No links found")
        return

    table = Table(title="Links", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="yellow")
    table.add_column("Title")
    table.add_column("Owner", style="blue")
    table.add_column("Visibility", style="magenta")
    table.add_column("Expires")
    table.add_column("Views", justify="right", style="green")

    for link in rows:
        data = link.to_dict()
        table.add_row(
            data["id"],
            data["title"] or "",
            data["ownerEmail"] or data["ownerId"],
            data["visibility"],
            data["expiration"] or "never",
            str(data["accessCount"]),
        )

    console.print(table)


@app.command()
def stats(link_id: str = typer.Argument(..., help="Link ID")):
    """Show how often a link was viewed."""
    db = get_session_local()()
    try:
        count = _manager(db).access_count(link_id)
    except NotFoundError:
        console.print(f"Link {link_id} not found")
        raise typer.Exit(code=1)
    finally:
        db.close()

    console.print(f"Link {link_id} was viewed {count} time(s)")


@app.command()
def version():
    """Show version information."""
    from . import __version__

    rprint(Panel.fit(f"ShareLink v{__version__}", style="bold green"))


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
