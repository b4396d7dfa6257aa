import asyncio
import json
import logging

import typer

from reactors.config import load_settings
from reactors.db_helper import Database
from reactors.errors import ScrapeError
from reactors.pipeline import ScrapeService
from reactors.validation import validate_project_name

app = typer.Typer(help="LinkedIn Post Reactors Scraper (PhantomBuster)")


@app.command()
def scrape(url: str = typer.Argument(..., help="LinkedIn post URL"),
           project_id: int = typer.Option(..., "--project-id", "-p", help="Project to store the post under")):
    """Scrape the profiles that reacted to a post and store them."""
    settings = load_settings()
    service = ScrapeService.from_settings(settings, Database.from_settings(settings))
    try:
        result = asyncio.run(service.scrape(url, project_id))
    except ScrapeError as e:
        typer.echo(json.dumps(e.to_payload(), indent=2, default=str), err=True)
        raise typer.Exit(code=1)
    for p in result.profiles:
        typer.echo(f"{p.profile_url}\t{p.name or ''}\t{p.headline or ''}")
    typer.echo(f"{len(result.profiles)} profile(s) saved to post #{result.post_id}", err=True)


@app.command()
def projects():
    """List projects."""
    db = Database.from_settings(load_settings())
    for p in db.list_projects():
        typer.echo(f"{p.id}\t{p.name}\t{p.created_at or ''}")


@app.command("create-project")
def create_project(name: str = typer.Argument(..., help="Project name")):
    valid, error = validate_project_name(name)
    if not valid:
        typer.echo(error, err=True)
        raise typer.Exit(code=2)
    project = Database.from_settings(load_settings()).create_project(name.strip())
    typer.echo(f"Created project #{project.id}: {project.name}")


@app.command()
def serve(host: str = "0.0.0.0", port: int = 10000, reload: bool = False):
    """Run the HTTP API."""
    import uvicorn
    uvicorn.run("server:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app()
