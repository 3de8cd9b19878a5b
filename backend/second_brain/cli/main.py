"""CLI entrypoint for Second Brain."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import List, Optional

import requests
import typer

app = typer.Typer(name="sb", help="Second Brain command-line interface")

DEFAULT_HOST = "http://127.0.0.1:8000"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("SB_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _resolve_user(override: Optional[str]) -> str:
    user_id = override or os.environ.get("SB_USER_ID")
    if not user_id:
        typer.echo("A user id is required (--user or SB_USER_ID)", err=True)
        raise typer.Exit(code=2)
    return user_id


def _request(
    method: str,
    path: str,
    user: Optional[str],
    host: Optional[str] = None,
    **kwargs,
) -> requests.Response:
    url = f"{_resolve_host(host)}{path}"
    headers = {"X-User-Id": _resolve_user(user)}
    resp = requests.request(method, url, headers=headers, timeout=120, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


@app.command()
def ingest(
    path: Path = typer.Argument(..., help="Text file to store", exists=True, dir_okay=False),
    title: Optional[str] = typer.Option(None, "--title", help="Document title (defaults to file name)"),
    tag: List[str] = typer.Option([], "--tag", help="Tag to attach; repeatable"),
    link: str = typer.Option("", "--link", help="Source link"),
    user: Optional[str] = typer.Option(None, "--user", help="Caller user id"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Store a text file and index it."""
    body = {
        "title": title or path.stem,
        "text": path.read_text(encoding="utf-8"),
        "tags": list(tag),
        "link": link,
    }
    resp = _request("POST", "/content", user, host=host, json=body)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def search(
    q: str = typer.Argument(..., help="Query text"),
    k: Optional[int] = typer.Option(None, "--k", help="Number of nearest chunks"),
    user: Optional[str] = typer.Option(None, "--user", help="Caller user id"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show matches and the assembled context."""
    params = {"top_k": k} if k else None
    resp = _request("POST", "/search", user, host=host, json={"q": q}, params=params)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def ask(
    query: str = typer.Argument(..., help="Question"),
    k: Optional[int] = typer.Option(None, "--k", help="Number of nearest chunks"),
    user: Optional[str] = typer.Option(None, "--user", help="Caller user id"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Answer a question from stored content."""
    resp = _request("POST", "/ask", user, host=host, json={"query": query, "top_k": k})
    payload = resp.json()
    typer.echo(payload["answer"])
    for source in payload["sources"]:
        typer.echo(f"  - {source['title'] or 'Untitled'} ({source['doc_id']}) score={source['score']:.3f}")


@app.command("list")
def list_content(
    limit: int = typer.Option(100, "--limit", help="Newest documents to show"),
    user: Optional[str] = typer.Option(None, "--user", help="Caller user id"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List stored documents."""
    resp = _request("GET", "/content", user, host=host, params={"limit": limit})
    for item in resp.json():
        typer.echo(f"{item['id']}  {item['title'] or 'Untitled'}  chunks={item['chunk_count']}")


@app.command()
def delete(
    doc_id: str = typer.Argument(..., help="Document identifier"),
    user: Optional[str] = typer.Option(None, "--user", help="Caller user id"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Delete a document and its vectors."""
    resp = _request("DELETE", f"/content/{doc_id}", user, host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    app()
