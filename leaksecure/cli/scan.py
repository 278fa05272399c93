"""
Leak Secure CLI - Scan Commands

Scan a GitHub repository, a local file or stdin for hard-coded secrets,
and run the full security analysis on a repository.
"""
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from leaksecure.core.service import ScanService, ToolResponse

SEVERITY_EMOJI = {
    "critical": "🔴",
    "high": "🟠",
    "medium": "🟡",
    "low": "🟢",
}


def emit(ctx: click.Context, response: ToolResponse, output_format: str = "json") -> None:
    """Print a tool response and exit non-zero on error."""
    if response.is_error:
        click.echo(response.to_json(), err=True)
        ctx.exit(1)

    if output_format == "table" and isinstance(response.data, dict):
        format_detection_table(_detections_of(response.data))
    else:
        click.echo(response.to_json())


def _detections_of(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    if "results" in data:
        return [
            dict(detection, file=result["file"])
            for result in data["results"]
            for detection in result["detections"]
        ]
    return [dict(d, file=data.get("file_path", "inline")) for d in data.get("detections", [])]


def format_detection_table(detections: List[Dict[str, Any]]) -> None:
    """Display detections as a table; values are already masked."""
    if not detections:
        click.echo("\n✅ No secrets found!")
        return

    click.echo("\n" + "=" * 100)
    click.echo(f"{'#':<4} {'SEV':<10} {'TYPE':<28} {'VALUE':<26} {'FILE:LINE':<30}")
    click.echo("-" * 100)

    for i, detection in enumerate(detections, 1):
        severity = detection["severity"]
        emoji = SEVERITY_EMOJI.get(severity, "⚪")
        location = f"{detection['file']}:{detection['line']}"
        click.echo(
            f"{i:<4} {emoji} {severity:<8} {detection['type']:<28} "
            f"{detection['value']:<26} {location:<30}"
        )

    click.echo("=" * 100)
    click.echo(f"Total: {len(detections)} secret(s)")


def _run(service: ScanService, tool: str, arguments: Dict[str, Any]) -> ToolResponse:
    return asyncio.run(service.handle(tool, arguments))


@click.group()
def scan():
    """🔍 Scan repositories and code for exposed secrets."""
    pass


@scan.command("repo")
@click.argument("repository")
@click.option("--branch", "-b", default="main", show_default=True, help="Branch to scan")
@click.option("--path", "-p", "sub_path", default=None, help="Only scan this file or directory")
@click.option(
    "--format", "output_format", type=click.Choice(["json", "table"]), default="json", show_default=True
)
@click.pass_context
def scan_repo(ctx, repository: str, branch: str, sub_path: Optional[str], output_format: str):
    """
    Scan a GitHub REPOSITORY given as owner/name.

    Example: leaksecure scan repo octocat/hello-world --branch main
    """
    owner, _, repo = repository.partition("/")
    if not owner or not repo:
        raise click.BadParameter("expected owner/name", param_hint="REPOSITORY")

    arguments = {"owner": owner, "repo": repo, "branch": branch}
    if sub_path:
        arguments["path"] = sub_path

    emit(ctx, _run(ctx.obj["service"], "scan_repository", arguments), output_format)


@scan.command("code")
@click.argument("source", required=False, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--file-path", default=None, help="Path hint reported for stdin content")
@click.option(
    "--format", "output_format", type=click.Choice(["json", "table"]), default="json", show_default=True
)
@click.pass_context
def scan_code(ctx, source: Optional[Path], file_path: Optional[str], output_format: str):
    """Scan a local file, or stdin when SOURCE is omitted."""
    if source is not None:
        code = source.read_text(encoding="utf-8", errors="replace")
        file_path = file_path or str(source)
    else:
        code = sys.stdin.read()

    arguments: Dict[str, Any] = {"code": code}
    if file_path:
        arguments["file_path"] = file_path

    emit(ctx, _run(ctx.obj["service"], "scan_code", arguments), output_format)


@click.command("analyze")
@click.argument("repository")
@click.option("--branch", "-b", default="main", show_default=True, help="Branch to analyze")
@click.pass_context
def analyze(ctx, repository: str, branch: str):
    """📊 Scan a repository and report risk score, compliance and remediation."""
    owner, _, repo = repository.partition("/")
    if not owner or not repo:
        raise click.BadParameter("expected owner/name", param_hint="REPOSITORY")

    response = _run(ctx.obj["service"], "analyze_security", {"owner": owner, "repo": repo, "branch": branch})
    emit(ctx, response)
