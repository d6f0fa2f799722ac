"""
Command-line interface for the Family Tree Editor.

Manage families and persons, browse trees, exchange JSON and spreadsheet
files, handle backups, follow the guided tour and sync with the backend.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.tree import Tree

from family_tree import __version__
from family_tree.config import EditorConfig
from family_tree.core import tree as forest
from family_tree.core.database import FamilyDatabase, FamilyTreeError
from family_tree.core.models import Family, Gender, Person, PersonUpdate
from family_tree.core.storage import FileStorage, StorageError
from family_tree.guide.sequencer import GuideSequencer, UnknownStepError
from family_tree.remote.client import FamilyApiClient, FamilyApiError
from family_tree.remote.sync import BackendSync
from family_tree.reports import spreadsheet

console = Console()

GENDER_CHOICE = click.Choice(["male", "female"], case_sensitive=False)


def async_command(f):
    """Decorator to run async commands."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))
    return wrapper


def fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def get_db(ctx: click.Context) -> FamilyDatabase:
    """Open the database once per invocation."""
    obj = ctx.find_root().obj
    if "db" not in obj:
        try:
            obj["db"] = FamilyDatabase.from_config(obj["config"])
        except StorageError as e:
            fail(str(e))
    return obj["db"]


def require_family(db: FamilyDatabase, family_id: int) -> Family:
    family = db.get_family(family_id)
    if family is None:
        fail(f"Family not found: {family_id}")
    return family


@click.group()
@click.version_option(version=__version__, prog_name="family-tree")
@click.option("--data-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Storage directory (default: $FAMILY_TREE_DATA_DIR or ~/.family_tree)")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, data_dir: Optional[Path], verbose: bool):
    """
    Family Tree Editor.

    Build family trees, edit persons and exchange data as JSON or spreadsheets.
    """
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = EditorConfig.from_env(data_dir=data_dir)


# =============================================================================
# Family Commands
# =============================================================================

@cli.group()
def family():
    """Create, rename, duplicate and delete families."""
    pass


@family.command("list")
@click.pass_context
def family_list(ctx):
    """List all families."""
    db = get_db(ctx)
    if not db.families:
        console.print("[yellow]No families yet. Create one with 'family-tree family create NAME'.[/yellow]")
        return

    table = Table(title="Families")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Members", justify="right")
    table.add_column("Generations", justify="right")
    table.add_column("Last modified")

    for fam in db.families:
        table.add_row(
            str(fam.id),
            fam.name,
            str(forest.count_persons(fam.members)),
            str(forest.max_depth(fam.members)),
            fam.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@family.command("create")
@click.argument("name")
@click.pass_context
def family_create(ctx, name: str):
    """Create an empty family."""
    try:
        fam = get_db(ctx).add_family(name)
    except ValueError as e:
        fail(str(e))
    console.print(f"[green]Created family '{fam.name}' (ID {fam.id})[/green]")


@family.command("rename")
@click.argument("family_id", type=int)
@click.argument("name")
@click.pass_context
def family_rename(ctx, family_id: int, name: str):
    """Rename a family."""
    try:
        renamed = get_db(ctx).rename_family(family_id, name)
    except ValueError as e:
        fail(str(e))
    if not renamed:
        fail(f"Family not found: {family_id}")
    console.print(f"[green]Family {family_id} renamed to '{name.strip()}'[/green]")


@family.command("delete")
@click.argument("family_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def family_delete(ctx, family_id: int, yes: bool):
    """Delete a family and all of its members."""
    db = get_db(ctx)
    fam = require_family(db, family_id)
    if not yes:
        click.confirm(f"Delete family '{fam.name}' and its {forest.count_persons(fam.members)} members?", abort=True)
    db.delete_family(family_id)
    console.print(f"[green]Deleted family '{fam.name}'[/green]")


@family.command("duplicate")
@click.argument("family_id", type=int)
@click.pass_context
def family_duplicate(ctx, family_id: int):
    """Copy a family with fresh IDs."""
    copy = get_db(ctx).duplicate_family(family_id)
    if copy is None:
        fail(f"Family not found: {family_id}")
    console.print(f"[green]Created '{copy.name}' (ID {copy.id})[/green]")


@family.command("sample")
@click.pass_context
def family_sample(ctx):
    """Add a small demo family."""
    fam = get_db(ctx).create_sample_family()
    console.print(f"[green]Created '{fam.name}' (ID {fam.id})[/green]")


@family.command("show")
@click.argument("family_id", type=int)
@click.pass_context
def family_show(ctx, family_id: int):
    """Show statistics for one family."""
    stats = get_db(ctx).family_statistics(family_id)
    if stats is None:
        fail(f"Family not found: {family_id}")

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Members", str(stats.total_members))
    table.add_row("Men", str(stats.men))
    table.add_row("Women", str(stats.women))
    table.add_row("Generations", str(stats.max_depth))
    table.add_row("With phone", str(stats.with_phone))
    table.add_row("With email", str(stats.with_email))
    table.add_row("With address", str(stats.with_address))
    table.add_row("Created", stats.created_at.strftime("%Y-%m-%d") if stats.created_at else "")
    table.add_row("Last modified", stats.updated_at.strftime("%Y-%m-%d") if stats.updated_at else "")
    console.print(Panel(table, title=stats.name))


# =============================================================================
# Person Commands
# =============================================================================

@cli.group()
def person():
    """Add, edit, move and delete persons."""
    pass


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"Expected YYYY-MM-DD, got {value!r}")


@person.command("add")
@click.argument("family_id", type=int)
@click.option("--given", "-g", required=True, help="Given name")
@click.option("--surname", "-s", required=True, help="Surname")
@click.option("--gender", type=GENDER_CHOICE, default="male", show_default=True)
@click.option("--parent", "-p", "parent_id", type=int, help="Parent person ID (omit for a root)")
@click.option("--phone", help="Phone number")
@click.option("--email", help="Email address")
@click.option("--address", help="Postal address")
@click.option("--birth-date", help="Birth date (YYYY-MM-DD)")
@click.option("--occupation", help="Occupation")
@click.option("--notes", help="Free-form notes")
@click.pass_context
def person_add(ctx, family_id: int, given: str, surname: str, gender: str, parent_id: Optional[int],
               phone: Optional[str], email: Optional[str], address: Optional[str],
               birth_date: Optional[str], occupation: Optional[str], notes: Optional[str]):
    """Add a person to a family."""
    data = {
        "given_name": given,
        "surname": surname,
        "gender": gender,
        "parent_id": parent_id,
        "phone": phone,
        "email": email,
        "address": address,
        "birth_date": _parse_date(birth_date),
        "occupation": occupation,
        "notes": notes,
    }
    try:
        created = get_db(ctx).add_person(data, family_id)
    except (FamilyTreeError, ValueError) as e:
        fail(str(e))
    console.print(f"[green]Added {created.full_name} (ID {created.id})[/green]")


@person.command("edit")
@click.argument("family_id", type=int)
@click.argument("person_id", type=int)
@click.option("--given", "-g", help="Given name")
@click.option("--surname", "-s", help="Surname")
@click.option("--gender", type=GENDER_CHOICE)
@click.option("--phone", help="Phone number")
@click.option("--email", help="Email address")
@click.option("--address", help="Postal address")
@click.option("--birth-date", help="Birth date (YYYY-MM-DD)")
@click.option("--death-date", help="Death date (YYYY-MM-DD)")
@click.option("--occupation", help="Occupation")
@click.option("--notes", help="Free-form notes")
@click.pass_context
def person_edit(ctx, family_id: int, person_id: int, **fields):
    """Change the details of a person. Only given options are applied."""
    renames = {"given": "given_name"}
    patch = {}
    for name, value in fields.items():
        if value is None:
            continue
        if name in ("birth_date", "death_date"):
            value = _parse_date(value)
        patch[renames.get(name, name)] = value
    if not patch:
        fail("Nothing to change")

    try:
        updated = get_db(ctx).update_person(person_id, PersonUpdate(**patch), family_id)
    except (FamilyTreeError, ValueError) as e:
        fail(str(e))
    if not updated:
        fail(f"Person {person_id} not found in family {family_id}")
    console.print(f"[green]Updated person {person_id}[/green]")


@person.command("move")
@click.argument("family_id", type=int)
@click.argument("person_id", type=int)
@click.option("--parent", "-p", "parent_id", type=int, help="New parent ID")
@click.option("--root", is_flag=True, help="Make the person a root")
@click.pass_context
def person_move(ctx, family_id: int, person_id: int, parent_id: Optional[int], root: bool):
    """Move a person and its descendants under another parent."""
    if (parent_id is None) == (not root):
        fail("Give exactly one of --parent or --root")
    try:
        moved = get_db(ctx).move_person(person_id, None if root else parent_id, family_id)
    except FamilyTreeError as e:
        fail(str(e))
    where = "a root" if root else f"a child of {parent_id}"
    console.print(f"[green]{moved.full_name} is now {where}[/green]")


@person.command("delete")
@click.argument("family_id", type=int)
@click.argument("person_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def person_delete(ctx, family_id: int, person_id: int, yes: bool):
    """Delete a person together with all descendants."""
    db = get_db(ctx)
    target = db.get_person(person_id, family_id)
    if target is None:
        fail(f"Person {person_id} not found in family {family_id}")
    descendants = forest.count_persons(target.children)
    if not yes and descendants:
        click.confirm(f"Delete {target.full_name} and {descendants} descendant(s)?", abort=True)
    db.delete_person(person_id, family_id)
    console.print(f"[green]Deleted {target.full_name}[/green]")


@person.command("show")
@click.argument("family_id", type=int)
@click.argument("person_id", type=int)
@click.pass_context
def person_show(ctx, family_id: int, person_id: int):
    """Show the details of a person."""
    db = get_db(ctx)
    target = db.get_person(person_id, family_id)
    if target is None:
        fail(f"Person {person_id} not found in family {family_id}")

    fam = db.get_family(family_id)
    parent = forest.find_parent(fam.members, person_id)
    age = target.age()

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Gender", target.gender.label)
    table.add_row("Generation", str(db.generation_of(person_id, family_id) + 1))
    table.add_row("Birth date", target.birth_date.isoformat() if target.birth_date else "-")
    if target.death_date:
        table.add_row("Death date", target.death_date.isoformat())
    if age is not None:
        table.add_row("Age", str(age))
    table.add_row("Occupation", target.occupation or "-")
    table.add_row("Phone", target.phone or "-")
    table.add_row("Email", target.email or "-")
    table.add_row("Address", target.address or "-")
    table.add_row("Parent", parent.full_name if parent else "Founder")
    table.add_row("Children", ", ".join(c.full_name for c in target.children) or "-")
    if target.notes:
        table.add_row("Notes", target.notes)
    console.print(Panel(table, title=target.full_name, subtitle=f"ID {target.id}"))


# =============================================================================
# Browsing Commands
# =============================================================================

def _person_label(p: Person) -> str:
    color = "blue" if p.gender is Gender.MALE else "magenta"
    label = f"[{color}]{p.full_name}[/{color}] [dim]({p.id})[/dim]"
    if p.birth_date:
        label += f" [dim]b. {p.birth_date.year}[/dim]"
    return label


def _add_branch(node: Tree, persons: list[Person]) -> None:
    for p in persons:
        child = node.add(_person_label(p))
        _add_branch(child, p.children)


@cli.command("tree")
@click.argument("family_id", type=int)
@click.pass_context
def show_tree(ctx, family_id: int):
    """Display a family as a tree."""
    fam = require_family(get_db(ctx), family_id)
    root = Tree(f"[bold]{fam.name}[/bold]")
    _add_branch(root, fam.members)
    console.print(root)


@cli.command("search")
@click.argument("term")
@click.option("--family", "-f", "family_id", type=int, help="Restrict to one family")
@click.pass_context
def search(ctx, term: str, family_id: Optional[int]):
    """Find persons by given name or surname."""
    db = get_db(ctx)
    results = db.search_person(term, family_id)
    if not results:
        console.print("[yellow]No matches found[/yellow]")
        return

    table = Table(title=f"Search: {term}")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Family")
    table.add_column("Generation", justify="right")
    for p in results:
        fam = db.find_family_of(p.id)
        generation = db.generation_of(p.id, fam.id) if fam else None
        table.add_row(
            str(p.id),
            p.full_name,
            fam.name if fam else "",
            str(generation + 1) if generation is not None else "",
        )
    console.print(table)


@cli.command("stats")
@click.pass_context
def stats(ctx):
    """Show database statistics."""
    db = get_db(ctx)
    summary = db.get_statistics()
    by_gender = {Gender.MALE: 0, Gender.FEMALE: 0}
    for fam in db.families:
        for gender, count in forest.count_by_gender(fam.members).items():
            by_gender[gender] += count

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Families", str(summary.total_families))
    table.add_row("Persons", str(summary.total_persons))
    table.add_row("Men", str(by_gender[Gender.MALE]))
    table.add_row("Women", str(by_gender[Gender.FEMALE]))
    table.add_row("Generations", str(db.total_generations()))
    table.add_row("Storage used", summary.storage_used)
    table.add_row("Last backup", summary.last_backup.strftime("%Y-%m-%d %H:%M") if summary.last_backup else "never")
    console.print(Panel(table, title="Statistics"))


# =============================================================================
# Import / Export Commands
# =============================================================================

@cli.group()
def export():
    """Export families to JSON or spreadsheets."""
    pass


@export.command("json")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def export_json(ctx, output: Path):
    """Export every family to a JSON file."""
    db = get_db(ctx)
    output.write_text(db.export_to_json(), encoding="utf-8")
    console.print(f"[green]Exported {len(db.families)} families to {output}[/green]")


@export.command("xlsx")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--family", "-f", "family_id", type=int, help="Export only this family")
@click.option("--person", "-p", "person_id", type=int, help="Export one person's profile (needs --family)")
@click.pass_context
def export_xlsx(ctx, output: Path, family_id: Optional[int], person_id: Optional[int]):
    """Export families to a spreadsheet."""
    db = get_db(ctx)
    if person_id is not None:
        if family_id is None:
            fail("--person needs --family")
        fam = require_family(db, family_id)
        target = db.get_person(person_id, family_id)
        if target is None:
            fail(f"Person {person_id} not found in family {family_id}")
        spreadsheet.export_person(target, fam, output)
    elif family_id is not None:
        spreadsheet.export_family(require_family(db, family_id), output)
    else:
        spreadsheet.export_families(db.families, output)
    console.print(f"[green]Spreadsheet saved to {output}[/green]")


@export.command("stats")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def export_stats(ctx, output: Path):
    """Export per-family statistics to a spreadsheet."""
    spreadsheet.export_statistics(get_db(ctx).families, output)
    console.print(f"[green]Statistics saved to {output}[/green]")


@cli.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--yes", "-y", is_flag=True, help="Do not ask before replacing data")
@click.pass_context
def import_file(ctx, file: Path, yes: bool):
    """
    Import a JSON export or a family spreadsheet.

    A JSON file replaces every family; a spreadsheet adds one family.
    """
    db = get_db(ctx)
    try:
        if file.suffix.lower() == ".xlsx":
            fam = db.import_family(spreadsheet.import_family(file))
            console.print(
                f"[green]Imported '{fam.name}' with {forest.count_persons(fam.members)} persons[/green]"
            )
            return

        if db.families and not yes:
            click.confirm(f"Replace the {len(db.families)} existing families?", abort=True)
        families = db.import_from_json(file.read_text(encoding="utf-8"))
    except FamilyTreeError as e:
        fail(str(e))
    except UnicodeDecodeError as e:
        fail(f"File is not UTF-8 text: {e}")
    console.print(f"[green]Imported {len(families)} families[/green]")


# =============================================================================
# Backup Commands
# =============================================================================

@cli.group()
def backup():
    """Create and restore snapshots of all families."""
    pass


@backup.command("create")
@click.pass_context
def backup_create(ctx):
    """Snapshot every family."""
    try:
        entry = get_db(ctx).create_backup()
    except StorageError as e:
        fail(str(e))
    console.print(f"[green]Created backup {entry.name}[/green]")


@backup.command("list")
@click.pass_context
def backup_list(ctx):
    """List backups, newest first."""
    backups = get_db(ctx).get_backups()
    if not backups:
        console.print("[yellow]No backups[/yellow]")
        return
    table = Table(title="Backups")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Date")
    for index, entry in enumerate(backups):
        table.add_row(str(index), entry.name, entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"))
    console.print(table)


@backup.command("restore")
@click.argument("index", type=int)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def backup_restore(ctx, index: int, yes: bool):
    """Replace all families with backup number INDEX."""
    if not yes:
        click.confirm("Replace all current families with this backup?", abort=True)
    try:
        families = get_db(ctx).restore_backup(index)
    except (LookupError, FamilyTreeError) as e:
        fail(str(e))
    console.print(f"[green]Restored {len(families)} families[/green]")


@backup.command("delete")
@click.argument("index", type=int)
@click.pass_context
def backup_delete(ctx, index: int):
    """Delete backup number INDEX."""
    if not get_db(ctx).delete_backup(index):
        fail(f"No backup at index {index}")
    console.print("[green]Backup deleted[/green]")


@cli.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear(ctx, yes: bool):
    """Delete every family (backups are kept)."""
    if not yes:
        click.confirm("Delete ALL families?", abort=True)
    get_db(ctx).clear_all_data()
    console.print("[green]All family data cleared[/green]")


# =============================================================================
# Guide Commands
# =============================================================================

def get_guide(ctx: click.Context) -> GuideSequencer:
    config = ctx.find_root().obj["config"]
    return GuideSequencer(FileStorage(config.data_dir, quota_bytes=config.storage_quota_bytes))


@cli.group()
def guide():
    """Follow the guided tour."""
    pass


@guide.command("status")
@click.pass_context
def guide_status(ctx):
    """Show tour progress per section."""
    seq = get_guide(ctx)
    with Progress(
        TextColumn("{task.description}", justify="left"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
    ) as progress:
        for section in seq.sections:
            progress.add_task(section.title, total=100, completed=seq.section_progress(section.id))

    console.print(
        f"\nOverall: {seq.progress_percentage():.0f}% "
        f"({seq.completed_section_count()}/{len(seq.sections)} sections)"
    )
    next_step = seq.get_next_step()
    if next_step:
        console.print(f"Next step: [cyan]{next_step.id}[/cyan] - {next_step.title}")
    else:
        console.print("[green]Tour completed![/green]")


@guide.command("next")
@click.pass_context
def guide_next(ctx):
    """Show the next step of the tour."""
    seq = get_guide(ctx)
    seq.start_guide()
    step = seq.get_next_step()
    if step is None:
        console.print("[green]Tour completed![/green]")
        return
    console.print(Panel(step.description, title=step.title, subtitle=step.id))


@guide.command("complete")
@click.argument("step_id")
@click.pass_context
def guide_complete(ctx, step_id: str):
    """Mark a step as done."""
    try:
        get_guide(ctx).complete_step(step_id)
    except UnknownStepError as e:
        fail(str(e.args[0]))
    console.print(f"[green]Step '{step_id}' completed[/green]")


@guide.command("skip")
@click.argument("step_id")
@click.pass_context
def guide_skip(ctx, step_id: str):
    """Skip a step."""
    try:
        get_guide(ctx).skip_step(step_id)
    except UnknownStepError as e:
        fail(str(e.args[0]))
    console.print(f"[dim]Step '{step_id}' skipped[/dim]")


@guide.command("reset")
@click.pass_context
def guide_reset(ctx):
    """Start the tour over."""
    get_guide(ctx).reset_progress()
    console.print("[green]Guide progress reset[/green]")


# =============================================================================
# Backend Sync Commands
# =============================================================================

@cli.group()
def sync():
    """Synchronize with the family tree backend."""
    pass


def _api_client(ctx: click.Context, api_url: Optional[str]) -> FamilyApiClient:
    config = ctx.find_root().obj["config"]
    return FamilyApiClient(api_url or config.api_url, timeout=config.api_timeout)


@sync.command("pull")
@click.option("--api-url", help="Backend URL (default: $FAMILY_TREE_API_URL)")
@click.option("--family", "-f", "family_id", type=int, help="Only refresh this family's members")
@click.pass_context
@async_command
async def sync_pull(ctx, api_url: Optional[str], family_id: Optional[int]):
    """Download families (and members) from the backend."""
    db = get_db(ctx)
    try:
        async with _api_client(ctx, api_url) as client:
            backend = BackendSync(client)
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                progress.add_task("Downloading...", total=None)
                if family_id is None:
                    families = await backend.pull_families(db)
                    for fam in families:
                        await backend.pull_members(db, fam.id)
                else:
                    families = [await backend.pull_members(db, family_id)]
    except (FamilyApiError, FamilyTreeError) as e:
        fail(str(e))
    except httpx.HTTPError as e:
        fail(f"Backend not reachable: {e}")

    console.print(f"[green]Pulled {len(families)} families[/green]")


@sync.command("push")
@click.argument("family_id", type=int)
@click.option("--api-url", help="Backend URL (default: $FAMILY_TREE_API_URL)")
@click.pass_context
@async_command
async def sync_push(ctx, family_id: int, api_url: Optional[str]):
    """Upload a local family to the backend."""
    db = get_db(ctx)
    try:
        async with _api_client(ctx, api_url) as client:
            result = await BackendSync(client).push_family(db, family_id)
    except (FamilyApiError, FamilyTreeError) as e:
        fail(str(e))
    except httpx.HTTPError as e:
        fail(f"Backend not reachable: {e}")

    console.print(
        f"[green]Created remote family {result.remote_family_id} "
        f"with {result.persons_created} persons[/green]"
    )


# =============================================================================
# Web Server
# =============================================================================

@cli.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.option("--reload", is_flag=True, help="Reload on code changes")
@click.pass_context
def serve(ctx, host: str, port: int, reload: bool):
    """Run the REST API."""
    import uvicorn

    config = ctx.find_root().obj["config"]
    os.environ["FAMILY_TREE_DATA_DIR"] = str(config.data_dir)
    console.print(f"[green]Serving on http://{host}:{port} (data: {config.data_dir})[/green]")
    uvicorn.run("family_tree.web:app", host=host, port=port, reload=reload)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
