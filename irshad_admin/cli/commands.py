"""
Maintenance commands run through ``flask school ...``.
"""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from irshad_admin.models import Program, Shift, db
from irshad_admin.services.checkin_service import CheckInService
from irshad_admin.services.duplicate_service import DuplicateService
from irshad_admin.services.mahad_service import MahadService
from irshad_admin.services.teacher_service import TeacherService


@click.group(name="school")
def school_cli():
    """School administration maintenance commands."""


@school_cli.command("init-db")
@with_appcontext
def init_db_command():
    """Create all database tables."""
    db.create_all()
    click.echo("Database tables created.")


@school_cli.command("auto-clock-out")
@with_appcontext
def auto_clock_out_command():
    """Close teacher check-ins left open past the maximum shift length."""
    count = CheckInService().auto_clock_out_stale_check_ins()
    click.echo(f"Auto-clocked out {count} check-in(s).")


@school_cli.command("create-batch")
@click.argument("name")
@click.option("--start-date", type=click.DateTime(formats=["%Y-%m-%d"]), help="Cohort start date.")
@click.option("--end-date", type=click.DateTime(formats=["%Y-%m-%d"]), help="Cohort end date.")
@with_appcontext
def create_batch_command(name, start_date, end_date):
    """Create a Mahad batch."""
    try:
        batch = MahadService().create_batch(
            name,
            start_date.date() if start_date else None,
            end_date.date() if end_date else None,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created batch {batch.name} (id {batch.id}).")


@school_cli.command("create-teacher")
@click.argument("name")
@click.option("--email", help="Teacher email address.")
@click.option("--phone", help="Teacher phone number.")
@click.option(
    "--shift",
    "shifts",
    multiple=True,
    type=click.Choice([s.value for s in Shift], case_sensitive=False),
    help="Shift the teacher works; repeat for both.",
)
@with_appcontext
def create_teacher_command(name, email, phone, shifts):
    """Create a person with a teacher role."""
    try:
        teacher = TeacherService().create_teacher(name, email=email, phone=phone, shifts=shifts)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created teacher {teacher.person.name} (id {teacher.id}).")


@school_cli.command("find-duplicates")
@click.option(
    "--program",
    type=click.Choice([p.value for p in Program], case_sensitive=False),
    default=Program.MAHAD_PROGRAM.value,
    show_default=True,
)
@with_appcontext
def find_duplicates_command(program):
    """List groups of profiles that look like the same student."""
    groups = DuplicateService().find_duplicate_groups(Program(program.upper()))
    if not groups:
        click.echo("No duplicate groups found.")
        return
    for index, group in enumerate(groups, start=1):
        names = ", ".join(f"{p.person.name} (#{p.id})" for p in group)
        click.echo(f"{index}. {names}")
