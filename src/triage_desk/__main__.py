"""
Command-line interface for the triage desk.

`menu` runs the interactive front desk; the other commands are one-shot
batch helpers around CSV files and the synthetic load generator.
"""

import json
import logging
import sys
import typing

import click
from stairval.notepad import create_notepad

from .csv_io import CsvFormatError, audit_patient_csv, export_log, load_patients
from .desk import TriageDesk
from .patient import Patient
from .treatment import Outcome
from .workloads import DEFAULT_SEED, SampleWorkloads, SeverityDistribution, run_concurrent_workload, timed

MENU = """
========= Hospital Menu =========
1) Register patient
2) Update patient
3) Enqueue patient
4) Peek next
5) Admit & Treat next
6) Print triage order
7) Find patient
8) Show treatment log
9) Performance demo
10) Export log to CSV
11) Import patients from CSV
0) Exit
================================="""


@click.group()
@click.option("--verbose-logging", is_flag=True, help="Also emit debug logs to stderr")
@click.option(
    "--log-file-path",
    type=click.Path(dir_okay=False, writable=True),
    help="Append timestamped logs to this file",
)
def main(verbose_logging: bool, log_file_path: typing.Optional[str]):
    """Triage desk: register, rank and treat patients by urgency."""
    handlers: list[logging.Handler] = []
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    if verbose_logging:
        handlers.append(logging.StreamHandler(sys.stderr))
    if handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose_logging else logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=handlers,
        )


def _error(message: str) -> None:
    click.echo(click.style(message, fg="red"))


def _prompt_text(label: str) -> str:
    return click.prompt(label, default="", show_default=False).strip()


def _prompt_optional_int(label: str) -> typing.Optional[int]:
    # blank (or unparseable) means "leave unchanged"
    text = _prompt_text(label)
    try:
        return int(text) if text else None
    except ValueError:
        return None


def _print_patients(patients: typing.Sequence[Patient]) -> None:
    if not patients:
        click.echo("(nobody waiting)")
        return
    click.echo(f"{'#':>3}  {'ID':10} {'NAME':24} {'AGE':>4} {'SEV':>4} {'SEQ':>6}")
    for position, p in enumerate(patients, start=1):
        click.echo(f"{position:>3}  {p.patient_id:10} {p.name:24} {p.age:>4} {p.severity:>4} {p.arrival_seq:>6}")


def _register(desk: TriageDesk) -> None:
    click.echo("---- Register New Patient ----")
    patient_id = _prompt_text("ID")
    name = _prompt_text("Name")
    age = click.prompt("Age", type=int)
    severity = click.prompt("Severity (1-10)", type=int)
    click.echo(f"Registered: {desk.register(patient_id, name, age, severity)}")


def _update(desk: TriageDesk) -> None:
    click.echo("---- Update Patient ----")
    patient_id = _prompt_text("ID")
    name = _prompt_text("New name (blank = no change)") or None
    age = _prompt_optional_int("New age (blank = no change)")
    severity = _prompt_optional_int("New severity (blank = no change)")
    if desk.update(patient_id, name=name, age=age, severity=severity) is None:
        click.echo("Patient not found.")
    else:
        click.echo("Patient updated.")


def _enqueue(desk: TriageDesk) -> None:
    if desk.enqueue(_prompt_text("Enter patient ID to enqueue")):
        click.echo("Added to queue.")
    else:
        click.echo("No such patient ID.")


def _peek(desk: TriageDesk) -> None:
    patient = desk.queue.peek_next()
    click.echo(f"Next: {patient}" if patient is not None else "Triage queue empty.")


def _prompt_outcome() -> Outcome:
    while True:
        click.echo("Outcome: 1) STABLE  2) OBSERVE  3) TRANSFER")
        try:
            return Outcome.from_label(_prompt_text("Choose"))
        except ValueError:
            click.echo("Invalid choice.")


def _treat(desk: TriageDesk) -> None:
    patient = desk.queue.peek_next()
    if patient is None:
        click.echo("Queue empty.")
        return
    click.echo(f"Treating: {patient}")
    outcome = _prompt_outcome()
    notes = _prompt_text("Notes")
    if desk.admit_and_treat(outcome, notes) is None:
        click.echo("Queue empty.")
    else:
        click.echo("Treatment logged.")


def _print_order(desk: TriageDesk) -> None:
    click.echo("---- Triage Order ----")
    _print_patients(desk.queue.snapshot_order())


def _find(desk: TriageDesk) -> None:
    patient = desk.registry.lookup(_prompt_text("ID"))
    click.echo(str(patient) if patient is not None else "Not found.")


def _show_log(desk: TriageDesk) -> None:
    click.echo("1) Oldest -> Newest")
    click.echo("2) Newest -> Oldest")
    newest = _prompt_text("Choose") == "2"
    cases = desk.log.newest_first() if newest else desk.log.oldest_first()
    click.echo("---- Treatment Log ----")
    for case in cases:
        click.echo(str(case))


def _performance_demo(desk: TriageDesk) -> None:
    click.echo("---- Performance Demo ----")
    count = click.prompt("How many patients to enqueue?", type=click.IntRange(min=0))
    dequeues = click.prompt("How many dequeues?", type=click.IntRange(min=0))
    workloads = SampleWorkloads(DEFAULT_SEED, SeverityDistribution.UNIFORM)
    with timed("Enqueue N") as enqueue_timing:
        workloads.enqueue_random_patients(count, desk.registry, desk.queue)
    with timed("Dequeue K") as dequeue_timing:
        workloads.perform_dequeues(dequeues, desk.queue)
    click.echo(f"Enqueue N: {enqueue_timing.seconds * 1000:.3f} ms")
    click.echo(f"Dequeue K: {dequeue_timing.seconds * 1000:.3f} ms")


def _export(desk: TriageDesk) -> None:
    path = _prompt_text("CSV file name")
    try:
        export_log(path, desk.log.oldest_first())
    except OSError as e:
        _error(f"Export failed: {e}")
        return
    click.echo(f"Exported to {path}")


def _import(desk: TriageDesk) -> None:
    path = _prompt_text("CSV file name")
    try:
        loaded = load_patients(path, desk.registry)
    except (CsvFormatError, OSError) as e:
        _error(f"Import failed: {e}")
        return
    click.echo(f"Loaded {len(loaded)} patients from {path}")


MENU_ACTIONS: dict[str, typing.Callable[[TriageDesk], None]] = {
    "1": _register,
    "2": _update,
    "3": _enqueue,
    "4": _peek,
    "5": _treat,
    "6": _print_order,
    "7": _find,
    "8": _show_log,
    "9": _performance_demo,
    "10": _export,
    "11": _import,
}


@main.command(name="menu")
def menu():
    """
    Interactive front desk. State lives in memory for the length of the session.
    """
    desk = TriageDesk()
    while True:
        click.echo(MENU)
        choice = _prompt_text("Choose")
        if choice == "0":
            click.echo("Goodbye.")
            return
        action = MENU_ACTIONS.get(choice)
        if action is None:
            click.echo("Invalid choice.")
            continue
        action(desk)


@main.command(name="order")
@click.option(
    "-c",
    "--csv-path",
    "csv_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="patient CSV with header id,name,age,severity",
)
def order(csv_path: str):
    """
    Import patients from a CSV file, enqueue all of them and print the triage order.
    """
    desk = TriageDesk()
    try:
        loaded = load_patients(csv_path, desk.registry)
    except CsvFormatError as e:
        _error(f"Import failed: {e}")
        sys.exit(1)
    for patient in loaded:
        # a re-registered id is only queued once, under its latest record
        if desk.registry.lookup(patient.patient_id) is patient:
            desk.queue.enqueue(patient)
    _print_patients(desk.queue.snapshot_order())


@main.command(name="audit-csv")
@click.option(
    "-c",
    "--csv-path",
    "csv_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="patient CSV to check",
)
@click.option("-r", "--raw", is_flag=True, help="Emit issues as JSON instead of a table")
def audit_csv(csv_path: str, raw: bool):
    """
    Check a patient CSV file without importing it.
    """
    notepad = create_notepad("patients")
    valid = audit_patient_csv(csv_path, notepad)
    issues = [{"level": "error", "message": issue.message} for issue in notepad.errors()]
    issues += [{"level": "warning", "message": issue.message} for issue in notepad.warnings()]

    if raw:
        click.echo(json.dumps(issues, indent=2))
        return

    click.echo(f"{'LEVEL':9}  MESSAGE")
    for issue in issues:
        color = "red" if issue["level"] == "error" else "yellow"
        click.echo(click.style(f"{issue['level'].upper():9}", fg=color) + f"  {issue['message']}")
    click.echo(f"{valid} rows ready to import")


@main.command(name="load-test")
@click.option("-n", "--patients", "count", default=1000, type=click.IntRange(min=0),
              help="patients to register and enqueue")
@click.option("-k", "--dequeues", default=500, type=click.IntRange(min=0), help="dequeues to perform")
@click.option(
    "--distribution",
    type=click.Choice([d.value for d in SeverityDistribution], case_sensitive=False),
    default=SeverityDistribution.UNIFORM.value,
    help="severity distribution of generated patients",
)
@click.option("--seed", default=DEFAULT_SEED, type=int, help="random seed (env: TRIAGE_WORKLOAD_SEED)")
@click.option("--workers", default=0, type=click.IntRange(min=0),
              help="also run a mixed workload from this many threads")
def load_test(count: int, dequeues: int, distribution: str, seed: int, workers: int):
    """
    Time bulk enqueue and dequeue against a fresh desk.
    """
    desk = TriageDesk()
    workloads = SampleWorkloads(seed, SeverityDistribution.from_label(distribution))

    with timed("Enqueue N") as enqueue_timing:
        workloads.enqueue_random_patients(count, desk.registry, desk.queue)
    with timed("Dequeue K") as dequeue_timing:
        removed = workloads.perform_dequeues(dequeues, desk.queue)

    click.echo(f"Enqueued {count} patients in {enqueue_timing.seconds * 1000:.3f} ms")
    click.echo(f"Dequeued {removed} patients in {dequeue_timing.seconds * 1000:.3f} ms")

    if workers:
        with timed("Concurrent mixed workload") as mixed_timing:
            run_concurrent_workload(workers, count, desk.registry, desk.queue, seed=seed)
        click.echo(f"Ran {workers} x {count} mixed operations in {mixed_timing.seconds * 1000:.3f} ms")

    click.echo(f"Registered: {desk.registry.count()}  Waiting: {desk.queue.size()}")


if __name__ == "__main__":
    main()
