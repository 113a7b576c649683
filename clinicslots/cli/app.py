"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.bookings_file import load_bookings
from ..adapters.json_waitlist_repository import JsonFileWaitlistRepository
from ..adapters.mock_notifier import MockNotifier
from ..adapters.webhook_notifier import WebhookNotifier
from ..config import AppConfig, get_default_config_path
from ..domain.availability_calculator import SlotSearchResult, calculate_available_slots
from ..domain.conflict_detector import add_buffer_time, find_conflicts
from ..domain.exceptions import ClinicSlotsError, DuplicateActiveEntry
from ..domain.models import FreedSlot, Priority, TimeSlot, WaitlistStatus
from ..services.autofill import AutoFillNotifier
from ..services.waitlist import WaitlistQueue

app = typer.Typer(
    name="clinicslots",
    help="Clinic appointment availability, conflict checks and waitlist auto-fill",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
BookingsOption = Annotated[
    Optional[Path],
    typer.Option("--bookings", "-b", help="JSON file with existing bookings"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
):
    """
    Scheduling engine for the clinic calendar.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=False, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    if config_file is not None:
        return AppConfig.load_from_yaml(config_file)

    config_path = get_default_config_path()
    if not config_path.exists():
        console.print("[dim]Nenhum config.yaml encontrado, usando configuração padrão.[/dim]")
        return AppConfig()
    return AppConfig.load_from_yaml(config_path)


def _parse_local(value: str, tz: str, label: str):
    try:
        return pendulum.parse(value, tz=tz)
    except ValueError as e:
        console.print(f"[red]Erro ao interpretar {label}: {e}[/red]")
        raise typer.Exit(1)


def _waitlist_queue(config: AppConfig) -> WaitlistQueue:
    repository = JsonFileWaitlistRepository(config.waitlist.store_path)
    return WaitlistQueue(repository, expiry_days=config.waitlist.expiry_days)


@app.command()
def slots(
    date: Annotated[str, typer.Argument(help="Data (YYYY-MM-DD)")],
    provider: Annotated[str, typer.Option("--provider", "-p", help="Provider id")] = "default",
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Appointment duration in minutes")] = None,
    bookings: BookingsOption = None,
    config_file: ConfigOption = None,
):
    """
    Show the open appointment times of a provider on one day.

    Examples:

        clinicslots slots 2026-03-02
        clinicslots slots 2026-03-02 --provider dr-ana --bookings agenda.json
    """
    try:
        config = _load_config(config_file)
        availability = config.availability_for(provider, duration_minutes=duration)
        tz = availability.working_hours.timezone

        try:
            day = pendulum.from_format(date, "YYYY-MM-DD", tz=tz)
        except ValueError as e:
            console.print(f"[red]Erro ao interpretar a data: {e}[/red]")
            raise typer.Exit(1)

        existing = load_bookings(bookings, timezone=tz, provider_id=provider)
        result = SlotSearchResult.from_slots(day, calculate_available_slots(day, availability, existing))

        console.print(
            f"\n[bold cyan]🗓️  {provider} - {day.format('DD/MM/YYYY')}[/bold cyan] "
            f"({availability.appointment_duration_minutes} min, intervalo {availability.buffer_minutes} min)\n"
        )

        if not result.slots:
            console.print("[yellow]⚠ Nenhum horário disponível neste dia.[/yellow]\n")
            return

        console.print(f"[bold green]✓ {result.total_available} horário(s) disponível(is)[/bold green]")
        console.print(f"  [bold]Manhã:[/bold] {', '.join(result.morning) or '-'}")
        console.print(f"  [bold]Tarde:[/bold] {', '.join(result.afternoon) or '-'}")
        console.print()

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Erro:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def check(
    start: Annotated[str, typer.Argument(help="Start (YYYY-MM-DDTHH:mm)")],
    end: Annotated[str, typer.Argument(help="End (YYYY-MM-DDTHH:mm)")],
    provider: Annotated[str, typer.Option("--provider", "-p", help="Provider id")] = "default",
    slot_id: Annotated[Optional[str], typer.Option("--id", help="Id of the booking being moved")] = None,
    bookings: BookingsOption = None,
    config_file: ConfigOption = None,
):
    """
    Check whether a proposed booking conflicts with existing bookings.

    Exits with code 1 when the booking would be rejected.
    """
    try:
        config = _load_config(config_file)
        tz = config.working_hours_for(provider).timezone

        proposed = TimeSlot(
            id=slot_id,
            provider_id=provider,
            start=_parse_local(start, tz, "o início"),
            end=_parse_local(end, tz, "o fim"),
        )
        existing = load_bookings(bookings, timezone=tz, provider_id=provider)

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Erro:[/bold red] {e}")
        raise typer.Exit(1)

    conflicts = find_conflicts(add_buffer_time(proposed, config.buffer_minutes), existing)

    if not conflicts:
        console.print(f"[bold green]✓ Horário livre:[/bold green] {proposed}")
        return

    console.print(f"[bold red]✗ Conflito:[/bold red] {proposed} (intervalo {config.buffer_minutes} min)")
    for slot in conflicts:
        console.print(f"  - {slot}")
    raise typer.Exit(1)


@app.command("waitlist-add")
def waitlist_add(
    patient: Annotated[str, typer.Argument(help="Patient id")],
    service: Annotated[str, typer.Argument(help="Service type, e.g. 'Consulta'")],
    provider: Annotated[Optional[str], typer.Option("--provider", "-p", help="Preferred provider (default: any)")] = None,
    priority: Annotated[Priority, typer.Option("--priority", case_sensitive=False)] = Priority.CONVENIENCE,
    notes: Annotated[Optional[str], typer.Option("--notes")] = None,
    config_file: ConfigOption = None,
):
    """
    Put a patient on the waitlist for a service.
    """
    try:
        queue = _waitlist_queue(_load_config(config_file))
        entry = queue.enqueue(patient, service, priority=priority, provider_id=provider, notes=notes)
    except DuplicateActiveEntry as e:
        console.print(f"[yellow]⚠ Paciente já está na lista de espera para este serviço ({e.existing_id}).[/yellow]")
        raise typer.Exit(1)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Erro:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(
        f"[green]✓ Adicionado à lista de espera:[/green] {entry.id} "
        f"(expira em {entry.expires_at.format('DD/MM/YYYY')})"
    )


@app.command("waitlist-list")
def waitlist_list(
    status: Annotated[Optional[WaitlistStatus], typer.Option("--status", case_sensitive=False)] = WaitlistStatus.ACTIVE,
    service: Annotated[Optional[str], typer.Option("--service", "-s")] = None,
    provider: Annotated[Optional[str], typer.Option("--provider", "-p")] = None,
    config_file: ConfigOption = None,
):
    """
    List waitlist entries, most urgent and oldest first.
    """
    try:
        config = _load_config(config_file)
        entries = _waitlist_queue(config).list(status=status, service_type=service, provider_id=provider)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Erro:[/bold red] {e}")
        raise typer.Exit(1)

    if not entries:
        console.print("[yellow]Lista de espera vazia.[/yellow]")
        return

    table = Table(
        title="Lista de espera",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("#", justify="right")
    table.add_column("Id", style="dim")
    table.add_column("Paciente", style="bold yellow")
    table.add_column("Serviço")
    table.add_column("Profissional")
    table.add_column("Prioridade")
    table.add_column("Status")
    table.add_column("Criado em")

    for position, entry in enumerate(entries, 1):
        table.add_row(
            str(position),
            entry.id,
            entry.patient_id,
            entry.service_type,
            entry.provider_id or "qualquer",
            entry.priority.value,
            entry.status.value,
            entry.created_at.in_timezone(config.timezone).format("DD/MM/YYYY HH:mm"),
        )

    console.print()
    console.print(table)
    console.print()


@app.command("waitlist-remove")
def waitlist_remove(
    entry_id: Annotated[str, typer.Argument(help="Waitlist entry id")],
    config_file: ConfigOption = None,
):
    """
    Remove an entry from the waitlist.
    """
    try:
        entry = _waitlist_queue(_load_config(config_file)).remove(entry_id)
    except (ClinicSlotsError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Erro:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓ {entry.id}: {entry.status.value}[/green]")


@app.command("waitlist-expire")
def waitlist_expire(config_file: ConfigOption = None):
    """
    Expire waitlist entries past their expiry date.
    """
    try:
        expired = _waitlist_queue(_load_config(config_file)).expire_overdue()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Erro:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓ {len(expired)} entrada(s) expirada(s).[/green]")


@app.command()
def autofill(
    service: Annotated[str, typer.Argument(help="Service type of the freed slot")],
    start: Annotated[str, typer.Argument(help="Start of the freed slot (YYYY-MM-DDTHH:mm)")],
    provider: Annotated[Optional[str], typer.Option("--provider", "-p", help="Provider of the freed slot")] = None,
    mock: Annotated[bool, typer.Option("--mock", help="Não enviar mensagens, apenas simular.")] = False,
    config_file: ConfigOption = None,
):
    """
    Offer a freed slot to the best-ranked waitlist candidates.
    """
    try:
        config = _load_config(config_file)
        freed = FreedSlot(
            service_type=service,
            start=_parse_local(start, config.working_hours_for(provider).timezone, "o horário"),
            provider_id=provider,
        )

        if mock:
            console.print("[yellow]⚠  MODO SIMULADO: nenhuma mensagem será enviada[/yellow]\n")
            notifier = MockNotifier()
        else:
            notifier = WebhookNotifier(
                webhook_url=config.autofill.webhook_url,
                timeout_seconds=config.autofill.timeout_seconds,
            )

        filler = AutoFillNotifier(_waitlist_queue(config), notifier, fan_out=config.autofill.fan_out)
        report = filler.notify_waitlist_for_freed_slot(freed)

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Erro:[/bold red] {e}")
        raise typer.Exit(1)

    if not report.outcomes:
        console.print("[yellow]Nenhum paciente aguardando este horário.[/yellow]")
        return

    for outcome in report.outcomes:
        if outcome.succeeded:
            console.print(f"  [green]✓[/green] {outcome.patient_id} ({outcome.entry_id})")
        else:
            console.print(f"  [red]✗[/red] {outcome.patient_id} ({outcome.entry_id}): {outcome.error}")

    console.print(
        f"\n[bold]{len(report.notified)} notificado(s), {len(report.failed)} falha(s).[/bold]\n"
    )


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]clinicslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
