"""
Interactive terminal analyzer.

Reads one line at a time, runs it through the analysis pipeline and renders
the verdict as a table. ``exit`` (any case) or Ctrl+C/Ctrl+D ends the session.

Usage:
    honoris
    honoris --evidence              # also query LawCrawler for supporting laws
    honoris --prompt-variant honor  # honor-crimes-only taxonomy
    honoris --no-persist            # never write to the database
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Callable
from datetime import datetime

import httpx
from rich.console import Console
from rich.table import Table

from config import Settings, get_settings
from engine.errors import AnalysisError, ContentBlocked, MalformedModelOutput
from engine.pipeline import AnalysisResult, build_pipeline
from logging_config import setup_logging
from services.persistence import SOURCE_TERMINAL, NullRecorder, Recorder, build_recorder

logger = logging.getLogger(__name__)

PROMPT = "\nIngrese la frase o descripción a analizar: "
EXIT_COMMAND = "exit"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="honoris",
        description="Honoris: analizador de expresiones según la ley penal de Costa Rica",
    )
    parser.add_argument(
        "--evidence",
        action="store_true",
        help="Query the LawCrawler service for supporting laws",
    )
    parser.add_argument(
        "--prompt-variant",
        choices=["honor", "penal", "integrated"],
        help="Override PROMPT_VARIANT for this session",
    )
    parser.add_argument(
        "--no-persist",
        action="store_true",
        help="Do not save analyses to the database",
    )
    return parser


def print_banner(console: Console, *, persistence_enabled: bool) -> None:
    console.rule("[bold]Honoris: CR Legal Expression Analyzer (Terminal)[/bold]")
    console.print("Alcance: análisis penal completo (honor, privacidad, delitos informáticos, etc.)")
    console.print("Escriba 'exit' o presione Ctrl+C para salir.")
    if persistence_enabled:
        console.print("[green][STATUS] Integración con base de datos: ACTIVA.[/green]")
    else:
        console.print("[yellow][STATUS] Integración con base de datos: INACTIVA (Modo local).[/yellow]")


def render_result(console: Console, result: AnalysisResult) -> None:
    record = result.record
    table = Table(title="ANÁLISIS LEGAL", show_header=False, show_lines=True)
    table.add_column("Campo", style="bold cyan", no_wrap=True)
    table.add_column("Valor")
    table.add_row("Frase/Hecho", record.original_text)
    table.add_row("Categoría Legal", record.legal_category)
    table.add_row("Normativa", record.statute_reference)
    table.add_row("Penalidad Estimada", record.estimated_penalty)
    table.add_row("Detalles", record.detection_rationale)
    console.print(table)

    if result.evidence:
        evidence_table = Table(title="Evidencia (LawCrawler)")
        evidence_table.add_column("#", justify="right")
        evidence_table.add_column("Resultado")
        for index, item in enumerate(result.evidence, start=1):
            label = item.get("titulo") or item.get("nombre") or item.get("id") or str(item)
            evidence_table.add_row(str(index), str(label))
        console.print(evidence_table)


def describe_failure(exc: AnalysisError) -> str:
    if isinstance(exc, ContentBlocked):
        return f"Respuesta bloqueada por el modelo. Razón: {exc.reason}"
    if isinstance(exc, MalformedModelOutput):
        return "El modelo devolvió una respuesta que no se pudo interpretar."
    return "No se pudo completar el análisis. Revise la conexión y la clave del API."


def run_repl(
    analyze: Callable[[str], AnalysisResult],
    console: Console,
    read_line: Callable[[str], str],
) -> int:
    """Run the read-analyze-print loop. Returns the number of analyses completed.

    Lines are read synchronously, outside the event loop, so Ctrl+C at the
    prompt raises KeyboardInterrupt immediately and ends the session.
    """
    completed = 0
    while True:
        try:
            user_input = read_line(PROMPT)
        except EOFError:
            break
        except KeyboardInterrupt:
            console.print("\nSaliendo.")
            break

        if user_input.strip().lower() == EXIT_COMMAND:
            break
        if not user_input.strip():
            continue

        timestamp = datetime.now().strftime("%d/%m/%Y %H:%M:%S")
        console.print(f"[FECHA/HORA BÚSQUEDA]: {timestamp}")
        console.print("Analizando con Gemini...\n")

        try:
            result = analyze(user_input)
        except KeyboardInterrupt:
            console.print("\nAnálisis interrumpido. Saliendo.")
            break
        except AnalysisError as exc:
            logger.error("Analysis failed: %s", exc)
            console.print(f"[red]Error en el análisis:[/red] {describe_failure(exc)}")
            continue

        render_result(console, result)
        completed += 1
    return completed


async def _shutdown(recorder: Recorder, http_client: httpx.AsyncClient) -> None:
    try:
        await recorder.close()
    finally:
        await http_client.aclose()


def _session(settings: Settings, args: argparse.Namespace, console: Console) -> None:
    """Run one REPL session on a single event loop.

    The loop only runs while a line is analyzed and at shutdown (to drain the
    persistence queue); input is read while no loop is running.
    """
    recorder = NullRecorder() if args.no_persist else build_recorder(settings, source=SOURCE_TERMINAL)
    with asyncio.Runner() as runner:
        http_client = httpx.AsyncClient(
            timeout=max(settings.llm_call_timeout_seconds, settings.evidence_timeout_seconds)
        )
        pipeline = build_pipeline(
            settings,
            http_client,
            recorder=recorder,
            with_evidence=args.evidence,
        )
        print_banner(console, persistence_enabled=recorder.enabled)
        try:
            run_repl(lambda text: runner.run(pipeline.run(text)), console, console.input)
        finally:
            runner.run(_shutdown(recorder, http_client))


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    if args.prompt_variant:
        settings = settings.model_copy(update={"prompt_variant": args.prompt_variant})

    setup_logging(settings, stream=sys.stderr)
    console = Console()

    if not settings.gemini_api_key:
        console.print("[bold red]ERROR CRÍTICO:[/bold red] no se encontró GEMINI_API_KEY.")
        console.print("Defínala en el entorno o en un archivo .env en esta carpeta.")
        return 1

    try:
        _session(settings, args, console)
    except KeyboardInterrupt:
        console.print("\nSaliendo.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
