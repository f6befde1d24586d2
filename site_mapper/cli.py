# === FILE: site_mapper/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска анализа SiteMapper через командную строку.

Команды:
  analyze [URL]   Проанализировать сайт и вывести/сохранить отчёты
  config          Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --limit INT         Макс. число страниц (override max_pages)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (только консоль, если не указан)
  --log-format FORMAT Формат логирования

Команда analyze опции:
  --json PATH         Сохранить JSON-отчёт в файл
  --html PATH         Сохранить HTML-отчёт в файл
  --template DIR      Папка с Jinja2-шаблонами (по умолчанию встроенный шаблон)
  --jsonl PATH        Сохранять каждую страницу сразу по мере обхода (JSON Lines)
  --pretty            Преформатировать JSON-вывод (отступ 2)
  --scan-timeout SEC  Таймаут всего анализа (секунд)
  --exact-order       Контент в порядке документа вместо разбиения по заголовкам
  --no-images         Не собирать изображения
  --shallow           Только заголовок и тип страницы, без разбора контента

Пример:
  site-mapper analyze https://example.com --json report.json --limit 20
"""
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from pydantic import ValidationError

from site_mapper import __version__
from site_mapper.config import DEFAULT_CONFIG_PATH, AnalysisConfig, config_from_url, load_config
from site_mapper.engine import run_analysis
from site_mapper.logger import init_logging
from site_mapper.report.html_report import render_html
from site_mapper.report.json_report import render_json
from site_mapper.sinks import JsonLinesSink

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg="red", err=True)
    sys.exit(1)


def _load(config_path: Optional[Path]) -> Optional[AnalysisConfig]:
    if config_path is None and not DEFAULT_CONFIG_PATH.exists():
        return None
    return load_config(config_path)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "--version", "-v", message="SiteMapper, version %(version)s")
@click.option(
    "--config", "-c", "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Путь к файлу конфигурации YAML/JSON.",
)
@click.option(
    "--limit", "-l", "limit",
    type=click.IntRange(1, 1000),
    default=None,
    help="Макс. число страниц для анализа (override max_pages)",
)
@click.option(
    "--log-level", "log_level",
    default="WARNING", show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Уровень логирования",
)
@click.option(
    "--log-file", "log_file",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Путь к файлу логов (только консоль, если не указан)",
)
@click.option(
    "--log-format", "log_format",
    default="%(asctime)s %(levelname)s %(message)s",
    show_default=True,
    help="Строка формата для логов",
)
@click.pass_context
def cli(ctx, config_path, limit, log_level, log_file, log_format):
    """Группа команд SiteMapper CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format,
    )
    try:
        cfg = _load(config_path)
    except Exception as e:
        print_error(f"Ошибка загрузки конфигурации: {e}")
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg
    ctx.obj["overrides"] = {"max_pages": limit} if limit is not None else {}


@cli.command("analyze", context_settings=CONTEXT_SETTINGS)
@click.argument("url", required=False)
@click.option(
    "--json", "-j", "json_output",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Сохранить JSON-отчёт в файл",
)
@click.option(
    "--html", "-h", "html_output",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Сохранить HTML-отчёт в файл",
)
@click.option(
    "--template", "-t", "template_dir",
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Папка с Jinja2-шаблонами",
)
@click.option(
    "--jsonl", "jsonl_output",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Сохранять результаты по мере обхода в JSON Lines",
)
@click.option("--pretty", is_flag=True, help="Преформатировать JSON-вывод (отступ 2)")
@click.option(
    "--scan-timeout", "scan_timeout",
    type=float,
    default=None,
    help="Таймаут всего анализа (секунд)",
)
@click.option("--exact-order", is_flag=True, help="Контент в порядке документа")
@click.option("--no-images", is_flag=True, help="Не собирать изображения")
@click.option("--shallow", is_flag=True, help="Без разбора контента страниц")
@click.pass_context
def analyze(
    ctx, url, json_output, html_output, template_dir, jsonl_output,
    pretty, scan_timeout, exact_order, no_images, shallow,
):
    """Проанализировать сайт и сгенерировать отчёты."""
    overrides: Dict[str, Any] = dict(ctx.obj["overrides"])
    if exact_order:
        overrides["extraction_mode"] = "exact_order"
    if no_images:
        overrides["include_images"] = False
    if shallow:
        overrides["deep_analysis"] = False

    cfg = ctx.obj["config"]
    try:
        if url:
            cfg = cfg.with_overrides(base_url=url, **overrides) if cfg is not None else config_from_url(url, **overrides)
        elif cfg is None:
            print_error("Не указан URL и не найден конфиг")
        elif overrides:
            cfg = cfg.with_overrides(**overrides)
    except ValidationError as e:
        print_error(f"Некорректная конфигурация: {e}")

    to_stdout = not json_output and not html_output
    if not to_stdout:
        click.echo(f"Analyzing {cfg.base_url}")
    sink = JsonLinesSink(jsonl_output) if jsonl_output else None
    try:
        coro = run_analysis(cfg, sink=sink)
        if scan_timeout:
            report = asyncio.run(asyncio.wait_for(coro, timeout=scan_timeout))
        else:
            report = asyncio.run(coro)
    except asyncio.TimeoutError:
        print_error(f"Анализ не завершён за {scan_timeout} секунд")
    except Exception as e:
        print_error(f"Ошибка при анализе: {e}")

    if to_stdout:
        click.echo(report.json(pretty=pretty))
        return

    click.echo(report.outcome)
    if json_output:
        try:
            saved_json = render_json(report, json_output, pretty=True)
            click.echo(f"JSON report: {saved_json}")
        except Exception as e:
            print_error(f"Ошибка при сохранении JSON: {e}")
    if html_output:
        try:
            saved_html = render_html(report, template_dir, html_output)
            click.echo(f"HTML report: {saved_html}")
        except Exception as e:
            print_error(f"Ошибка при сохранении HTML: {e}")
    if jsonl_output:
        click.echo(f"JSONL pages: {jsonl_output}")


@cli.command("config", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj["config"]
    if cfg is None:
        print_error("Конфигурация не найдена")
    if ctx.obj["overrides"]:
        cfg = cfg.with_overrides(**ctx.obj["overrides"])
    click.echo(cfg.model_dump_json(indent=2, exclude={"ai_api_key"}))


if __name__ == "__main__":
    cli()
