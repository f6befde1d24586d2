# site_mapper/report/json_report.py

"""
Генерация JSON-отчёта для проекта SiteMapper.

Сериализация объекта AnalysisReport в файл.
"""
import json
from pathlib import Path

from site_mapper.aggregator import AnalysisReport


def render_json(report: AnalysisReport, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Сохраняет отчёт report в формате JSON по указанному пути.

    :param report: объект AnalysisReport с результатами анализа
    :param output_path: путь к JSON-файлу
    :param pretty: отступ 2 (по умолчанию) или компактная запись
    :return: Path сохранённого файла
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open("w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, ensure_ascii=False, indent=2 if pretty else None)

    return output
