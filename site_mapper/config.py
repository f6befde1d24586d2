# === FILE: site_mapper/config.py ===
"""
Загрузка и валидация конфигурации анализа SiteMapper.
Схема описана через Pydantic; YAML и JSON читаются одинаково.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    field_validator,
)

__all__ = [
    "AnalysisConfig",
    "load_config",
    "config_from_url",
    "DEFAULT_USER_AGENT",
    "DEFAULT_CONFIG_PATH",
]

DEFAULT_USER_AGENT = "SiteMapper Pro 1.0 - Website Analysis Tool"

ExtractionMode = Literal["sections", "exact_order"]


class AnalysisConfig(BaseModel):
    """Конфигурация одного запуска анализа сайта."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: HttpUrl = Field(..., description="Seed URL of the website to analyse.")
    max_pages: int = Field(100, ge=1, le=1000, description="Page budget for one run.")
    include_images: bool = Field(True, description="Collect PageImage records.")
    deep_analysis: bool = Field(True, description="Extract sections, headings, meta and structure.")
    use_ai: bool = Field(False, description="Ask the summarization collaborator for summaries.")
    ai_api_key: Optional[str] = Field(None, description="API key for the bundled GLM client.")

    timeout: float = Field(30.0, gt=0, description="Per-page request timeout (seconds).")
    analysis_timeout: float = Field(
        45.0, gt=0, description="Per-page timeout when deep analysis and AI are both active."
    )
    sitemap_timeout: float = Field(10.0, gt=0, description="Timeout for sitemap/robots requests.")
    max_redirects: int = Field(5, ge=0, description="Redirects followed per request.")
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1, description="User-Agent header.")

    sitemap_max_depth: int = Field(2, ge=0, description="Sitemap-index recursion bound.")
    sitemap_max_urls: int = Field(500, ge=1, description="Leaf cap for sitemap expansion.")
    sitemap_max_children: int = Field(5, ge=1, description="Child sitemaps expanded per index.")

    extraction_mode: ExtractionMode = Field(
        "sections", description="Heading-partitioned sections or exact document order."
    )
    sink_timeout: float = Field(10.0, gt=0, description="Bound on a single persistence call.")

    @field_validator("base_url", mode="before")
    def _strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def seed_url(self) -> str:
        return str(self.base_url)

    @property
    def effective_timeout(self) -> float:
        """Longer timeout when content analysis features are active."""
        if self.deep_analysis and self.use_ai:
            return self.analysis_timeout
        return self.timeout

    def with_overrides(self, **overrides: Any) -> AnalysisConfig:
        """Return a validated copy with *overrides* applied."""
        data = self.model_dump(mode="json")
        data.update(overrides)
        return AnalysisConfig.model_validate(data)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> AnalysisConfig:
    """
    Читает YAML или JSON и возвращает проверенный AnalysisConfig.
    При отсутствии файла бросает FileNotFoundError.
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(DEFAULT_CONFIG_PATH))
        path_obj = DEFAULT_CONFIG_PATH
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Unsupported config format: {suffix}")

    return AnalysisConfig(**data)


def config_from_url(url: str, **overrides: Any) -> AnalysisConfig:
    """Build a config for a single seed URL; an invalid URL raises ValidationError."""
    return AnalysisConfig(base_url=url, **overrides)
