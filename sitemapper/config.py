# === FILE: sitemapper/config.py ===
"""
Модуль для загрузки и валидации конфигурации Sitemapper.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    field_validator,
    model_validator,
)

from sitemapper.errors import ConfigError

__all__ = ("OutputFormat", "SitemapConfig", "load_config")


class OutputFormat(str, Enum):
    """Формат итоговой карты сайта."""

    HTML = "html"
    TEXT = "text"
    JS = "js"
    XML = "xml"


class SitemapConfig(BaseModel):
    """Конфигурация для одного запуска построения карты сайта."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    root_url: HttpUrl = Field(..., description="Корневой URL сайта.")
    max_depth: Optional[int] = Field(None, ge=0, description="Максимальная глубина обхода (None = без ограничения).")
    max_pages: Optional[int] = Field(None, ge=1, description="Жесткий лимит по числу загружаемых страниц.")
    summary_length: int = Field(200, ge=0, description="Длина аннотации страницы (символов).")
    timeout: float = Field(10.0, gt=0, description="Таймаут на один запрос (секунд).")
    deadline: Optional[float] = Field(None, gt=0, description="Общий лимит времени обхода (секунд).")
    concurrency: int = Field(4, ge=1, description="Число одновременных запросов.")
    delay: float = Field(0.0, ge=0, description="Пауза между запросами к одному хосту (секунд).")
    retry_times: int = Field(2, ge=0, description="Число повторных попыток при сетевых ошибках и 5xx.")
    retry_backoff: float = Field(1.0, ge=0, description="Базовая задержка экспоненциального backoff (секунд).")
    user_agent: str = Field("Sitemapper/1.0", min_length=1, description="Заголовок User-Agent.")
    email: Optional[str] = Field(None, description="Контактный адрес для заголовка From.")
    proxy: Optional[str] = Field(None, description="HTTP-прокси (имеет приоритет над env_proxy).")
    env_proxy: bool = Field(True, description="Брать прокси из переменных окружения http_proxy/https_proxy.")
    username: Optional[str] = Field(None, description="Имя пользователя для HTTP Basic.")
    password: Optional[SecretStr] = Field(None, description="Пароль для HTTP Basic.")
    respect_robots: bool = Field(True, description="Соблюдать robots.txt.")
    output_format: OutputFormat = Field(OutputFormat.HTML, description="Формат вывода.")
    title: Optional[str] = Field(None, description="Заголовок карты сайта.")

    @field_validator("root_url", mode="before")
    def _strip_spaces(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("output_format", mode="before")
    def _lower_format(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("proxy")
    def _check_proxy(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.lower().startswith(("http://", "https://")):
            raise ValueError("proxy must be an http:// or https:// URL")
        return v

    @model_validator(mode="after")
    def _check_credentials(self) -> SitemapConfig:
        if self.password is not None and not self.username:
            raise ValueError("password given without username")
        return self

    @property
    def page_title(self) -> str:
        """Заголовок документа: явный или «Site map for <root>»."""
        return self.title if self.title is not None else f"Site map for {self.root_url}"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(
    path: Union[str, Path, None] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> SitemapConfig:
    """
    Читает YAML или JSON (если задан путь), накладывает overrides
    (значения None пропускаются) и возвращает проверенный SitemapConfig.
    При отсутствии файла конфига бросает FileNotFoundError.
    """
    data: dict[str, Any] = {}
    if path is not None:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

        suffix = path_obj.suffix.lower()
        if suffix in (".yaml", ".yml"):
            data = _read_yaml(path_obj)
        elif suffix == ".json":
            data = _read_json(path_obj)
        else:
            raise ConfigError(f"Неподдерживаемый формат конфига: {suffix}")

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    return SitemapConfig(**data)
