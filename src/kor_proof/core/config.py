# ==============================================================================
# Configuration module for proofreading session settings
# Модуль конфигурации для настроек сессии корректуры
# ==============================================================================
# This file manages the tunable constants of a correction session: page sizes,
# break-point search tolerance, correction filtering and the rewrite strategy.
# It loads settings from a YAML file and allows environment variables to override them.
#
# Этот файл управляет настраиваемыми константами сессии корректуры: размерами
# страниц, допуском поиска точки разрыва, фильтрацией исправлений и стратегией
# сборки текста. Настройки читаются из YAML, переменные окружения их переопределяют.
# ==============================================================================

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ReconstructStrategy = Literal["last_index", "offsets"]


# ==============================================================================
# Main configuration class for a correction session
# Основной класс конфигурации сессии корректуры
# ==============================================================================
class SessionConfig(BaseModel):
    """
    Configuration parameters for a correction session.
    Параметры конфигурации сессии корректуры.
    """

    # Documents up to this many characters (after trimming) are always one page
    # Документы не длиннее этого числа символов (после обрезки) — всегда одна страница
    single_page_threshold: int = Field(default=1000, ge=0)

    # Page size used when no viewport height is known
    # Размер страницы, если высота области просмотра неизвестна
    default_chars_per_page: int = Field(default=800, ge=1)

    # Break points are searched within target ± tolerance
    # Точка разрыва ищется в пределах target ± tolerance
    break_tolerance: int = Field(default=200, ge=0)

    # Viewport metrics for the dynamic page size
    # Метрики области просмотра для динамического размера страницы
    avg_chars_per_line: int = Field(default=75, ge=1)
    line_height: float = Field(default=25.5, gt=0)  # 15px font, 1.7 line spacing

    # Clamp range while the error panel is collapsed / expanded
    # Границы размера, когда панель ошибок свёрнута / развёрнута
    collapsed_min_chars: int = 800
    collapsed_max_chars: int = 1800
    expanded_min_chars: int = 500
    expanded_max_chars: int = 1000

    # Drop meaningless one-character corrections before indexing
    # Отбрасывать бессмысленные однобуквенные исправления до индексации
    filter_single_char_errors: bool = False

    # "last_index" = rightmost re-search per replacement, "offsets" = batched rewrite
    # "last_index" = поиск справа для каждой замены, "offsets" = пакетная перезапись
    reconstruct_strategy: ReconstructStrategy = "last_index"

    # Directory for JSONL session logs (None = no logging to disk)
    # Каталог для JSONL-логов сессий (None = не писать на диск)
    session_log_dir: Optional[str] = None


# ==============================================================================
# Environment variable overrides class
# Класс переопределений через переменные окружения
# ==============================================================================
class EnvSessionOverrides(BaseSettings):
    """
    Allows overriding configuration using environment variables.
    Позволяет переопределять конфигурацию через переменные окружения.

    Example: Set PROOF_DEFAULT_CHARS_PER_PAGE=1200 to change the page size.
    Пример: Установите PROOF_DEFAULT_CHARS_PER_PAGE=1200, чтобы изменить размер страницы.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROOF_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # None = keep the value from YAML / defaults
    # None = оставить значение из YAML / по умолчанию
    single_page_threshold: Optional[int] = None
    default_chars_per_page: Optional[int] = None
    break_tolerance: Optional[int] = None
    avg_chars_per_line: Optional[int] = None
    line_height: Optional[float] = None
    filter_single_char_errors: Optional[bool] = None
    reconstruct_strategy: Optional[ReconstructStrategy] = None
    session_log_dir: Optional[str] = None


# ==============================================================================
# Helper function to find the default configuration file
# Вспомогательная функция для поиска файла конфигурации по умолчанию
# ==============================================================================
def _resolve_default_session_path() -> Path:
    """
    Find configs/session.yaml by searching upward from current file.
    Найти configs/session.yaml, поднимаясь вверх от текущего файла.
    """
    start = Path(__file__).resolve()
    for p in [start] + list(start.parents):
        cand = p / "configs" / "session.yaml"
        if cand.exists():
            return cand

    # Fallback: repository root is three levels above src/kor_proof/core
    # Резервный вариант: корень репозитория на три уровня выше src/kor_proof/core
    try:
        root = Path(__file__).resolve().parents[3]
        return root / "configs" / "session.yaml"
    except IndexError:
        return Path("configs/session.yaml")


DEFAULT_CONFIG_PATH = _resolve_default_session_path()


# ==============================================================================
# Main function to load and merge configuration
# Основная функция для загрузки и объединения конфигурации
# ==============================================================================
def load_session_config(path: Optional[str | Path] = None) -> SessionConfig:
    """
    Load configuration from YAML file and apply environment variable overrides.
    Загрузить конфигурацию из YAML-файла и применить переопределения из окружения.

    Priority / Приоритет (highest to lowest / от высшего к низшему):
        1. Environment variables (PROOF_*) / Переменные окружения (PROOF_*)
        2. YAML file settings / Настройки из YAML-файла
        3. Default values in SessionConfig / Значения по умолчанию в SessionConfig
    """
    file_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH

    # Relative paths are resolved against the nearest parent that has them
    # Относительный путь ищем от ближайшего родителя, где он существует
    if not file_path.is_absolute():
        for p in [Path(__file__).resolve()] + list(Path(__file__).resolve().parents):
            cand = p / file_path
            if cand.exists():
                file_path = cand
                break

    if not file_path.exists():
        logger.debug("[CFG] session.yaml not found at path: %s", file_path)
        data = {}
    else:
        logger.debug("[CFG] session.yaml: %s (exists=True)", file_path)
        with file_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    # Either a `session:` section or a flat mapping
    # Либо секция `session:`, либо плоский словарь
    params = data.get("session", data) if isinstance(data, dict) else {}
    cfg = SessionConfig(**params)

    override_dict = EnvSessionOverrides().model_dump(exclude_none=True)
    if override_dict:
        # Rebuild instead of model_copy so the field constraints apply to env values too
        # Пересоздаём модель, чтобы ограничения полей проверялись и для значений из окружения
        cfg = SessionConfig(**{**cfg.model_dump(), **override_dict})

    return cfg
