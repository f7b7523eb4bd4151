from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .vault.formats import DEFAULT_RULES, FormatRule, UnknownFormat, ZettelFormat

CONFIG_FILENAME = "zkgraph.toml"


@dataclass(frozen=True)
class Config:
    formats: tuple[FormatRule, ...] = field(default_factory=lambda: DEFAULT_RULES)
    output_dir: str = "_site"
    workers: int | None = None


def _parse_rule(raw: Any) -> FormatRule:
    if isinstance(raw, dict):
        pattern, tag = raw.get("pattern"), raw.get("format")
    elif isinstance(raw, (list, tuple)) and len(raw) == 2:
        pattern, tag = raw
    else:
        raise ConfigError(f"Format rule must be [pattern, format], got {raw!r}")

    if not isinstance(pattern, str) or not pattern.strip():
        raise ConfigError(f"Format rule has no pattern: {raw!r}")
    if not isinstance(tag, str):
        raise ConfigError(f"Format rule has no format: {raw!r}")
    try:
        return FormatRule(pattern.strip(), ZettelFormat.from_tag(tag))
    except UnknownFormat as e:
        raise ConfigError(str(e)) from e


def parse_config(data: dict[str, Any]) -> Config:
    """
    Build a Config from decoded TOML.

    Unknown keys are ignored; an unknown format tag is fatal.
    """
    raw_formats = data.get("formats")
    if raw_formats is None:
        formats = DEFAULT_RULES
    elif isinstance(raw_formats, list) and raw_formats:
        formats = tuple(_parse_rule(raw) for raw in raw_formats)
    else:
        raise ConfigError("formats must be a non-empty list of [pattern, format] rules")

    output_dir = str(data.get("output_dir", "_site")).strip() or "_site"

    workers = data.get("workers")
    if workers is not None:
        if isinstance(workers, bool) or not isinstance(workers, int) or workers <= 0:
            raise ConfigError("workers must be a positive integer")

    return Config(formats=formats, output_dir=output_dir, workers=workers)


def load_config(notes_dir: Path) -> Config:
    """Load ``zkgraph.toml`` from the notes directory, or defaults if absent."""
    import tomllib

    path = notes_dir / CONFIG_FILENAME
    if not path.exists():
        return Config()

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e
    return parse_config(data)
