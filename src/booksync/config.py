from __future__ import annotations

from dataclasses import dataclass, field
import getpass
from pathlib import Path
from typing import Any, Callable, Iterable

import json
import yaml

from booksync.channels import DEFAULT_CHANNEL_BOUND


@dataclass(frozen=True, slots=True)
class SourceConfig:
    path: Path
    extensions: tuple[str, ...] | None = None


def lookup_default_kobo_directory() -> Path:
    return Path("/media") / getpass.getuser() / "KOBOeReader"


def lookup_default_kindle_directory() -> Path:
    return Path("/Volumes") / "Kindle" / "documents" / "PDFs"


def lookup_default_workstation_kindle_directory() -> Path:
    return Path("/media") / getpass.getuser() / "Kindle" / "documents" / "PDFs"


def lookup_default_apple_books_directory() -> Path:
    return Path.home() / "Library" / "Mobile Documents" / "iCloud~com~apple~iBooks" / "Documents"


def lookup_default_documents_directories() -> list[SourceConfig]:
    return [SourceConfig(Path.home() / "Documents")]


def lookup_default_mac_kindle_sources() -> list[SourceConfig]:
    # Apple Books cannot read mobi files, so only its PDFs go to the Kindle.
    return [
        SourceConfig(lookup_default_apple_books_directory(), extensions=("pdf",)),
        SourceConfig(Path.home() / "Documents", extensions=("mobi",)),
        SourceConfig(Path.home() / "Desktop", extensions=("mobi",)),
    ]


@dataclass(frozen=True, slots=True)
class DeviceProfile:
    name: str
    extensions: tuple[str, ...]
    default_destination: Callable[[], Path]
    default_sources: Callable[[], list[SourceConfig]] = lookup_default_documents_directories


PROFILES: dict[str, DeviceProfile] = {
    "kobo": DeviceProfile(
        name="kobo",
        extensions=("epub", "pdf"),
        default_destination=lookup_default_kobo_directory,
    ),
    "kindle": DeviceProfile(
        name="kindle",
        extensions=("pdf", "mobi"),
        default_destination=lookup_default_kindle_directory,
        default_sources=lookup_default_mac_kindle_sources,
    ),
    "kindle-workstation": DeviceProfile(
        name="kindle-workstation",
        extensions=("mobi", "pdf"),
        default_destination=lookup_default_workstation_kindle_directory,
    ),
}

DEFAULT_PROFILE = "kobo"


@dataclass(slots=True)
class SyncConfig:
    destination: Path
    sources: list[Path]
    extensions: list[str]
    profile: str = DEFAULT_PROFILE
    dry_run: bool = False
    channel_bound: int = DEFAULT_CHANNEL_BOUND
    source_extensions: dict[Path, list[str]] = field(default_factory=dict)


@dataclass(slots=True)
class ConfigOverrides:
    profile: str | None = None
    destination: Path | None = None
    sources: list[SourceConfig] | None = None
    extensions: list[str] | None = None
    dry_run: bool | None = None
    channel_bound: int | None = None
    unknown_keys: list[str] = field(default_factory=list)


def _as_path(value: Any, field_name: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string path")
    return Path(value).expanduser()


def _as_optional_bool(value: Any, field_name: str) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    raise ValueError(f"{field_name} must be a boolean")


def _as_optional_list_of_strings(value: Any, field_name: str) -> list[str] | None:
    if value is None:
        return None
    if not isinstance(value, list) or any(not isinstance(item, str) for item in value):
        raise ValueError(f"{field_name} must be a list of strings")
    return [item for item in value if item.strip()]


def _as_optional_positive_int(value: Any, field_name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{field_name} must be a positive integer")
    return value


def normalize_extension(extension: str) -> str:
    return extension.strip().lstrip(".")


def _load_raw_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise ValueError(f"Config file does not exist: {config_path}")

    suffix = config_path.suffix.lower()
    text = config_path.read_text(encoding="utf-8")
    if suffix in {".yml", ".yaml"}:
        loaded = yaml.safe_load(text)
    elif suffix == ".json":
        loaded = json.loads(text)
    else:
        raise ValueError("Config file must be .yaml/.yml or .json")

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError("Config root must be an object")
    return loaded


KNOWN_KEYS = {"profile", "destination", "sources", "extensions", "dryRun", "channelBound"}


def normalize_extensions(extensions: Iterable[str]) -> list[str]:
    normalized: list[str] = []
    for extension in extensions:
        cleaned = normalize_extension(extension)
        if cleaned and cleaned not in normalized:
            normalized.append(cleaned)
    return normalized


def _as_extensions(value: Any, field_name: str) -> list[str] | None:
    extensions = _as_optional_list_of_strings(value, field_name)
    if extensions is None:
        return None
    normalized = normalize_extensions(extensions)
    if not normalized:
        raise ValueError(f"{field_name} must contain at least one extension")
    return normalized


def _as_source(value: Any, field_name: str) -> SourceConfig:
    if isinstance(value, dict):
        extensions = _as_extensions(value.get("extensions"), f"{field_name}.extensions")
        return SourceConfig(
            path=_as_path(value.get("path"), f"{field_name}.path"),
            extensions=tuple(extensions) if extensions is not None else None,
        )
    return SourceConfig(path=_as_path(value, field_name))


def load_config(config_path: Path) -> ConfigOverrides:
    raw = _load_raw_config(config_path)

    profile = raw.get("profile")
    if profile is not None and profile not in PROFILES:
        raise ValueError(f"profile must be one of: {', '.join(sorted(PROFILES))}")

    raw_destination = raw.get("destination")
    destination = _as_path(raw_destination, "destination") if raw_destination is not None else None

    raw_sources = raw.get("sources")
    sources: list[SourceConfig] | None = None
    if raw_sources is not None:
        if not isinstance(raw_sources, list) or not raw_sources:
            raise ValueError("sources must be a non-empty list")
        sources = [_as_source(item, f"sources[{index}]") for index, item in enumerate(raw_sources)]

    return ConfigOverrides(
        profile=profile,
        destination=destination,
        sources=sources,
        extensions=_as_extensions(raw.get("extensions"), "extensions"),
        dry_run=_as_optional_bool(raw.get("dryRun"), "dryRun"),
        channel_bound=_as_optional_positive_int(raw.get("channelBound"), "channelBound"),
        unknown_keys=sorted(key for key in raw if key not in KNOWN_KEYS),
    )


def resolve_config(
    config_path: Path | None = None,
    profile: str | None = None,
    destination: Path | None = None,
    sources: list[Path] | None = None,
    extensions: list[str] | None = None,
    dry_run: bool = False,
    overrides: ConfigOverrides | None = None,
) -> SyncConfig:
    """Combine command line values, the config file and the profile defaults.

    Explicit arguments win over the config file, which wins over the profile. An already
    loaded ``overrides`` is used instead of reading ``config_path`` again. Sources given on
    the command line use the run-wide extensions.
    """
    if overrides is not None:
        file_values = overrides
    elif config_path is not None:
        file_values = load_config(config_path)
    else:
        file_values = ConfigOverrides()

    profile_name = profile or file_values.profile or DEFAULT_PROFILE
    if profile_name not in PROFILES:
        raise ValueError(f"Unknown profile '{profile_name}'")
    device = PROFILES[profile_name]

    if sources:
        source_configs = [SourceConfig(path) for path in sources]
    else:
        source_configs = list(file_values.sources or device.default_sources())

    return SyncConfig(
        destination=destination or file_values.destination or device.default_destination(),
        sources=[source.path for source in source_configs],
        extensions=normalize_extensions(extensions or file_values.extensions or device.extensions),
        profile=profile_name,
        dry_run=dry_run or bool(file_values.dry_run),
        channel_bound=file_values.channel_bound or DEFAULT_CHANNEL_BOUND,
        source_extensions={
            source.path: list(source.extensions)
            for source in source_configs
            if source.extensions is not None
        },
    )


def _is_accessible_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def validate_directories(config: SyncConfig) -> None:
    if not _is_accessible_dir(config.destination):
        raise ValueError(f"The destination directory at {config.destination} is not accessible")
    for directory in config.sources:
        if not _is_accessible_dir(directory):
            raise ValueError(f"The documents directory at {directory} is not accessible")
