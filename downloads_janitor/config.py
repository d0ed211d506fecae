"""
Configuration loading for the Downloads Janitor.

Reads ``rules.json`` and produces a validated watch folder plus an ordered
list of extension rules. Supports placeholder tokens (``{{user}}`` and a
``placeholders`` map), a built-in default rule set, custom rules and the
legacy ``rules`` section.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .utils import print_info, print_warning

CONFIG_ENV_VAR = "DOWNLOADS_JANITOR_CONFIG"
DEFAULT_CONFIG_RELPATH = Path("config") / "rules.json"

# Subfolder name -> extensions, anchored at the watch folder
BUILT_IN_DEFAULT_RULES = [
    ("Installers", [".exe", ".msi"]),
    ("Archives", [".zip", ".rar", ".7z"]),
    ("Images", [".jpg", ".jpeg", ".png", ".gif", ".webp"]),
    ("PDFs", [".pdf"]),
    ("Notes", [".txt", ".md"]),
    ("Audio", [".mp3", ".wav", ".flac"]),
    ("Videos", [".mp4", ".mkv", ".mov"]),
]


class ConfigError(ValueError):
    """Raised when the configuration cannot be loaded or is invalid."""


@dataclass
class Rule:
    """
    Ties a list of extensions to the destination directory that receives them.

    Extensions are kept as written; the extension index normalizes them.
    """
    extensions: list[str]
    destination: str

    @classmethod
    def from_dict(cls, data: Any, section: str, placeholders: dict[str, str] | None = None) -> "Rule":
        """
        Create a Rule from one entry of a rules array.

        Args:
            data: The decoded JSON entry.
            section: Name of the section being parsed, for error messages.
            placeholders: Placeholder map applied to the destination.

        Raises:
            ConfigError: If the entry is malformed.
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Invalid rule entry in `{section}`: expected an object.")

        if "extensions" not in data:
            raise ConfigError(f"Invalid rule in `{section}`: missing `extensions` field.")

        extensions = data["extensions"]
        if not isinstance(extensions, list):
            raise ConfigError(f"Invalid rule in `{section}`: `extensions` must be an array.")
        if not all(isinstance(ext, str) for ext in extensions):
            raise ConfigError(f"Invalid rule in `{section}`: each extension must be a string.")
        if not extensions:
            raise ConfigError(f"Invalid rule in `{section}`: at least one extension is required.")

        destination = data.get("destination")
        if not isinstance(destination, str):
            raise ConfigError(f"Invalid rule in `{section}`: missing or invalid `destination`.")

        destination = apply_placeholders(destination, placeholders or {})
        if not destination:
            raise ConfigError(f"Invalid rule in `{section}`: destination cannot be empty.")

        return cls(extensions=list(extensions), destination=destination)


@dataclass
class JanitorConfig:
    """Loaded configuration: the folder to watch and its rules."""
    watch_folder: Path
    rules: list[Rule] = field(default_factory=list)
    source: Path | None = None


def default_config_path() -> Path:
    """
    Locate rules.json.

    Honors $DOWNLOADS_JANITOR_CONFIG (a .env file in the working directory is
    loaded first), falling back to config/rules.json under the current
    directory.
    """
    load_dotenv()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return Path.cwd() / DEFAULT_CONFIG_RELPATH


def load_placeholders(data: dict) -> dict[str, str]:
    """Collect placeholder tokens from the legacy `user` key and the `placeholders` map."""
    placeholders: dict[str, str] = {}

    def add(key: str, value: Any):
        if not isinstance(value, str):
            print_warning(f"Placeholder `{key}` must be a string.")
            return
        placeholders[key] = value

    if "user" in data:
        add("user", data["user"])

    if "placeholders" in data:
        mapping = data["placeholders"]
        if not isinstance(mapping, dict):
            print_warning("`placeholders` must be an object of key/value strings.")
        else:
            for key, value in mapping.items():
                add(key, value)

    return placeholders


def apply_placeholders(value: str, placeholders: dict[str, str]) -> str:
    """Replace every {{key}} token in value; warn when tokens remain unresolved."""
    result = value
    for key, replacement in placeholders.items():
        result = result.replace("{{" + key + "}}", replacement)

    if "{{" in result:
        print_warning(f"Unresolved placeholder detected in value `{result}`.")

    return result


def built_in_default_rules(watch_folder: Path | None) -> list[Rule]:
    """Curated rule set used when `use_default_rules` is on and no `default_rules` section exists."""
    rules = []
    for subfolder, extensions in BUILT_IN_DEFAULT_RULES:
        destination = str(watch_folder / subfolder) if watch_folder else subfolder
        rules.append(Rule(extensions=list(extensions), destination=destination))
    return rules


def parse_rule_array(rules_data: Any, section: str, placeholders: dict[str, str]) -> list[Rule]:
    """
    Parse and validate a JSON array of rule objects.

    Raises:
        ConfigError: If the section is not an array or any entry is invalid.
    """
    if not isinstance(rules_data, list):
        raise ConfigError(f"Invalid configuration: `{section}` must be an array.")
    return [Rule.from_dict(entry, section, placeholders) for entry in rules_data]


def parse_config(data: Any, source: Path | None = None) -> JanitorConfig:
    """
    Build a JanitorConfig from decoded rules.json data.

    Args:
        data: The decoded JSON document.
        source: File the data came from (informational).

    Returns:
        The parsed configuration. The watch folder is not checked for
        existence here; see validate_watch_folder().

    Raises:
        ConfigError: On missing or invalid fields.
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a JSON object.")

    placeholders = load_placeholders(data)

    raw_watch = data.get("watch_folder")
    if not isinstance(raw_watch, str):
        raise ConfigError("Missing or invalid `watch_folder`.")
    watch_str = apply_placeholders(raw_watch, placeholders)
    if not watch_str.strip():
        raise ConfigError("`watch_folder` cannot be empty.")
    watch_folder = Path(watch_str).expanduser()

    use_default_rules = data.get("use_default_rules", False)
    if not isinstance(use_default_rules, bool):
        raise ConfigError("`use_default_rules` must be a boolean value.")

    rules: list[Rule] = []

    if use_default_rules:
        if "default_rules" in data:
            defaults = parse_rule_array(data["default_rules"], "default_rules", placeholders)
            if not defaults:
                print_info("`default_rules` is empty; no default rules applied from file.")
            rules.extend(defaults)
        else:
            defaults = built_in_default_rules(watch_folder)
            rules.extend(defaults)
            print_info(f"Using built-in default rules ({len(defaults)} rule(s)).")

    if "custom_rules" in data:
        rules.extend(parse_rule_array(data["custom_rules"], "custom_rules", placeholders))
    elif not use_default_rules and "rules" in data:
        print_warning("The configuration uses the legacy `rules` section; "
                      "please migrate to `custom_rules` when convenient.")
        rules.extend(parse_rule_array(data["rules"], "rules", placeholders))
    elif not use_default_rules:
        print_warning("No rules configured. Enable `use_default_rules` or add entries to `custom_rules`.")

    return JanitorConfig(watch_folder=watch_folder, rules=rules, source=source)


def load_config(path: Path | str) -> JanitorConfig:
    """
    Load and validate rules.json.

    Args:
        path: Path to the configuration file.

    Returns:
        The parsed configuration.

    Raises:
        ConfigError: If the file cannot be read, is not valid JSON, or
            contains invalid rules.
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Failed to open configuration file {path}: {e.strerror or e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Failed to parse configuration file {path}: {e}") from e

    config = parse_config(data, source=path)
    print_info(f"Loaded {len(config.rules)} rule(s) from {path}")
    return config


def validate_watch_folder(watch_folder: Path | str) -> Path:
    """
    Confirm the watch folder exists and is a directory.

    Returns:
        The folder as a Path.

    Raises:
        ConfigError: If the folder is unset, missing or not a directory.
    """
    if not str(watch_folder).strip():
        raise ConfigError("Watch folder has not been configured.")

    folder = Path(watch_folder)
    try:
        if not folder.exists():
            raise ConfigError(f"Watch folder does not exist: {folder}")
        if not folder.is_dir():
            raise ConfigError(f"Watch folder is not a directory: {folder}")
    except OSError as e:
        raise ConfigError(f"Unable to validate watch folder {folder}: {e}") from e

    return folder
