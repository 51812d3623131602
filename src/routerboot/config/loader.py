# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/config/loader.py

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from routerboot.errors import InvalidOptionError
from .models import BootstrapProfile

log = logging.getLogger("routerboot")

SECRETS_ENV = "ROUTERBOOT_SECRETS_FILE"
SECRETS_FILE_NAME = "secrets.yaml"


def _merge_secrets(profile: dict, secrets: dict) -> dict:
    """
    Fold ``secrets`` into ``profile`` in place. Nested mappings (``options``)
    merge key by key; empty secret values never blank out a profile value.
    """
    for key, value in secrets.items():
        current = profile.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _merge_secrets(current, value)
        elif value is not None and value != "":
            profile[key] = value
    return profile


def _secrets_path(profile_path: Path) -> Path | None:
    explicit = os.environ.get(SECRETS_ENV)
    if explicit:
        if Path(explicit).is_file():
            return Path(explicit)
        log.warning("%s=%s does not exist, ignoring it", SECRETS_ENV, explicit)
        return None

    sibling = profile_path.with_name(SECRETS_FILE_NAME)
    return sibling if sibling.is_file() else None


def _read_mapping(path: Path) -> dict:
    """YAML mapping from ``path`` with ${ENV_VAR} placeholders expanded."""
    try:
        text = os.path.expandvars(path.read_text())
        data = yaml.safe_load(text)
    except (OSError, yaml.YAMLError) as exc:
        raise InvalidOptionError(f"Could not read bootstrap profile {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidOptionError(f"Expected a mapping in {path}, got {type(data).__name__}")
    return data


def load_profile(path: str | Path) -> BootstrapProfile:
    """
    Load and validate a bootstrap profile.

    Passwords normally stay out of the profile: put ``server_password`` in a
    ``secrets.yaml`` beside it (or point ``ROUTERBOOT_SECRETS_FILE`` at one),
    or reference an environment variable as ``${VAR}``.
    """
    path = Path(path)
    data = _read_mapping(path)

    secrets_path = _secrets_path(path)
    if secrets_path is not None:
        log.debug("Merging secrets from %s", secrets_path)
        _merge_secrets(data, _read_mapping(secrets_path))

    try:
        return BootstrapProfile.model_validate(data)
    except ValidationError as exc:
        raise InvalidOptionError(f"Invalid bootstrap profile {path}:\n{exc}") from exc
