# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Client and Server Configuration Loader.

Loads ``ModelRpcClientConfig`` / ``ModelRpcServerConfig`` from YAML files.

File Structure:
    Either a top-level mapping of config fields, or a mapping nested under a
    ``client`` / ``server`` key so one file can configure both sides:

    ```yaml
    client:
      client_id: client-1
      target_id: server-a
      bus: core
      timeout_ms: 500
    server:
      server_id: server-a
      bus: core
      accept_unaddressed: false
    ```

The loader validates:
- File existence and size
- YAML syntax validity
- Structure (must be a mapping)
- Field values, through the pydantic models

Security:
    - Uses yaml.safe_load() to prevent arbitrary code execution
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from envelope_rpc.errors import ModelRpcErrorContext, ProtocolConfigurationError
from envelope_rpc.models import ModelRpcClientConfig, ModelRpcServerConfig

logger = logging.getLogger(__name__)

# Maximum config file size (1 MB)
MAX_CONFIG_SIZE_BYTES = 1024 * 1024

ConfigModelT = TypeVar("ConfigModelT", bound=BaseModel)


def _read_config_mapping(config_path: str | Path, section: str) -> dict[str, object]:
    path = Path(config_path)
    context = ModelRpcErrorContext.with_correlation(
        operation=f"load_{section}_config",
        target_name=str(path),
    )

    if not path.is_file():
        raise ProtocolConfigurationError(f"Config file not found: {config_path}", context=context)

    file_size = path.stat().st_size
    if file_size > MAX_CONFIG_SIZE_BYTES:
        raise ProtocolConfigurationError(
            f"Config file too large: {file_size} bytes (max {MAX_CONFIG_SIZE_BYTES})",
            context=context,
        )

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ProtocolConfigurationError(f"Invalid YAML in config: {e}", context=context) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ProtocolConfigurationError(
            f"Config must be a mapping, got {type(data).__name__}",
            context=context,
        )

    nested = data.get(section)
    if section in data:
        if not isinstance(nested, dict):
            raise ProtocolConfigurationError(
                f"Config section '{section}' must be a mapping, got {type(nested).__name__}",
                context=context,
            )
        data = nested

    return data


def _load_config(
    config_path: str | Path,
    section: str,
    model: type[ConfigModelT],
) -> ConfigModelT:
    data = _read_config_mapping(config_path, section)
    try:
        config = model.model_validate(data)
    except ValidationError as e:
        raise ProtocolConfigurationError(
            f"Invalid {section} config: {e.error_count()} validation error(s)",
            context=ModelRpcErrorContext.with_correlation(
                operation=f"load_{section}_config",
                target_name=str(config_path),
            ),
            errors=[error["msg"] for error in e.errors()],
        ) from e

    logger.debug(
        "Loaded RPC config",
        extra={"section": section, "config_path": str(config_path)},
    )
    return config


def load_client_config(config_path: str | Path) -> ModelRpcClientConfig:
    """Load client configuration from a YAML file.

    Raises:
        ProtocolConfigurationError: If the file is missing, too large, not
            valid YAML, not a mapping, or fails validation.
    """
    return _load_config(config_path, "client", ModelRpcClientConfig)


def load_server_config(config_path: str | Path) -> ModelRpcServerConfig:
    """Load server configuration from a YAML file.

    Raises:
        ProtocolConfigurationError: If the file is missing, too large, not
            valid YAML, not a mapping, or fails validation.
    """
    return _load_config(config_path, "server", ModelRpcServerConfig)


__all__ = [
    "MAX_CONFIG_SIZE_BYTES",
    "load_client_config",
    "load_server_config",
]
