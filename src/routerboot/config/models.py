# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/config/models.py

from typing import Dict, Optional, Union
from pydantic import BaseModel, Field, field_validator


class BootstrapProfile(BaseModel):
    """
    Reusable bootstrap settings loaded from YAML. Command line flags win
    over anything set here.
    """

    # Metadata server to bootstrap from, e.g. mysql://root@db-1:3306
    server: Optional[str] = None
    server_password: Optional[str] = None       # usually injected from secrets.yaml
    connect_timeout: int = 5

    # Target: directory deployment when set, system deployment otherwise
    directory: Optional[str] = None
    conf_file: Optional[str] = None
    keyring_path: Optional[str] = None
    master_key_path: Optional[str] = None
    router_executable: Optional[str] = None

    # Generic option map handed to the generator (name, base-port, use-sockets, ...)
    options: Dict[str, Union[bool, int, str]] = Field(default_factory=dict)

    @field_validator("options", mode="before")
    @classmethod
    def _normalize_keys(cls, v):
        # YAML authors tend to write base_port; the generator speaks base-port
        if not v:
            return {}
        return {str(k).replace("_", "-"): val for k, val in dict(v).items()}

    def option_map(self) -> Dict[str, str]:
        """Options as the string map the generator consumes; false flags dropped."""
        out: Dict[str, str] = {}
        for key, value in self.options.items():
            if value is False:
                continue
            out[key] = "" if value is True else str(value)
        return out
