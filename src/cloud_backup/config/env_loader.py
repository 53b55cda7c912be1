"""Environment loader with optional .env support.

Values are merged in a fixed order, later sources winning:
1) .env file (if present)
2) OS environment variables
3) Explicit overrides
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional

from dotenv import dotenv_values


class EnvLoader:
    """Load environment-style key/value pairs with .env support."""

    def __init__(self, env_file: Optional[Path | str] = None) -> None:
        self.env_file = Path(env_file) if env_file else None

    def load(self, overrides: Optional[Mapping[str, str]] = None) -> MutableMapping[str, str]:
        data: MutableMapping[str, str] = {}

        env_path = self.env_file or Path.cwd() / ".env"
        if env_path.exists():
            file_values = dotenv_values(env_path)
            data.update({k: v for k, v in file_values.items() if v is not None})

        data.update(os.environ)

        if overrides:
            data.update({k: str(v) for k, v in overrides.items()})

        return data

    def load_prefixed(
        self, prefix: str, overrides: Optional[Mapping[str, str]] = None
    ) -> Dict[str, str]:
        """Return only the keys starting with ``{prefix}_``, prefix stripped and lower-cased.

        Example:
            CLOUD_BACKUP_MAX_RETRIES=5 -> {"max_retries": "5"}
        """
        marker = f"{prefix.rstrip('_')}_"
        return {
            key[len(marker):].lower(): value
            for key, value in self.load(overrides).items()
            if key.startswith(marker)
        }


__all__ = ["EnvLoader"]
