"""Configuration loader for AG Node Installer."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from agnodeinstaller.errors import InstallerError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    KEY_TYPES = {
        "verbose": (bool,),
        "log_file": (str,),
        "env_file": (str,),
        "max_url_attempts": (int,),
        "command_timeout": (int, float),
        "public_ip_url": (str,),
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise InstallerError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise InstallerError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise InstallerError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - set(self.KEY_TYPES))
        if unknown:
            unknown_list = ", ".join(unknown)
            raise InstallerError(f"Unknown configuration keys: {unknown_list}")

        for key, value in parsed.items():
            if value is None:
                continue
            expected = self.KEY_TYPES[key]
            # bool is an int subclass.
            if not isinstance(value, expected) or (bool not in expected and isinstance(value, bool)):
                names = " or ".join(t.__name__ for t in expected)
                raise InstallerError(f"Config key '{key}' must be {names}, got {value!r}.")

        return parsed
