"""core.config
Configuration core: load/save helpers for config.ini.

This module provides a tiny ConfigManager used by the CLI and the facade to
read and persist simple key/value settings. It purposely keeps a small API:
ConfigManager.load(), get(key, fallback), and save().
"""

import os
from configparser import ConfigParser
from pathlib import Path
from typing import Optional

from ..config.vision import RecognitionConfig


class ConfigManager:
    """Simple configuration manager backed by an INI file.

    Behaviour:
    - Uses a single DEFAULT section for lookups.
    - Creates the file with defaults if it does not exist.
    - Defaults to a per-user config path (%APPDATA% on Windows,
      XDG_CONFIG_HOME or ~/.config on other systems) unless an explicit
      path is provided.
    """

    def __init__(self, config_path: Optional[str] = None) -> None:
        if config_path:
            self.config_path = Path(config_path)
        else:
            if os.name == "nt":
                base = Path(os.getenv("APPDATA", Path.home() / "AppData" / "Roaming"))
            else:
                base = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
            self.config_path = base.joinpath("ScreenMatch", "config.ini")

        self.config = ConfigParser()
        self.load()

    def load(self) -> None:
        """Load configuration from disk, creating defaults when needed."""
        if self.config_path.exists():
            self.config.read(self.config_path, encoding="utf-8")

        defaults = {
            "log_level": "INFO",
            "ocr_model_dir": "",
            "tesseract_cmd": "",
        }
        # Recognition options are written blank so users can see what is tunable
        for name in RecognitionConfig.option_names():
            defaults.setdefault(name, "")

        missing = [key for key in defaults if key not in self.config["DEFAULT"]]
        for key in missing:
            self.config["DEFAULT"][key] = defaults[key]

        if missing:
            self.save()

    def get(self, key: str, fallback=None):
        """Get a configuration value.

        Precedence is env (SM_<KEY>, <KEY>) > config.ini > fallback.
        """
        for ek in (f"SM_{str(key).upper()}", str(key).upper()):
            val = os.environ.get(ek)
            if val is not None and str(val) != "":
                return val
        val = self.config["DEFAULT"].get(key, fallback)
        if val == "" and fallback is not None:
            return fallback
        return val

    def recognition_config(self) -> RecognitionConfig:
        return RecognitionConfig.from_config(self)

    def save(self) -> None:
        """Persist current configuration to disk (creates parent directories)."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with self.config_path.open("w", encoding="utf-8") as fh:
            self.config.write(fh)
