from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from emebridge.static.color import Color
from emebridge.static.route import Route
from emebridge.static.version import __version__
from emebridge.unit.handle.handle_log import set_level, setup_logging

logger = setup_logging("load_yaml_config", "sage")


YAML_PATH: Path = Route().YAML_path

DEFAULT_UA = f"emebridge/{__version__}"
DEFAULT_ROBUSTNESS: list[str] = [
    "HW_SECURE_ALL",
    "HW_SECURE_CRYPTO",
    "HW_SECURE_DECODE",
    "SW_SECURE_DECODE",
    "SW_SECURE_CRYPTO",
    "",
]


class ConfigLoader:
    @classmethod
    @lru_cache(maxsize=1)
    def load(cls, path: Path = YAML_PATH) -> dict:
        """Read, validate and cache the configuration file."""
        config = cls._read(Path(path))
        try:
            cls.check_cfg(config)
        except (TypeError, ValueError) as e:
            logger.error(f"{Color.fg('ruby')}Failed to load config {path}: {e}{Color.reset()}")
            raise
        set_level(config["logging"]["level"])
        return config

    @staticmethod
    def _read(path: Path) -> dict:
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            data = YAML(typ="safe").load(path.read_text(encoding="utf-8"))
        except YAMLError as e:
            raise ValueError(f"Failed to parse YAML: {e}") from e
        if not isinstance(data, dict):
            raise TypeError(f"Config root must be a mapping, got {type(data).__name__}")
        return data

    @staticmethod
    def print_warning(invaild_message: str, invaild_value: Any, correct_message: Any) -> None:
        logger.warning(
            f"Unsupported value {Color.bg('ruby')}{invaild_message}{Color.reset()}"
            f"{Color.fg('gold')} in config: "
            f"{Color.fg('ruby')}{invaild_value!r} {Color.reset()}"
            f"{Color.fg('gold')} using "
            f"{Color.fg('red')}{correct_message!r} {Color.reset()}"
            f"{Color.fg('gold')}instead{Color.reset()}"
        )

    @staticmethod
    def _section(config: dict, name: str) -> dict:
        section = config.get(name)
        if section is None:
            section = {}
        if not isinstance(section, dict):
            raise TypeError(f"{name} must be a dict")
        config[name] = section
        return section

    # keysystem
    @staticmethod
    def _check_keysystem(config: dict) -> None:
        ks = ConfigLoader._section(config, "keysystem")
        if not isinstance(ks.get("substitute", True), bool):
            raise TypeError("keysystem.substitute must be boolean")
        ks.setdefault("substitute", True)
        for key, default_val in (("unsupported_token", "playready"), ("supported", "com.widevine.alpha")):
            val = ks.get(key)
            if not isinstance(val, str) or not val:
                ConfigLoader.print_warning(f"keysystem.{key}", val, default_val)
                ks[key] = default_val

    # negotiation
    @staticmethod
    def _check_negotiation(config: dict) -> None:
        neg = ConfigLoader._section(config, "negotiation")
        if not isinstance(neg.get("enabled", True), bool):
            raise TypeError("negotiation.enabled must be boolean")
        neg.setdefault("enabled", True)
        levels = neg.get("robustness")
        if levels is None:
            ConfigLoader.print_warning("negotiation.robustness", levels, DEFAULT_ROBUSTNESS)
            neg["robustness"] = list(DEFAULT_ROBUSTNESS)
        elif not isinstance(levels, list) or not all(isinstance(level, str) for level in levels):
            raise TypeError("negotiation.robustness must be a list of strings")
        elif len(set(levels)) != len(levels):
            raise ValueError(f"negotiation.robustness contains duplicates: {levels}")
        defaults = {
            "default_video_content_type": 'video/mp4; codecs="avc1.42E01E"',
            "default_audio_content_type": 'audio/mp4; codecs="mp4a.40.2"',
        }
        for key, default_val in defaults.items():
            val = neg.get(key)
            if not isinstance(val, str) or not val:
                ConfigLoader.print_warning(f"negotiation.{key}", val, default_val)
                neg[key] = default_val
        init_types = neg.get("default_init_data_types")
        if not isinstance(init_types, list) or not init_types:
            ConfigLoader.print_warning("negotiation.default_init_data_types", init_types, ["cenc", "webm"])
            neg["default_init_data_types"] = ["cenc", "webm"]

    # intercept
    @staticmethod
    def _check_intercept(config: dict) -> None:
        ic = ConfigLoader._section(config, "intercept")
        if not isinstance(ic.get("enabled", True), bool):
            raise TypeError("intercept.enabled must be boolean")
        ic.setdefault("enabled", True)
        rewrite = ic.setdefault("rewrite", [])
        if not isinstance(rewrite, list):
            raise TypeError("intercept.rewrite must be a list")
        for idx, rule in enumerate(rewrite):
            if not isinstance(rule, dict):
                raise TypeError(f"intercept.rewrite[{idx}] must be a dict")
            for key in ("path", "query_param"):
                if not isinstance(rule.get(key), str) or not rule[key]:
                    raise ValueError(f"intercept.rewrite[{idx}].{key} must be a non-empty string")
        fallback = ic.setdefault("fallback", [])
        if not isinstance(fallback, list):
            raise TypeError("intercept.fallback must be a list")
        for idx, rule in enumerate(fallback):
            if not isinstance(rule, dict):
                raise TypeError(f"intercept.fallback[{idx}] must be a dict")
            for key in ("path_segment", "replacement"):
                if not isinstance(rule.get(key), str) or not rule[key]:
                    raise ValueError(f"intercept.fallback[{idx}].{key} must be a non-empty string")
            status = rule.get("trigger_status")
            if status is None:
                ConfigLoader.print_warning(f"intercept.fallback[{idx}].trigger_status", status, 404)
                rule["trigger_status"] = 404
            elif isinstance(status, bool) or not isinstance(status, int) or not 100 <= status <= 599:
                raise ValueError(f"intercept.fallback[{idx}].trigger_status must be an HTTP status code")

    # http
    @staticmethod
    def _check_http(config: dict) -> None:
        http = ConfigLoader._section(config, "http")
        timeout = http.get("timeout")
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            ConfigLoader.print_warning("http.timeout", timeout, 13.0)
            http["timeout"] = 13.0
        ua = http.get("user_agent")
        if not isinstance(ua, str) or not ua:
            ConfigLoader.print_warning("http.user_agent", ua, DEFAULT_UA)
            ua = DEFAULT_UA
        http["user_agent"] = ua.replace("{version}", __version__)

    # device
    @staticmethod
    def _check_device(config: dict) -> None:
        dev = ConfigLoader._section(config, "device")
        defaults = {
            "model_name": "Vidaa-Emu",
            "platform": "vidaajs",
            "sdk_version": "1.0.0",
            "device_id": "vidaademo-0001",
            "country": "US",
            "locale": "en-US",
            "user_agent_suffix": "Web0S/1.0",
        }
        for key, default_val in defaults.items():
            val = dev.get(key)
            if not isinstance(val, str) or not val:
                dev[key] = default_val
        delay = dev.get("service_delay")
        if isinstance(delay, bool) or not isinstance(delay, (int, float)) or delay < 0:
            dev["service_delay"] = 0.005

    # logging
    @staticmethod
    def _check_logging(config: dict) -> None:
        log = ConfigLoader._section(config, "logging")
        level = log.get("level")
        if not isinstance(level, str) or level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            ConfigLoader.print_warning("logging.level", level, "INFO")
            log["level"] = "INFO"

    @staticmethod
    def check_cfg(config: dict) -> None:
        ConfigLoader._check_keysystem(config)
        ConfigLoader._check_negotiation(config)
        ConfigLoader._check_intercept(config)
        ConfigLoader._check_http(config)
        ConfigLoader._check_device(config)
        ConfigLoader._check_logging(config)


CFG: dict = ConfigLoader.load()
