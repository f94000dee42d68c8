"""Server configuration: defaults, command-line flags, config file and environment."""

from __future__ import annotations

import argparse
import copy
import json
import logging
import os
import pprint
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

log = logging.getLogger("livemux")

_MISSING = object()

_FLAGS: tuple[tuple[str, type, Any, str], ...] = (
    ("rtmp_addr", str, ":1935", "RTMP server listen address"),
    ("enable_rtmps", bool, False, "enable server session RTMPS"),
    ("rtmps_cert", str, "server.crt", "cert file path required for RTMPS"),
    ("rtmps_key", str, "server.key", "key file path required for RTMPS"),
    ("httpflv_addr", str, ":7001", "HTTP-FLV server listen address"),
    ("hls_addr", str, ":7002", "HLS server listen address"),
    ("api_addr", str, ":8090", "HTTP manage interface server listen address"),
    ("config_file", str, "livego.yaml", "configure filename"),
    ("level", str, "info", "Log level"),
    ("hls_keep_after_end", bool, False, "Maintains the HLS after the stream ends"),
    ("flv_dir", str, "tmp", "output flv file at flvDir/APP/KEY_TIME.flv"),
    ("read_timeout", int, 10, "read time out"),
    ("write_timeout", int, 10, "write time out"),
    ("gop_num", int, 1, "gop num"),
    (
        "enable_tls_verify",
        bool,
        True,
        "Use system root CA to verify RTMPS connection, set this flag to false on Windows",
    ),
)

_FLAG_TYPES = {name: kind for name, kind, _, _ in _FLAGS}

_LEVELS = {
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _to_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        if value == "" or value in _FALSE:
            return False
        if value in _TRUE:
            return True
    raise ValueError(f"cannot parse {value!r} as bool")


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, (bool, int)):
        return int(value)
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        if value == "":
            return 0
        try:
            return int(value, 0)
        except ValueError:
            raise ValueError(f"cannot parse {value!r} as int") from None
    raise ValueError(f"cannot parse {value!r} as int")


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    raise ValueError(f"cannot convert {value!r} to string")


_CASTS = {bool: _to_bool, int: _to_int, str: _to_str}


def _to_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [_to_str(item) for item in value]
    raise ValueError(f"cannot convert {value!r} to a list of strings")


def _lower_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key).lower(): _lower_keys(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_lower_keys(item) for item in value]
    return value


def _deep_merge(target: dict, source: Mapping) -> None:
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


def _lookup(mapping: Mapping, key: str) -> Any:
    node: Any = mapping
    for part in key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return _MISSING
        node = node[part]
    return node


@dataclass
class Application:
    """One application served under an app name."""

    appname: str = ""
    live: bool = False
    hls: bool = False
    flv: bool = False
    api: bool = False
    static_push: list = field(default_factory=list)


@dataclass
class JWT:
    """Token settings for the management interface."""

    secret: str = ""
    algorithm: str = ""


@dataclass
class ServerConfig:
    """The complete, typed server configuration."""

    level: str = ""
    config_file: str = ""
    flv_archive: bool = False
    flv_dir: str = ""
    rtmp_noauth: bool = False
    rtmp_addr: str = ""
    httpflv_addr: str = ""
    hls_addr: str = ""
    hls_keep_after_end: bool = False
    api_addr: str = ""
    redis_addr: str = ""
    redis_pwd: str = ""
    read_timeout: int = 0
    write_timeout: int = 0
    enable_tls_verify: bool = False
    gop_num: int = 0
    jwt: JWT = field(default_factory=JWT)
    server: list = field(default_factory=list)


def _application_from(item: Any) -> Application:
    if not isinstance(item, Mapping):
        raise ValueError(f"invalid application entry: {item!r}")
    return Application(
        appname=_to_str(item.get("appname")),
        live=_to_bool(item.get("live")),
        hls=_to_bool(item.get("hls")),
        flv=_to_bool(item.get("flv")),
        api=_to_bool(item.get("api")),
        static_push=_to_str_list(item.get("static_push")),
    )


def default_settings() -> dict:
    """Return the built-in settings used when no config file is read."""
    return {
        "config_file": "livego.yaml",
        "flv_archive": False,
        "rtmp_noauth": False,
        "rtmp_addr": ":1935",
        "httpflv_addr": ":7001",
        "hls_addr": ":7002",
        "hls_keep_after_end": False,
        "api_addr": ":8090",
        "redis_addr": "",
        "redis_pwd": "",
        "write_timeout": 10,
        "read_timeout": 10,
        "enable_tls_verify": True,
        "gop_num": 1,
        "jwt": {"secret": "", "algorithm": ""},
        "server": [
            {
                "appname": "live",
                "live": True,
                "hls": True,
                "flv": True,
                "api": True,
                "static_push": None,
            }
        ],
    }


class Config:
    """Layered settings: explicit flags, then environment, then file, then flag defaults.

    Keys are case-insensitive; nested keys are addressed with dots.
    """

    def __init__(
        self,
        settings: Mapping | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        flag_defaults: Mapping | None = None,
        overrides: Mapping | None = None,
    ) -> None:
        self._settings: dict = _lower_keys(dict(settings or {}))
        self._environ: dict = dict(environ or {})
        self._flag_defaults: dict = _lower_keys(dict(flag_defaults or {}))
        self._overrides: dict = _lower_keys(dict(overrides or {}))

    def merge(self, mapping: Mapping) -> None:
        """Deep-merge ``mapping`` into the settings layer."""
        _deep_merge(self._settings, _lower_keys(mapping))

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for ``key`` from the highest layer that sets it."""
        key = key.lower()
        value = _lookup(self._overrides, key)
        if value is not _MISSING:
            return value
        env_name = key.upper().replace(".", "_")
        if env_name in self._environ:
            raw = self._environ[env_name]
            kind = _FLAG_TYPES.get(key) or (type(default) if default is not None else None)
            cast = _CASTS.get(kind)
            return cast(raw) if cast else raw
        for layer in (self._settings, self._flag_defaults):
            value = _lookup(layer, key)
            if value is not _MISSING:
                return value
        return default

    def applications(self) -> list[Application]:
        """Return the configured applications."""
        raw = self.get("server")
        if raw is None:
            return []
        if isinstance(raw, Mapping):
            raw = [raw]
        if not isinstance(raw, (list, tuple)):
            raise ValueError(f"invalid server list: {raw!r}")
        return [_application_from(item) for item in raw]

    def server_config(self) -> ServerConfig:
        """Return all settings as a typed ServerConfig."""
        return ServerConfig(
            level=_to_str(self.get("level")),
            config_file=_to_str(self.get("config_file")),
            flv_archive=_to_bool(self.get("flv_archive")),
            flv_dir=_to_str(self.get("flv_dir")),
            rtmp_noauth=_to_bool(self.get("rtmp_noauth")),
            rtmp_addr=_to_str(self.get("rtmp_addr")),
            httpflv_addr=_to_str(self.get("httpflv_addr")),
            hls_addr=_to_str(self.get("hls_addr")),
            hls_keep_after_end=_to_bool(self.get("hls_keep_after_end")),
            api_addr=_to_str(self.get("api_addr")),
            redis_addr=_to_str(self.get("redis_addr")),
            redis_pwd=_to_str(self.get("redis_pwd")),
            read_timeout=_to_int(self.get("read_timeout")),
            write_timeout=_to_int(self.get("write_timeout")),
            enable_tls_verify=_to_bool(self.get("enable_tls_verify")),
            gop_num=_to_int(self.get("gop_num")),
            jwt=JWT(
                secret=_to_str(self.get("jwt.secret")),
                algorithm=_to_str(self.get("jwt.algorithm")),
            ),
            server=self.applications(),
        )

    def check_app_name(self, appname: str) -> bool:
        """Return whether the first application with ``appname`` is live."""
        for app in self.applications():
            if app.appname == appname:
                return app.live
        return False

    def get_static_push_url_list(self, appname: str) -> list[str] | None:
        """Return the static push URLs of a live application, or None if it has none."""
        for app in self.applications():
            if app.appname == appname and app.live:
                return list(app.static_push) if app.static_push else None
        return None


def _parse_flag_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


def _parse_flags(argv: Sequence[str]) -> dict:
    parser = argparse.ArgumentParser(prog="livemux", allow_abbrev=False)
    for name, kind, default, help_text in _FLAGS:
        if kind is bool:
            parser.add_argument(
                f"--{name}", dest=name, nargs="?", const=True, default=None,
                type=_parse_flag_bool, help=f"{help_text} (default {default})",
            )
        else:
            parser.add_argument(
                f"--{name}", dest=name, type=kind, default=None,
                help=f"{help_text} (default {default})",
            )
    namespace = parser.parse_args(list(argv))
    return {key: value for key, value in vars(namespace).items() if value is not None}


def _read_config_file(path: str) -> dict:
    file_path = Path(path)
    suffix = file_path.suffix.lower()
    if suffix not in (".yaml", ".yml", ".json"):
        raise ValueError(f"Unsupported Config Type {suffix.lstrip('.')!r}")
    text = file_path.read_text(encoding="utf-8")
    data = yaml.safe_load(text) if suffix != ".json" else json.loads(text)
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValueError(f"config file {path} does not hold a mapping")
    return dict(data)


def _init_log(level: Any) -> None:
    mapped = _LEVELS.get(_to_str(level).lower())
    if mapped is not None:
        log.setLevel(mapped)


def load_config(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> Config:
    """Build the configuration from defaults, flags, the config file and the environment."""
    if argv is None:
        argv = sys.argv[1:]
    if environ is None:
        environ = os.environ
    overrides = _parse_flags(argv)
    flag_defaults = {name: default for name, _, default, _ in _FLAGS}
    config = Config(default_settings(), flag_defaults=flag_defaults, overrides=overrides)

    config_file = _to_str(config.get("config_file"))
    try:
        file_settings = _read_config_file(config_file)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        log.warning("%s", exc)
        log.info("Using default config")
    else:
        config = Config(file_settings, flag_defaults=flag_defaults, overrides=overrides)

    config = Config(
        config._settings,
        environ=environ,
        flag_defaults=flag_defaults,
        overrides=overrides,
    )
    _init_log(config.get("level"))
    if log.isEnabledFor(logging.DEBUG):
        log.debug("Current configurations: \n%s", pprint.pformat(config.server_config()))
    return config