"""Layered configuration sources: defaults, TOML file, environment.

Layers are merged in a fixed ascending order::

    defaults  <  TOML file  <  LLDAP_* environment variables

Each layer only contributes the keys it sets; everything else falls
through to the layer below.  The merged data is type-checked against
the bundled JSON schema before the typed draft is built.

Environment variables map onto fields by stripping the prefix and
lower-casing the rest; ``__`` walks into nested tables::

    LLDAP_HTTP_PORT=9090               -> http_port = 9090
    LLDAP_SMTP_OPTIONS__SERVER=mail    -> smtp_options.server = "mail"
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import cache
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator, validators
from jsonschema.exceptions import best_match

from lldap.config.errors import ConfigParseError
from lldap.config.settings import (
    DraftConfiguration,
    Mailbox,
    build_draft,
    default_config_data,
)

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

ENV_PREFIX = "LLDAP_"
ENV_SEPARATOR = "__"

_MAILBOX_FIELDS = ("smtp_options.from", "smtp_options.reply_to")

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Layer:
    """One configuration source.

    ``origins`` maps a dotted field path to a human-readable source
    label; fields without an entry are attributed to ``name``.
    """

    name: str
    data: dict[str, Any]
    origins: dict[str, str] = field(default_factory=dict)

    def origin_of(self, path: str) -> str:
        return self.origins.get(path, self.name)


# ---------------------------------------------------------------------------
# Schema helpers
# ---------------------------------------------------------------------------


@cache
def load_schema() -> dict[str, Any]:
    """Return the bundled configuration JSON schema."""
    return json.loads(_SCHEMA_PATH.read_text(encoding="utf-8"))


def _resolve_ref(schema: dict, node: dict) -> dict:
    ref = node.get("$ref")
    if ref is None:
        return node
    target: Any = schema
    for part in ref.removeprefix("#/").split("/"):
        target = target[part]
    return {**target, **{k: v for k, v in node.items() if k != "$ref"}}


def _is_integer(checker: Any, instance: Any) -> bool:  # noqa: ANN401
    # 8080.0 is not a port.
    return isinstance(instance, int) and not isinstance(instance, bool)


_ConfigValidator = validators.extend(
    Draft202012Validator,
    type_checker=Draft202012Validator.TYPE_CHECKER.redefine("integer", _is_integer),
)


@cache
def field_types() -> dict[str, tuple[str, ...]]:
    """Map every dotted leaf field path to its JSON schema type(s)."""
    schema = load_schema()
    result: dict[str, tuple[str, ...]] = {}

    def walk(properties: dict, prefix: str) -> None:
        for name, raw in properties.items():
            node = _resolve_ref(schema, raw)
            path = f"{prefix}{name}"
            if node.get("type") == "object":
                walk(node.get("properties", {}), f"{path}.")
                continue
            types = node.get("type", "string")
            result[path] = (types,) if isinstance(types, str) else tuple(types)

    walk(schema["properties"], "")
    return result


def _known_tables() -> frozenset[str]:
    return frozenset(p.split(".", 1)[0] for p in field_types() if "." in p)


# ---------------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------------


def defaults_layer() -> Layer:
    return Layer(name="defaults", data=default_config_data())


def load_toml_layer(config_file: str | Path) -> Layer:
    """Parse the TOML file at *config_file*.

    A missing file is an empty layer.  Unknown keys are dropped with a
    warning.
    """
    path = Path(config_file)
    label = f"configuration file {path}"
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except FileNotFoundError:
        log.info("Configuration file %s not found, skipping", path)
        return Layer(name=label, data={})
    except tomllib.TOMLDecodeError as exc:
        msg = f"Malformed TOML: {exc}"
        raise ConfigParseError(msg, source=label) from exc
    except OSError as exc:
        msg = f"Could not read configuration file: {exc.strerror or exc}"
        raise ConfigParseError(msg, source=label) from exc

    return Layer(name=label, data=_drop_unknown_keys(data, label))


def _drop_unknown_keys(data: dict[str, Any], label: str) -> dict[str, Any]:
    known = field_types()
    tables = _known_tables()
    kept: dict[str, Any] = {}
    for key, value in data.items():
        if key in tables and isinstance(value, dict):
            inner = {}
            for sub_key, sub_value in value.items():
                if f"{key}.{sub_key}" in known:
                    inner[sub_key] = sub_value
                else:
                    log.warning("Ignoring unknown key '%s.%s' in %s", key, sub_key, label)
            kept[key] = inner
        elif key in known or key in tables:
            # Wrong-typed tables are kept so the schema reports them.
            kept[key] = value
        else:
            log.warning("Ignoring unknown key '%s' in %s", key, label)
    return kept


def _coerce(raw: str, types: tuple[str, ...]) -> Any:  # noqa: ANN401
    if "integer" in types:
        text = raw.strip()
        if not (text.isascii() and text.lstrip("+-").isdigit()):
            msg = f"expected an integer, got {raw!r}"
            raise ValueError(msg)
        return int(text)
    if "boolean" in types:
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        msg = f"expected a boolean, got {raw!r}"
        raise ValueError(msg)
    return raw


def load_env_layer(
    environ: Mapping[str, str] | None = None,
    prefix: str = ENV_PREFIX,
) -> Layer:
    """Collect ``LLDAP_*`` variables that name a known field."""
    env = os.environ if environ is None else environ
    known = field_types()
    data: dict[str, Any] = {}
    origins: dict[str, str] = {}

    for name in sorted(env):
        if not name.startswith(prefix):
            continue
        parts = name[len(prefix) :].lower().split(ENV_SEPARATOR)
        path = ".".join(parts)
        types = known.get(path)
        if types is None:
            log.debug("Ignoring environment variable %s: no matching field", name)
            continue
        try:
            value = _coerce(env[name], types)
        except ValueError as exc:
            msg = f"Invalid value {env[name]!r}: {exc}"
            raise ConfigParseError(
                msg,
                source=f"environment variable {name}",
                field=path,
            ) from exc

        target = data
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value
        origins[path] = f"environment variable {name}"

    return Layer(name="environment", data=data, origins=origins)


# ---------------------------------------------------------------------------
# Merge & resolve
# ---------------------------------------------------------------------------


def _merge_into(
    base: dict[str, Any],
    overlay: Mapping[str, Any],
    layer: Layer,
    origins: dict[str, str],
    prefix: str = "",
) -> None:
    for key, value in overlay.items():
        path = f"{prefix}{key}"
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _merge_into(base[key], value, layer, origins, f"{path}.")
        else:
            base[key] = value
            origins[path] = layer.origin_of(path)


def merge_layers(*layers: Layer) -> tuple[dict[str, Any], dict[str, str]]:
    """Merge *layers* in order; later layers win per leaf.

    Returns the merged data and a map of dotted field path to the
    source that supplied it.
    """
    merged: dict[str, Any] = {}
    origins: dict[str, str] = {}
    for layer in layers:
        _merge_into(merged, layer.data, layer, origins)
    return merged, origins


def _origin(origins: dict[str, str], path: str) -> str:
    while path:
        if path in origins:
            return origins[path]
        path = path.rpartition(".")[0]
    return "configuration"


def validate(data: dict[str, Any], origins: dict[str, str]) -> None:
    """Type-check merged data against the bundled schema."""
    error = best_match(_ConfigValidator(load_schema()).iter_errors(data))
    if error is None:
        return
    path = ".".join(str(p) for p in error.absolute_path)
    raise ConfigParseError(
        error.message,
        source=_origin(origins, path),
        field=path or None,
    )


def _parse_mailboxes(data: dict[str, Any], origins: dict[str, str]) -> None:
    smtp = data.get("smtp_options") or {}
    for path in _MAILBOX_FIELDS:
        key = path.split(".", 1)[1]
        value = smtp.get(key)
        if value is None:
            continue
        try:
            smtp[key] = Mailbox.parse(value)
        except ValueError as exc:
            raise ConfigParseError(str(exc), source=_origin(origins, path), field=path) from exc


def resolve_layers(
    config_file: str | Path,
    environ: Mapping[str, str] | None = None,
) -> DraftConfiguration:
    """Merge defaults, the TOML file and the environment into a draft.

    Raises
    ------
    ConfigParseError
        If the file is malformed or any value has the wrong type.

    """
    data, origins = merge_layers(
        defaults_layer(),
        load_toml_layer(config_file),
        load_env_layer(environ),
    )
    validate(data, origins)
    _parse_mailboxes(data, origins)
    return build_draft(data)
