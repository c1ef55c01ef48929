"""
Configuration models for hookable objects.

Options are plain pydantic models passed explicitly to ``create`` or
``attach``. Named option sets ("presets") can be kept in a YAML or JSON file
and loaded with :func:`load_presets`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from grappling_hook.errors import ErrorContext, GrapplingHookError


class Qualifiers(BaseModel):
    """Names used for the before/after qualifiers of a hook."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    pre: str = Field(default="pre", min_length=1, description="Qualifier run before")
    post: str = Field(default="post", min_length=1, description="Qualifier run after")

    @model_validator(mode="after")
    def _check_distinct(self) -> Qualifiers:
        if self.pre == self.post:
            raise ValueError("pre and post qualifiers must differ")
        for name in (self.pre, self.post):
            if ":" in name:
                raise ValueError(f"qualifier {name!r} must not contain ':'")
        return self

    def as_tuple(self) -> tuple[str, str]:
        """Return ``(pre, post)``."""
        return (self.pre, self.post)


class HookOptions(BaseModel):
    """Options of a hookable object.

    Attributes:
        strict: Only explicitly allowed hooks accept middleware
        qualifiers: Names of the pre/post qualifiers
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    strict: bool = Field(
        default=True, description="Disallow middleware for undeclared hooks"
    )
    qualifiers: Qualifiers = Field(default_factory=Qualifiers)

    def merged(self, **overrides: Any) -> HookOptions:
        """Return a copy with ``overrides`` applied.

        Qualifier overrides are merged name by name, so overriding only
        ``pre`` keeps the configured ``post``.

        Args:
            **overrides: Option values (``strict``, ``qualifiers``)

        Returns:
            New HookOptions
        """
        data = self.model_dump()
        for key, value in overrides.items():
            if key == "qualifiers" and value is not None:
                if isinstance(value, Qualifiers):
                    value = value.model_dump()
                data["qualifiers"] = {**data["qualifiers"], **dict(value)}
            else:
                data[key] = value
        return HookOptions.model_validate(data)


def resolve_options(
    options: HookOptions | dict[str, Any] | None = None, **overrides: Any
) -> HookOptions:
    """Build options from a preset (model or mapping) and overrides.

    Args:
        options: Base options; defaults apply when omitted
        **overrides: Values layered on top of ``options``

    Returns:
        Validated HookOptions
    """
    if options is None:
        base = HookOptions()
    elif isinstance(options, HookOptions):
        base = options
    else:
        base = HookOptions.model_validate(options)
    return base.merged(**overrides) if overrides else base


def load_presets(path: str | Path) -> dict[str, HookOptions]:
    """Load named option presets from a YAML or JSON file.

    The file holds a mapping of preset name to options, e.g.::

        models:
          strict: false
          qualifiers: {pre: before, post: after}

    Args:
        path: Path to a ``.yaml``/``.yml`` or ``.json`` file

    Returns:
        Mapping of preset name to HookOptions

    Raises:
        GrapplingHookError: If the file is missing or malformed
    """
    path = Path(path)
    if not path.exists():
        raise GrapplingHookError(
            f"Preset file not found: {path}",
            ErrorContext(source="config", details={"path": str(path)}),
        )

    content = path.read_text(encoding="utf-8")
    try:
        data = json.loads(content) if path.suffix == ".json" else yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise GrapplingHookError(
            f"Cannot parse preset file {path}: {e}",
            ErrorContext(source="config", details={"path": str(path)}),
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise GrapplingHookError(
            f"Preset file {path} must contain a mapping of preset names",
            ErrorContext(source="config", details={"path": str(path)}),
        )

    presets: dict[str, HookOptions] = {}
    for name, options in data.items():
        try:
            presets[str(name)] = HookOptions.model_validate(options or {})
        except ValidationError as e:
            raise GrapplingHookError(
                f"Invalid preset {name!r} in {path}",
                ErrorContext(
                    source="config",
                    details={"path": str(path), "errors": e.errors()},
                ),
            ) from e
    return presets
