from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pdf_errors import FieldConfigError
from pdf_models import ExtractField

logger = logging.getLogger(__name__)

_KEY_ALIASES = {
    "name": "name",
    "isfirstpageidentifier": "is_first_page_identifier",
    "is_first_page_identifier": "is_first_page_identifier",
    "isinlinevalue": "is_inline_value",
    "is_inline_value": "is_inline_value",
    "matchvalues": "match_values",
    "match_values": "match_values",
    "x": "x",
    "y": "y",
    "width": "width",
    "height": "height",
}
_NUMERIC_KEYS = ("x", "y", "width", "height")
_BOOL_KEYS = ("is_first_page_identifier", "is_inline_value")


def _as_bool(value: Any, key: str, path: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if text in {"", "0", "false", "f", "no", "n", "off"}:
        return False
    raise FieldConfigError(path, f"{key} must be a boolean, got {value!r}")


def field_from_dict(raw: dict[str, Any], path: str = "<memory>") -> ExtractField:
    """Build a field from one JSON descriptor; unknown keys are ignored."""
    kwargs: dict[str, Any] = {}
    for key, value in raw.items():
        target = _KEY_ALIASES.get(str(key).lower())
        if target is not None:
            kwargs[target] = value

    name = kwargs.get("name")
    if not isinstance(name, str):
        raise FieldConfigError(path, f"Field without a name in {path}: {raw!r}")
    kwargs["name"] = name.strip()

    for key in _NUMERIC_KEYS:
        if kwargs.get(key) is None:
            kwargs.pop(key, None)
            continue
        try:
            kwargs[key] = float(kwargs[key])
        except (TypeError, ValueError) as exc:
            raise FieldConfigError(
                path, f"Field {name!r}: {key} is not a number", cause=exc
            ) from exc

    for key in _BOOL_KEYS:
        if key in kwargs:
            kwargs[key] = _as_bool(kwargs[key], key, path)

    match_values = kwargs.get("match_values")
    kwargs["match_values"] = "" if match_values is None else str(match_values)
    return ExtractField(**kwargs)


def load_fields(path: str | Path) -> list[ExtractField]:
    """Read a field set from a JSON file.

    The file holds either a list of descriptors or an object with a
    ``fields`` list. Several identifier fields are allowed; any of them
    starts a new document.
    """
    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise FieldConfigError(str(path), f"Cannot read field set {path}: {exc}", cause=exc) from exc

    if isinstance(payload, dict):
        payload = payload.get("fields")
    if not isinstance(payload, list):
        raise FieldConfigError(str(path), f"Field set {path} must contain a list of fields")

    fields: list[ExtractField] = []
    for raw in payload:
        if not isinstance(raw, dict):
            raise FieldConfigError(str(path), f"Field descriptor is not an object: {raw!r}")
        fields.append(field_from_dict(raw, str(path)))

    identifiers = [f.name for f in fields if f.is_first_page_identifier]
    if len(identifiers) > 1:
        logger.warning(
            "Several first-page identifier fields (%s); any of them starts a new document",
            ", ".join(identifiers),
        )
    logger.debug("Loaded %d fields from %s", len(fields), path)
    return fields


def field_to_dict(field: ExtractField) -> dict[str, Any]:
    return {
        "name": field.name,
        "isFirstPageIdentifier": field.is_first_page_identifier,
        "isInlineValue": field.is_inline_value,
        "matchValues": field.match_values,
        "x": field.x,
        "y": field.y,
        "width": field.width,
        "height": field.height,
    }
