"""Normalise raw deployment parameters into a ``DeploymentRequest``.

Raw parameters arrive as strings (CLI options, CI inputs) or already-decoded
Python values. The rules applied here are:

* ``None`` or a blank string for an optional parameter means "no change".
* JSON array parameters must decode to a list of objects carrying exactly the
  documented keys. Unknown keys are rejected, never silently dropped.
* Numeric parameters must be integers inside their documented ranges.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ecs_deployer.core.errors import ValidationError
from ecs_deployer.core.models import DeploymentRequest

logger = logging.getLogger(__name__)

REQUIRED_PARAMETERS = ("image", "cluster", "service", "task_family", "container_name")
OPTIONAL_PARAMETERS = ("region", "cpu", "memory", "desired_count")
JSON_ARRAY_PARAMETERS = ("environment_variables", "secrets", "mount_points", "volumes")
AUTOSCALING_PARAMETERS = {
    "enable_autoscaling": "enabled",
    "min_capacity": "min_capacity",
    "max_capacity": "max_capacity",
    "target_cpu_utilization": "target_cpu_utilization",
    "target_memory_utilization": "target_memory_utilization",
    "scale_in_cooldown": "scale_in_cooldown",
    "scale_out_cooldown": "scale_out_cooldown",
}
# Parameters whose blank value means "not specified" rather than "use the default".
NULLABLE_AUTOSCALING_PARAMETERS = {"target_cpu_utilization", "target_memory_utilization"}

KNOWN_PARAMETERS = frozenset(
    (*REQUIRED_PARAMETERS, *OPTIONAL_PARAMETERS, *JSON_ARRAY_PARAMETERS, *AUTOSCALING_PARAMETERS)
)


def parse_request(raw: Mapping[str, Any]) -> DeploymentRequest:
    """Validate raw parameters and build a deployment request.

    Args:
        raw: Parameter values keyed by parameter name.

    Returns:
        The validated deployment request.

    Raises:
        ValidationError: If any parameter is unknown, malformed, or out of range.
    """
    unknown = sorted(set(raw) - KNOWN_PARAMETERS)
    if unknown:
        raise ValidationError(unknown[0], "unknown parameter")

    data: dict[str, Any] = {}
    for name in REQUIRED_PARAMETERS:
        value = raw.get(name)
        if _is_blank(value):
            raise ValidationError(name, "is required")
        data[name] = value

    for name in OPTIONAL_PARAMETERS:
        value = raw.get(name)
        if not _is_blank(value):
            data[name] = _strict_int(name, value) if name != "region" else value

    for name in JSON_ARRAY_PARAMETERS:
        value = raw.get(name)
        if not _is_blank(value):
            data[name] = _json_array(name, value)

    autoscaling: dict[str, Any] = {}
    for name, field in AUTOSCALING_PARAMETERS.items():
        if name not in raw:
            continue
        value = raw[name]
        if _is_blank(value):
            if name in NULLABLE_AUTOSCALING_PARAMETERS:
                autoscaling[field] = None
            continue
        if name in ("min_capacity", "max_capacity", "scale_in_cooldown", "scale_out_cooldown"):
            value = _strict_int(name, value)
        autoscaling[field] = value
    data["autoscaling"] = autoscaling

    try:
        request = DeploymentRequest.model_validate(data)
    except PydanticValidationError as exc:
        raise _translate(exc) from exc

    logger.debug("Parsed deployment request for %s/%s", request.cluster, request.service)
    return request


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _strict_int(name: str, value: Any) -> int:
    """Parse an integer without accepting floats, booleans or fractional strings."""
    if isinstance(value, bool):
        raise ValidationError(name, "must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text, 10)
        except ValueError:
            pass
    raise ValidationError(name, f"must be an integer, got {value!r}")


def _json_array(name: str, value: Any) -> list[Any]:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValidationError(name, f"invalid JSON: {exc.msg}") from exc
    if not isinstance(value, list):
        raise ValidationError(name, "must be a JSON array")
    for index, item in enumerate(value):
        if not isinstance(item, Mapping):
            raise ValidationError(f"{name}[{index}]", "must be a JSON object")
    return value


def _translate(exc: PydanticValidationError) -> ValidationError:
    """Convert the first pydantic error into a field-named validation error."""
    error = exc.errors()[0]
    field = _format_location(error.get("loc", ()))
    message = str(error.get("msg", "invalid value")).removeprefix("Value error, ")
    if error.get("type") == "extra_forbidden":
        message = "unknown key"
    return ValidationError(field or "request", message)


def _format_location(loc: tuple[Any, ...]) -> str:
    parts: list[str] = []
    for item in loc:
        if isinstance(item, int):
            parts.append(f"[{item}]")
        elif parts:
            parts.append(f".{item}")
        else:
            parts.append(str(item))
    return "".join(parts)
