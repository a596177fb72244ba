"""Target resolution for intercepted operations.

Works out which entity an operation affected, in a fixed order:

1. a resolver callable supplied for the endpoint
2. a known path parameter (``id``, ``station_id``, ``user_id``)
3. the first id found in the JSON response at an ordered list of paths
4. the ``"unknown"`` sentinel

Resolution never raises. Anything that fails at one level counts as
"not found" and the next level is tried.
"""

import json
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

import structlog

from stationtrack.core.constants import UNKNOWN_TARGET_ID


log = structlog.get_logger()

JSONValue: TypeAlias = (
    dict[str, "JSONValue"] | list["JSONValue"] | str | int | float | bool | None
)


@dataclass(frozen=True)
class ResolutionContext:
    """Everything known about a just-completed operation.

    Attributes:
        path_params: Route path parameters
        request_body: Parsed JSON request body, if it was read
        response_body: Raw or parsed response payload
        request: The originating request, for custom resolvers
    """

    path_params: Mapping[str, Any] = field(default_factory=dict)
    request_body: JSONValue = None
    response_body: bytes | str | JSONValue = None
    request: Any = None

    def payload(self) -> JSONValue:
        """Parse the response body, returning None when it is not JSON."""
        return parse_json(self.response_body)


TargetIdResolver: TypeAlias = Callable[[ResolutionContext], Any]


@dataclass(frozen=True)
class ExtractionRule:
    """A nested location in a JSON payload that may hold an id."""

    path: tuple[str, ...]

    def extract(self, payload: JSONValue) -> str | None:
        node: JSONValue = payload
        for key in self.path:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return coerce_id(node)

    def __str__(self) -> str:
        return ".".join(self.path)


DEFAULT_PATH_PARAMS: tuple[str, ...] = ("id", "station_id", "user_id")

DEFAULT_PAYLOAD_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(("data", "id")),
    ExtractionRule(("data", "user", "id")),
    ExtractionRule(("data", "station", "id")),
    ExtractionRule(("data", "profile", "id")),
    ExtractionRule(("data", "backup", "id")),
    ExtractionRule(("data", "reminder", "id")),
    ExtractionRule(("data", "role", "id")),
)


def coerce_id(value: Any) -> str | None:
    """Turn a scalar into a target id, or None if it cannot be one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, int | float):
        return str(value)
    # UUIDs and other id-like objects from custom resolvers
    if not isinstance(value, dict | list | tuple | set):
        text = str(value)
        return text or None
    return None


def parse_json(body: bytes | str | JSONValue) -> JSONValue:
    """Parse a response body into a JSON value, None on failure."""
    if isinstance(body, bytes | bytearray | memoryview):
        try:
            body = bytes(body).decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(body, str):
        if not body:
            return None
        try:
            parsed: JSONValue = json.loads(body)
        except ValueError:
            return None
        return parsed
    return body


class TargetResolver:
    """Resolves target ids with a fixed precedence order."""

    def __init__(
        self,
        path_params: Sequence[str] = DEFAULT_PATH_PARAMS,
        rules: Sequence[ExtractionRule] = DEFAULT_PAYLOAD_RULES,
    ) -> None:
        self.path_params = tuple(path_params)
        self.rules = tuple(rules)

    def resolve(
        self,
        context: ResolutionContext,
        custom: TargetIdResolver | None = None,
        extra_path_params: Sequence[str] = (),
    ) -> str:
        """Resolve the target id for an operation.

        Args:
            context: What is known about the operation
            custom: Optional resolver that takes precedence over everything
            extra_path_params: Endpoint-specific path parameters, checked
                before the defaults

        Returns:
            The target id, or "unknown"
        """
        if custom is not None:
            target_id = self._from_custom(context, custom)
            if target_id:
                return target_id

        target_id = self.from_path_params(context.path_params, extra_path_params)
        if target_id:
            return target_id

        target_id = self.from_payload(context.payload())
        if target_id:
            return target_id

        return UNKNOWN_TARGET_ID

    def from_path_params(
        self,
        path_params: Mapping[str, Any],
        extra: Sequence[str] = (),
    ) -> str | None:
        for name in (*extra, *self.path_params):
            target_id = coerce_id(path_params.get(name))
            if target_id:
                return target_id
        return None

    def from_payload(self, payload: JSONValue) -> str | None:
        for rule in self.rules:
            target_id = rule.extract(payload)
            if target_id:
                return target_id
        return None

    @staticmethod
    def _from_custom(
        context: ResolutionContext, custom: TargetIdResolver
    ) -> str | None:
        try:
            return coerce_id(custom(context))
        except Exception as exc:  # noqa: BLE001
            log.warning(
                "audit_custom_resolver_failed",
                resolver=getattr(custom, "__name__", repr(custom)),
                error=str(exc),
            )
            return None


default_resolver = TargetResolver()
