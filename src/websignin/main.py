"""Entry point for the web sign-in resource provider.

The engine-side RPC plumbing is not part of this package. The provider is
driven one request at a time: a JSON object naming the verb and carrying
its arguments is read from stdin, and the JSON response is written to
stdout. Logs go to stderr so they never mix with responses.

Request shape:
    {"method": "Create", "urn": "urn:pulumi:...", "properties": {...}}
    {"method": "Update", "urn": "...", "olds": {...}, "news": {...}}
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from datetime import UTC, datetime
from typing import Any

from .config import ConfigurationError, ProviderConfig
from .errors import ProviderError
from .provider import WebSignInProvider

# LogRecord attributes that are not user-supplied extras
_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(config: ProviderConfig) -> None:
    """Configure root logging on stderr.

    At DEBUG the full az command lines, stdout and stderr are logged.
    """
    handler = logging.StreamHandler(sys.stderr)
    if config.log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(config.log_level)


def _to_json_safe(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


def _mapping_field(request: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    """Read an optional property-map field, rejecting anything but an object."""
    value = request.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ProviderError(
            f"request field '{key}' must be an object, got {type(value).__name__}"
        )
    return value


def handle_request(provider: WebSignInProvider, request: Mapping[str, Any]) -> dict[str, Any]:
    """Dispatch one request to the provider and build its response.

    Raises:
        ProviderError: On any verb failure, a malformed request field, or an unknown method.
    """
    method = request.get("method")
    urn = request.get("urn", "")
    if not isinstance(urn, str):
        raise ProviderError(f"request field 'urn' must be a string, got {type(urn).__name__}")
    properties = _mapping_field(request, "properties")
    olds = _mapping_field(request, "olds")
    news = _mapping_field(request, "news")

    if method == "CheckConfig":
        return _to_json_safe(provider.check_config(urn, news))
    if method == "DiffConfig":
        return _to_json_safe(provider.diff_config(urn, olds, news))
    if method == "Configure":
        provider.configure(request.get("variables"))
        return {}
    if method == "Check":
        return _to_json_safe(provider.check(urn, news))
    if method == "Diff":
        return _to_json_safe(provider.diff(urn, olds, news))
    if method == "Create":
        return _to_json_safe(provider.create(urn, properties))
    if method == "Update":
        return _to_json_safe(provider.update(urn, olds, news))
    if method == "Delete":
        provider.delete(urn, properties)
        return {}
    if method == "Read":
        provider.read(urn, request.get("id", ""), properties)
        return {}
    if method == "Construct":
        provider.construct()
        return {}
    if method == "Invoke":
        return provider.invoke(request.get("tok", ""), request.get("args"))
    if method == "StreamInvoke":
        provider.stream_invoke(request.get("tok", ""), request.get("args"))
        return {}
    if method == "GetPluginInfo":
        return _to_json_safe(provider.get_plugin_info())
    if method == "GetSchema":
        return _to_json_safe(provider.get_schema(request.get("version", 0)))
    if method == "Cancel":
        provider.cancel()
        return {}

    raise ProviderError(f"unknown method '{method}'")


def main() -> int:
    """Serve a single request from stdin.

    Returns:
        Exit code (0 for success, 1 for a failed verb, 2 for bad configuration/input).
    """
    try:
        config = ProviderConfig.from_env()
    except ConfigurationError as e:
        print(json.dumps({"error": str(e), "type": type(e).__name__}))
        return 2

    setup_logging(config)
    logger = logging.getLogger(__name__)

    try:
        request = json.load(sys.stdin)
    except json.JSONDecodeError as e:
        logger.error("Invalid request", extra={"error": str(e)})
        print(json.dumps({"error": f"invalid request: {e}", "type": "RequestError"}))
        return 2

    if not isinstance(request, dict):
        print(json.dumps({"error": "request must be a JSON object", "type": "RequestError"}))
        return 2

    provider = WebSignInProvider.from_config(config)

    try:
        response = handle_request(provider, request)
    except ProviderError as e:
        logger.error(
            "Request failed",
            extra={
                "method": request.get("method"),
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )
        print(json.dumps({"error": str(e), "type": type(e).__name__}))
        return 1

    print(json.dumps(response, default=str))
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
