"""Logging for the recipe generation pipeline.

Configured via environment variables:
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_TYPE: text, json (default: text)

Records may carry pipeline context (`stage`, `model`, `tier`). Services bind
it once with `pipeline_logger()`; a per-call `extra=` adds to or overrides
the bound values.
"""

import json
import logging
import os
import sys
from typing import Any, MutableMapping, Optional


CONTEXT_FIELDS = ("stage", "model", "tier")


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Pipeline context attached to `record`, in CONTEXT_FIELDS order, skipping unset values."""
    return {
        field: getattr(record, field)
        for field in CONTEXT_FIELDS
        if getattr(record, field, None) not in (None, "")
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(record_context(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class RichTextFormatter(logging.Formatter):
    """Colored single-line text with emoji icons.

    Context renders as a bracketed tag before the message, e.g.
    `[image|flux-schnell|minimal]`. Only the last path segment of a model id
    is shown.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "RESET": "\033[0m",
    }

    ICONS = {
        "DEBUG": "🔍",
        "INFO": "ℹ️",
        "WARNING": "⚠️",
        "ERROR": "❌",
    }

    def context_tag(self, record: logging.LogRecord) -> str:
        context = record_context(record)
        if not context:
            return ""
        if "model" in context:
            context["model"] = str(context["model"]).rsplit("/", 1)[-1]
        return "[" + "|".join(str(value) for value in context.values()) + "] "

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        color = self.COLORS.get(level, self.COLORS["RESET"])
        icon = self.ICONS.get(level, "")
        reset = self.COLORS["RESET"]

        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        message = (
            f"{color}{icon} {timestamp} {level:<8} {record.name:<20} "
            f"{self.context_tag(record)}{record.getMessage()}{reset}"
        )

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


class PipelineLogAdapter(logging.LoggerAdapter):
    """Logger adapter that stamps bound pipeline context on every record."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def bind(self, **context: Any) -> "PipelineLogAdapter":
        """Return a new adapter with `context` layered over the current one."""
        return PipelineLogAdapter(self.logger, {**self.extra, **context})


def get_logger(name: str) -> logging.Logger:
    """Create and configure logger instance, once per name."""
    logger_instance = logging.getLogger(name)

    if logger_instance.handlers:
        return logger_instance

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_type = os.getenv("LOG_TYPE", "text").lower()

    log_level = getattr(logging, log_level_str, logging.INFO)
    logger_instance.setLevel(log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter() if log_type == "json" else RichTextFormatter())
    logger_instance.addHandler(handler)

    return logger_instance


logger = get_logger("recipe_pipeline")


def pipeline_logger(stage: Optional[str] = None, model: Optional[str] = None) -> PipelineLogAdapter:
    """Module logger with `stage` / `model` bound."""
    context = {key: value for key, value in (("stage", stage), ("model", model)) if value}
    return PipelineLogAdapter(logger, context)


# Connection-pool chatter from the HTTP stack
logging.getLogger("aiohttp").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)
