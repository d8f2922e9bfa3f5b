"""
Logging setup for the relay: console output plus OpenTelemetry OTLP export,
or a rotating file when the OpenTelemetry SDK is disabled.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from opentelemetry import _logs, trace
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import (
    OTLPLogExporter as GrpcOTLPLogExporter,
)
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
    OTLPSpanExporter as GrpcOTLPSpanExporter,
)
from opentelemetry.exporter.otlp.proto.http._log_exporter import (
    OTLPLogExporter as HttpOTLPLogExporter,
)
from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
    OTLPSpanExporter as HttpOTLPSpanExporter,
)
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

DEFAULT_LOG_DIR = "./"
DEFAULT_LOG_FILE = "tcpbridge.log"
DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEFAULT_SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "tcpbridge")

_logging_initialized = False


def get_root_logger() -> logging.Logger:
    return logging.getLogger("")


def _build_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _build_file_handler(
    log_dir: str,
    log_file: str,
    *,
    formatter: logging.Formatter,
) -> RotatingFileHandler:
    os.makedirs(log_dir, exist_ok=True)
    file_handler = RotatingFileHandler(
        os.path.join(log_dir, log_file),
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    return file_handler


def _add_handlers(logger: logging.Logger, handlers: list[logging.Handler]) -> None:
    existing = set(logger.handlers)
    for handler in handlers:
        if handler not in existing:
            logger.addHandler(handler)


def _bool_env(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def otel_disabled() -> bool:
    return _bool_env("OTEL_SDK_DISABLED")


def _exporter_enabled(env_key: str) -> bool:
    return os.getenv(env_key, "otlp").strip().lower() not in {"none", "disabled"}


def _otlp_protocol(env_key: str) -> str:
    value = os.getenv(env_key) or os.getenv("OTEL_EXPORTER_OTLP_PROTOCOL", "grpc")
    return value.strip().lower()


def _build_log_exporter() -> Optional[object]:
    if not _exporter_enabled("OTEL_LOGS_EXPORTER"):
        return None
    if _otlp_protocol("OTEL_EXPORTER_OTLP_LOGS_PROTOCOL") in {"http/protobuf", "http"}:
        return HttpOTLPLogExporter()
    return GrpcOTLPLogExporter()


def _build_span_exporter() -> Optional[object]:
    if not _exporter_enabled("OTEL_TRACES_EXPORTER"):
        return None
    if _otlp_protocol("OTEL_EXPORTER_OTLP_TRACES_PROTOCOL") in {"http/protobuf", "http"}:
        return HttpOTLPSpanExporter()
    return GrpcOTLPSpanExporter()


def _install_otel(service_name: str, level: str | int) -> Optional[logging.Handler]:
    resource = Resource.create({"service.name": service_name})

    tracer_provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(tracer_provider)
    span_exporter = _build_span_exporter()
    if span_exporter is not None:
        tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))

    logger_provider = LoggerProvider(resource=resource)
    _logs.set_logger_provider(logger_provider)
    LoggingInstrumentor().instrument(set_logging_format=False)

    log_exporter = _build_log_exporter()
    if log_exporter is None:
        return None
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(log_exporter))
    return LoggingHandler(level=level, logger_provider=logger_provider)


def setup_logging(
    *,
    service_name: Optional[str] = None,
    level: str | int = DEFAULT_LOG_LEVEL,
    log_dir: str = DEFAULT_LOG_DIR,
    log_file: str = DEFAULT_LOG_FILE,
    with_console: bool = True,
) -> logging.Logger:
    """
    Configure root logging once per process.

    With ``OTEL_SDK_DISABLED`` set, records go to a rotating file instead of
    the OTLP exporters. Later calls only adjust the level.
    """
    global _logging_initialized

    root = get_root_logger()
    root.setLevel(level)
    if _logging_initialized:
        return root
    _logging_initialized = True

    formatter = _build_formatter()
    handlers: list[logging.Handler] = []
    if with_console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        handlers.append(console)

    if otel_disabled():
        handlers.insert(0, _build_file_handler(log_dir, log_file, formatter=formatter))
    else:
        otel_handler = _install_otel(service_name or DEFAULT_SERVICE_NAME, level)
        if otel_handler is not None:
            handlers.insert(0, otel_handler)

    _add_handlers(root, handlers)
    root.info("Logging initialized. level=%s otel_disabled=%s", level, otel_disabled())
    return root
