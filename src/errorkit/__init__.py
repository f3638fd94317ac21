from errorkit.capabilities import ProvidesContext, Renderable, Reportable
from errorkit.config import ErrorKitConfig
from errorkit.dedupe import DedupeTracker
from errorkit.dispatch import ExceptionDispatcher, RecordReporter
from errorkit.exceptions import ConfigError, ErrorKitError, HttpError, RegistryFrozenError, abort
from errorkit.models import ErrorRecord, ReportBatch
from errorkit.registry import ErrorRegistry, RenderRule, ReportRule
from errorkit.reporters import WebhookReporter
from errorkit.responses import ErrorResponse
from errorkit.sinks import LoggingSink, LogSink
from errorkit.throttle import Limit, Sample, Throttler

__all__ = [
    # Core
    "ErrorKitConfig",
    "ErrorRegistry",
    "ExceptionDispatcher",
    "DedupeTracker",
    "ReportRule",
    "RenderRule",
    # Capabilities
    "Reportable",
    "Renderable",
    "ProvidesContext",
    # Responses
    "ErrorResponse",
    # Sinks and reporters
    "LogSink",
    "LoggingSink",
    "RecordReporter",
    "WebhookReporter",
    "ErrorRecord",
    "ReportBatch",
    # Throttling
    "Limit",
    "Sample",
    "Throttler",
    # Errors
    "ErrorKitError",
    "RegistryFrozenError",
    "ConfigError",
    "HttpError",
    "abort",
]
