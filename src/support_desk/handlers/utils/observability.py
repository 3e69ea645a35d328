"""
Centralized observability utilities for the support desk handlers.

Every handler, service and client logs, traces and emits metrics through the
instances defined here, so one Lambda invocation produces a single correlated
stream.
"""

from aws_lambda_powertools.logging import Logger
from aws_lambda_powertools.metrics import Metrics
from aws_lambda_powertools.tracing import Tracer

# Metrics namespace for support desk KPIs
METRICS_NAMESPACE = 'SupportDesk'

# JSON output format, service name can be set by environment variable "POWERTOOLS_SERVICE_NAME"
logger: Logger = Logger()

# Disabled by setting POWERTOOLS_TRACE_DISABLED to "true"
tracer: Tracer = Tracer()

# Namespace and service name can be overridden by environment variables:
# - POWERTOOLS_METRICS_NAMESPACE
# - POWERTOOLS_SERVICE_NAME
metrics = Metrics(namespace=METRICS_NAMESPACE)
