"""Prometheus metrics for dispatch runs, stages and downstream calls.

Everything registers on the default registry, which ``/metrics`` exposes.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

_LATENCY_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)

SERVICE_INFO = Info("hello_dispatch", "hello-dispatch service information")

# Pipeline runs: status is success, failure or cancelled
PIPELINE_RUNS_TOTAL = Counter(
    "pipeline_runs_total",
    "Dispatch pipeline runs by outcome",
    ["pipeline_name", "status"],
)
PIPELINE_DURATION_SECONDS = Histogram(
    "pipeline_duration_seconds",
    "Dispatch pipeline run latency",
    ["pipeline_name"],
    buckets=_LATENCY_BUCKETS,
)
PIPELINE_ACTIVE = Gauge(
    "pipeline_runs_active",
    "Dispatch pipeline runs in flight",
    ["pipeline_name"],
)

# Stages, labelled by route id
STAGE_EXECUTIONS_TOTAL = Counter(
    "stage_executions_total",
    "Stage executions by outcome",
    ["pipeline_name", "stage_name", "status"],
)
STAGE_DURATION_SECONDS = Histogram(
    "stage_duration_seconds",
    "Stage execution latency",
    ["pipeline_name", "stage_name"],
    buckets=_LATENCY_BUCKETS,
)

# Downstream: status is success, http_error, timeout or transport_error
DOWNSTREAM_REQUESTS_TOTAL = Counter(
    "downstream_requests_total",
    "Calls to the downstream greeting responder by outcome",
    ["status"],
)
DOWNSTREAM_REQUEST_DURATION_SECONDS = Histogram(
    "downstream_request_duration_seconds",
    "Downstream call latency",
    buckets=_LATENCY_BUCKETS,
)


def set_service_info(version: str, environment: str) -> None:
    SERVICE_INFO.info({"version": version, "environment": environment})


def record_pipeline_run(pipeline_name: str, status: str, duration_seconds: float) -> None:
    """Count one finished run and observe its latency."""
    PIPELINE_RUNS_TOTAL.labels(pipeline_name=pipeline_name, status=status).inc()
    PIPELINE_DURATION_SECONDS.labels(pipeline_name=pipeline_name).observe(duration_seconds)


def record_stage_execution(
    pipeline_name: str,
    stage_name: str,
    status: str,
    duration_seconds: float,
) -> None:
    """Count one stage execution and observe its latency."""
    STAGE_EXECUTIONS_TOTAL.labels(
        pipeline_name=pipeline_name, stage_name=stage_name, status=status
    ).inc()
    STAGE_DURATION_SECONDS.labels(
        pipeline_name=pipeline_name, stage_name=stage_name
    ).observe(duration_seconds)


def record_downstream_request(status: str, duration_seconds: float) -> None:
    """Count one downstream call and observe its latency."""
    DOWNSTREAM_REQUESTS_TOTAL.labels(status=status).inc()
    DOWNSTREAM_REQUEST_DURATION_SECONDS.observe(duration_seconds)
