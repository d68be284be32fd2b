"""Fetch, aggregation and scheduling engine."""

from gitpushy.engine.aggregator import (
    PullRequestAggregator,
    PullRequestRecord,
    dedupe_by_number,
    sort_and_limit,
)
from gitpushy.engine.branches import BranchResolver
from gitpushy.engine.scheduler import InstanceRegistration, InstanceScheduler
from gitpushy.engine.signals import (
    DataSignal,
    ErrorKind,
    ErrorSignal,
    Signal,
    SignalSink,
    format_error,
)

__all__ = [
    "BranchResolver",
    "DataSignal",
    "ErrorKind",
    "ErrorSignal",
    "InstanceRegistration",
    "InstanceScheduler",
    "PullRequestAggregator",
    "PullRequestRecord",
    "Signal",
    "SignalSink",
    "dedupe_by_number",
    "format_error",
    "sort_and_limit",
]
