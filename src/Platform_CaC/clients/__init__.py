"""Resource clients and the reconciliation protocol they share."""

from .automation import AutomationClient, ResourceType
from .base import ResourceClient
from .buckets import BucketClient
from .convergence import RetrySettings, TargetState, await_state
from .openpipeline import ConfigurationSummary, OpenPipelineClient
from .pagination import CursorPagination, OffsetPagination, drain
from .privilege import PrivilegeFallback
from .segments import SegmentsClient
from .slo import SLOClient
from .upsert import Upserter, update_with_conflict_retry

__all__ = [
    "AutomationClient",
    "BucketClient",
    "ConfigurationSummary",
    "CursorPagination",
    "OffsetPagination",
    "OpenPipelineClient",
    "PrivilegeFallback",
    "ResourceClient",
    "ResourceType",
    "RetrySettings",
    "SLOClient",
    "SegmentsClient",
    "TargetState",
    "Upserter",
    "await_state",
    "drain",
    "update_with_conflict_retry",
]
