"""Same-origin proxy layer over the analytics backend."""

from .resources import PATHS, AnalyticsProxy, prediction_plan
from .upstream import ABSENT_STATUSES, ReplyKind, UpstreamClient, UpstreamReply

__all__ = [
    "ABSENT_STATUSES",
    "PATHS",
    "AnalyticsProxy",
    "ReplyKind",
    "UpstreamClient",
    "UpstreamReply",
    "prediction_plan",
]
