from newsdesk.schemas.common import (
    ContentRecordOut,
    ContentRecordPatch,
    FailedItemOut,
    FormattedFields,
    FreeTextOutput,
    FreeTextRequest,
    IngestByIdsRequest,
    SchedulerStatusOut,
    UpstreamTweet,
)

__all__ = [
    "ContentRecordOut",
    "ContentRecordPatch",
    "FailedItemOut",
    "FormattedFields",
    "FreeTextOutput",
    "FreeTextRequest",
    "IngestByIdsRequest",
    "SchedulerStatusOut",
    "UpstreamTweet",
]
