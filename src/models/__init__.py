from src.models.story import (  # noqa: F401
    CategoryCreate, CategoryUpdate, CategoryOut,
    TagCreate, TagUpdate, TagOut, TagAttachRequest,
    StoryCreate, StoryUpdate, StorySummary, StoryOut, StoryListItem,
    CommentCreate, CommentUpdate, CommentOut,
    ReportCreate, StoryReportOut, CommentReportOut,
    RatingCreate, RatingSummary, PendingTagOut,
)
