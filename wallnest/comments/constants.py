# Comments module constants

# Error messages
COMMENT_NOT_FOUND = "Comment not found"
PARENT_COMMENT_NOT_FOUND = "Parent comment not found"
PARENT_ON_OTHER_POST = "Parent comment belongs to a different post"
ONLY_AUTHOR_CAN_EDIT = "You can only edit your own comments"
ONLY_AUTHOR_CAN_DELETE = "You can only delete your own comments"

# Success messages
COMMENT_CREATED = "Comment posted"
COMMENT_UPDATED = "Comment updated"
COMMENT_DELETED = "Comment deleted"

# Validation
MAX_CONTENT_LENGTH = 2000

# Listing
SORT_FIELDS = ("created_at", "updated_at", "like_count")
DEFAULT_SORT_FIELD = "created_at"
DEFAULT_SORT_ORDER = "asc"
DEFAULT_LATEST_LIMIT = 10
