# Posts module constants

# Error messages
POST_NOT_FOUND = "Post not found"
ONLY_AUTHOR_CAN_EDIT = "You can only edit your own posts"
ONLY_AUTHOR_CAN_DELETE = "You can only delete your own posts"

# Success messages
POST_CREATED_SUCCESSFULLY = "Post created"
POST_UPDATED_SUCCESSFULLY = "Post updated"
POST_DELETED_SUCCESSFULLY = "Post deleted"

# Validation
MIN_TITLE_LENGTH = 1
MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 50000
MAX_SUMMARY_LENGTH = 500
MAX_TAGS = 10
SUMMARY_LENGTH = 200

# Listing
SORT_FIELDS = ("created_at", "updated_at", "view_count", "like_count", "comment_count")
SORT_POPULAR = "popular"
DEFAULT_SORT_FIELD = "created_at"
DEFAULT_FEED_LIMIT = 10
