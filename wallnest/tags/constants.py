# Tags module constants

MIN_TAG_LENGTH = 1
MAX_TAG_LENGTH = 50

DEFAULT_SEARCH_LIMIT = 10
MAX_TAGS_PER_WALLPAPER = 20

SORT_FIELDS = ("usage_count", "name", "created_at")
DEFAULT_SORT_FIELD = "usage_count"

# Messages
TAG_NOT_FOUND = "Tag not found"
TAG_NAME_INVALID = f"Tag name must be {MIN_TAG_LENGTH}-{MAX_TAG_LENGTH} characters"
TAG_ALREADY_EXISTS = "A tag with this name already exists"
TOO_MANY_TAGS = f"A wallpaper can carry at most {MAX_TAGS_PER_WALLPAPER} tags"
