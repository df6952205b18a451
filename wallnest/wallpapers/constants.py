# Wallpapers module constants

MIN_TITLE_LENGTH = 1
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500

# Columns a client may sort by; anything else falls back to DEFAULT_SORT_FIELD
SORT_FIELDS = (
    "created_at",
    "updated_at",
    "view_count",
    "like_count",
    "favorite_count",
    "width",
    "height",
    "aspect_ratio",
    "file_size",
)
SORT_POPULAR = "popular"
SORT_RANDOM = "random"
DEFAULT_SORT_FIELD = "created_at"

DEFAULT_POPULAR_LIMIT = 10
VIEW_HISTORY_RETENTION_DAYS = 30

# Messages
WALLPAPER_NOT_FOUND = "Wallpaper not found"
WALLPAPER_CREATED = "Wallpaper uploaded"
WALLPAPER_UPDATED = "Wallpaper updated"
WALLPAPER_DELETED = "Wallpaper deleted"
ONLY_UPLOADER_CAN_EDIT = "Only the uploader can edit this wallpaper"
ONLY_UPLOADER_CAN_DELETE = "Only the uploader can delete this wallpaper"
