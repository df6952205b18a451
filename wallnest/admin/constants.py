# Admin module constants

DEFAULT_ACTIVITY_LIMIT = 8
MAX_ACTIVITY_LIMIT = 20
