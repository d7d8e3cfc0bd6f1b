"""Global constants for the bucketly application."""

# Firestore collections
PROFILES = "profiles"
BUCKET_LISTS = "bucket_lists"
BUCKET_ITEMS = "bucket_items"
MEMORIES = "memories"
LIST_FOLLOWERS = "list_followers"
USER_FOLLOWS = "user_follows"
TIMELINE_EVENTS = "timeline_events"
BADGES = "badges"
USER_BADGES = "user_badges"
NOTIFICATIONS = "notifications"
AUDIT_LOGS = "audit_logs"
GLOBAL_ITEMS = "global_items"

# Firestore limits
FIRESTORE_BATCH_LIMIT = 400
IN_QUERY_LIMIT = 30

# Bucket list categories
CATEGORIES = (
    "adventures",
    "places",
    "cuisines",
    "books",
    "songs",
    "monuments",
    "acts-of-service",
    "miscellaneous",
)
DEFAULT_CATEGORY = "miscellaneous"

DIFFICULTIES = ("easy", "medium", "hard")

# Timeline event types
EVENT_ITEM_COMPLETED = "item_completed"
EVENT_MEMORY_UPLOADED = "memory_uploaded"
EVENT_MEMORY_SHARED = "memory_shared"
EVENT_LIST_CREATED = "list_created"
EVENT_LIST_FOLLOWED = "list_followed"
EVENT_ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
TIMELINE_EVENT_TYPES = (
    EVENT_ITEM_COMPLETED,
    EVENT_MEMORY_UPLOADED,
    EVENT_MEMORY_SHARED,
    EVENT_LIST_CREATED,
    EVENT_LIST_FOLLOWED,
    EVENT_ACHIEVEMENT_UNLOCKED,
)

# Notifications
NOTIFICATION_TYPES = ("info", "warning", "success", "error")
NOTIFICATION_PRIORITIES = ("low", "medium", "high")

# Audit statuses
AUDIT_ALLOWED = "allowed"
AUDIT_DENIED = "denied"
AUDIT_ERROR = "error"

# Field limits
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 8
BIO_MAX_LENGTH = 500
LIST_NAME_MIN_LENGTH = 3
LIST_NAME_MAX_LENGTH = 100
ITEM_TITLE_MIN_LENGTH = 3
ITEM_TITLE_MAX_LENGTH = 200
MIN_POINTS = 1
MAX_POINTS = 1000
REFLECTION_MIN_LENGTH = 10
REFLECTION_MAX_LENGTH = 5000
SEARCH_QUERY_MAX_LENGTH = 100

# Uploads
MB = 1024 * 1024
MEMORY_PHOTO_MAX_SIZE = 10 * MB
AVATAR_MAX_SIZE = 5 * MB
MEMORY_PHOTO_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
AVATAR_TYPES = ("image/jpeg", "image/png", "image/webp")
MEMORY_PHOTO_TARGET_SIZE = 2 * MB
MEMORY_PHOTO_MAX_DIMENSION = 1920
AVATAR_MAX_DIMENSION = 512

# Paging
PUBLIC_LISTS_PAGE_SIZE = 20
SEARCH_RESULTS_LIMIT = 50
TRENDING_WINDOW_DAYS = 30
TRENDING_LIMIT = 20
TIMELINE_PAGE_SIZE = 50
FEED_PAGE_SIZE = 20
LEADERBOARD_PAGE_SIZE = 50
NOTIFICATIONS_LIMIT = 50

# Global rank assigned to profiles that have not been ranked yet
UNRANKED = 999999
