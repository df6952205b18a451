# Reports module constants

# Error messages
REPORT_NOT_FOUND = "Report not found"
ALREADY_REPORTED = "You have already reported this content"
REPORT_ALREADY_CLOSED = "This report has already been handled"
TARGET_NOT_FOUND = "Reported content not found"
INVALID_STATUS_TRANSITION = "A report cannot move from {current} back to {target}"

# Success messages
REPORT_CREATED = "Report submitted, we will review it shortly"
REPORT_UPDATED = "Report updated"

MAX_DESCRIPTION_LENGTH = 1000
MAX_REVIEW_NOTE_LENGTH = 1000

REASON_OPTIONS = (
    ("spam", "Spam", "Advertising, flooding or repeated content"),
    ("inappropriate", "Inappropriate", "Offensive or otherwise unsuitable content"),
    ("harassment", "Harassment", "Personal attacks, bullying or harassment"),
    ("violence", "Violence", "Violent, gory or dangerous content"),
    ("copyright", "Copyright", "Infringes copyright or reposts someone else's work"),
    ("misinformation", "Misinformation", "False or misleading information"),
    ("other", "Other", "Any other rule violation"),
)
