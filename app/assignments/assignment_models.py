from enum import Enum

# ==================== ENUMS ====================

class SubmissionType(str, Enum):
    TEXT = "text"
    FILE = "file"
    BOTH = "both"

class AssignmentStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"

class SubmissionStatus(str, Enum):
    """Per-student view of an assignment"""
    PENDING = "pending"
    SUBMITTED = "submitted"
    GRADED = "graded"
