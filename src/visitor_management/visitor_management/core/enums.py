from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Operator roles used for authorization."""

    ADMIN = "Admin"
    MANAGER = "Manager"
    RECEPTIONIST = "Receptionist"


class VisitorStatus(str, Enum):
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


class DeletionRequestStatus(str, Enum):
    """Approval flow for visitor deletion requests."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EditRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ComplaintStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ComplaintPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class FeedbackStatus(str, Enum):
    NEW = "new"
    REVIEWED = "reviewed"
    RESPONDED = "responded"


class LostItemStatus(str, Enum):
    """found -> returned is the normal lifecycle; disposed is terminal."""

    FOUND = "found"
    RETURNED = "returned"
    DISPOSED = "disposed"


class ItemCondition(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ReturnRelationship(str, Enum):
    OWNER = "owner"
    FAMILY = "family"
    FRIEND = "friend"
    COLLEAGUE = "colleague"
    REPRESENTATIVE = "representative"


class HistoryAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    RETURNED = "returned"
    RETURN_UPDATED = "return_updated"
    REVERTED = "reverted"


class FieldType(str, Enum):
    """Input types supported by dynamic complaint fields."""

    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    NUMBER = "number"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DATE = "date"
    TIME = "time"
    FILE = "file"


class ConfigCategoryKey(str, Enum):
    PURPOSE = "purpose"
    UNIT = "unit"
    PERSON_TO_MEET = "person_to_meet"
    DOCUMENT_TYPE = "document_type"
