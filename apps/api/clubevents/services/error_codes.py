from enum import Enum


class ErrorCode(str, Enum):
    # validation
    FIELD_REQUIRED = "FIELD_REQUIRED"
    INVALID_EMAIL = "INVALID_EMAIL"
    DATE_NOT_IN_FUTURE = "DATE_NOT_IN_FUTURE"
    MAX_ATTENDEES_NOT_POSITIVE = "MAX_ATTENDEES_NOT_POSITIVE"
    INVALID_ROLE = "INVALID_ROLE"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_FIELD = "INVALID_FIELD"
    NO_CHANGES = "NO_CHANGES"
    MISSING_EVENT_ID = "MISSING_EVENT_ID"
    INVALID_EVENT_ID = "INVALID_EVENT_ID"
    INVALID_CURSOR = "INVALID_CURSOR"
    EVENT_ID_MISMATCH = "EVENT_ID_MISMATCH"
    SELF_ROLE_CHANGE = "SELF_ROLE_CHANGE"

    # authorization
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    FORBIDDEN_ROLE = "FORBIDDEN_ROLE"
    FORBIDDEN_OWNER = "FORBIDDEN_OWNER"
    FORBIDDEN_FIELD = "FORBIDDEN_FIELD"

    # not found
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"

    # conflicts
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    EVENT_NOT_ACTIVE = "EVENT_NOT_ACTIVE"
    EVENT_FULL = "EVENT_FULL"
    REGISTRATION_NOT_ACTIVE = "REGISTRATION_NOT_ACTIVE"
    REGISTRATION_CHANGED = "REGISTRATION_CHANGED"
    CAPACITY_BELOW_ATTENDEES = "CAPACITY_BELOW_ATTENDEES"
    PROFILE_CONFLICT = "PROFILE_CONFLICT"

    # dependencies
    EMAIL_DELIVERY_FAILED = "EMAIL_DELIVERY_FAILED"
    EXPORT_FAILED = "EXPORT_FAILED"
