"""
Record models and record-level processing.

This module contains the message, call log and contact models together
with phone number normalization and sanitization.

Example:
    from msgvault.core.records import RecordSanitizer, phone

    sanitizer = RecordSanitizer()
    messages = sanitizer.sanitize_messages(messages)

    if phone.matches("+1 (555) 123-4567", "5551234567"):
        ...
"""

from msgvault.core.records import phone
from msgvault.core.records.models import (
    CallLogEntry,
    CallType,
    ContactEvent,
    ContactRecord,
    ContactRelationship,
    LabeledValue,
    Message,
    MessageType,
)
from msgvault.core.records.sanitizer import RecordSanitizer, is_placeholder

__all__ = [
    "CallLogEntry",
    "CallType",
    "ContactEvent",
    "ContactRecord",
    "ContactRelationship",
    "LabeledValue",
    "Message",
    "MessageType",
    "RecordSanitizer",
    "is_placeholder",
    "phone",
]
