from app.models.audit_log import AuditLog
from app.models.chat import Conversation, ConversationMember, Message, MessageMention
from app.models.company import Company
from app.models.lead import LEAD_STATUSES, Lead
from app.models.note import Note
from app.models.notification import Notification
from app.models.ownership_history import OwnershipHistory
from app.models.reminder import Reminder, ReminderRecipient
from app.models.user import User

__all__ = [
    "AuditLog",
    "Company",
    "Conversation",
    "ConversationMember",
    "LEAD_STATUSES",
    "Lead",
    "Message",
    "MessageMention",
    "Note",
    "Notification",
    "OwnershipHistory",
    "Reminder",
    "ReminderRecipient",
    "User",
]
