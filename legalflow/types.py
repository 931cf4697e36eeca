"""
Enumerations shared by the records, schemas and services.
"""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    LAWYER = "lawyer"
    INTERN = "assistant"
    CLIENT = "client"


class ClientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PROSPECT = "prospect"


class CaseStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"
    ARCHIVED = "archived"


class CasePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class CaseOutcome(str, Enum):
    WON = "won"
    LOST = "lost"
    SETTLED = "settled"


class HistoryType(str, Enum):
    PETITION = "petition"
    HEARING = "hearing"
    SENTENCE = "sentence"
    APPEAL = "appeal"
    NOTE = "note"
    DOCUMENT = "document"
    STATUS_CHANGE = "status"
    DISPATCH = "dispatch"
    SETTLEMENT = "settlement"
    SYSTEM = "system"
    ARCHIVE = "archive"


class CounterpartType(str, Enum):
    INDIVIDUAL = "individual"
    COMPANY = "company"
    GOVERNMENT = "government"


class AgendaEventType(str, Enum):
    HEARING = "hearing"
    MEETING = "meeting"
    DEADLINE = "deadline"
    CONFERENCE = "conference"
    CALL = "call"


class RecycleTable(str, Enum):
    CLIENTS = "clients"
    LEGAL_CASES = "legal_cases"
    COUNTERPARTS = "counterparts"
    DOCUMENTS = "documents"


class RecycleSource(str, Enum):
    RPC = "rpc"
    SOFT_DELETE = "soft_delete"
