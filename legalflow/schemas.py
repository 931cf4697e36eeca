"""
Pydantic schemas for the LegalFlow API.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from legalflow.types import (
    AgendaEventType,
    CaseOutcome,
    CasePriority,
    CaseStatus,
    ClientStatus,
    CounterpartType,
    HistoryType,
    RecycleSource,
    RecycleTable,
    UserRole,
)


# --- Auth ---


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=6, max_length=128)
    name: Optional[str] = None
    role: UserRole = UserRole.LAWYER
    oab: Optional[str] = None
    cpf: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    logo_url: Optional[str] = None


class SignInRequest(BaseModel):
    email: str
    password: str


class User(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole
    avatar_url: Optional[str] = None
    logo_url: Optional[str] = None
    oab: Optional[str] = None
    cpf: Optional[str] = None
    phone: Optional[str] = None


class SessionResponse(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"
    user: User


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[UserRole] = None
    oab: Optional[str] = None
    cpf: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    logo_url: Optional[str] = None


# --- Clients ---


class ClientPayload(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    cpf_cnpj: Optional[str] = None
    rg: Optional[str] = None
    birth_date: Optional[str] = None
    marital_status: Optional[str] = None
    address: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    cep: Optional[str] = None
    profession: Optional[str] = None
    company: Optional[str] = None
    income_range: Optional[str] = None
    observations: Optional[str] = None
    status: Optional[ClientStatus] = None
    identification_doc_path: Optional[str] = None
    identification_doc_name: Optional[str] = None
    cpf_doc_path: Optional[str] = None
    cpf_doc_name: Optional[str] = None
    birth_marriage_doc_path: Optional[str] = None
    birth_marriage_doc_name: Optional[str] = None
    comprovant_residente_doc_path: Optional[str] = None
    comprovant_residente_doc_name: Optional[str] = None
    other_doc_path: Optional[str] = None
    other_doc_name: Optional[str] = None


class Client(ClientPayload):
    id: str
    status: ClientStatus
    created_at: str
    updated_at: str
    deleted_at: Optional[str] = None
    created_by: Optional[str] = None


# --- Cases ---


class CasePayload(BaseModel):
    client_id: str
    case_number: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    status: CaseStatus = CaseStatus.OPEN
    case_type: Optional[str] = None
    priority: CasePriority = CasePriority.MEDIUM
    court: Optional[str] = None
    judge: Optional[str] = None
    jurisdiction: Optional[str] = None
    court_room: Optional[str] = None
    assigned_to: Optional[str] = None
    next_hearing: Optional[str] = None
    value: Optional[float] = None
    fee: Optional[float] = None
    outcome: Optional[CaseOutcome] = None


class LegalCase(CasePayload):
    id: str
    created_at: str
    updated_at: str
    deleted_at: Optional[str] = None
    created_by: Optional[str] = None
    client_name: Optional[str] = None


class CaseHistoryPayload(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: HistoryType = HistoryType.NOTE
    date: str


class CaseHistoryItem(CaseHistoryPayload):
    id: str
    case_id: str
    created_at: str
    created_by: Optional[str] = None
    is_system_event: bool = False


# --- Counterparts ---


class CounterpartPayload(BaseModel):
    name: str = Field(..., min_length=1)
    type: CounterpartType = CounterpartType.INDIVIDUAL
    email: Optional[str] = None
    phone: Optional[str] = None
    cpf_cnpj: Optional[str] = None


class Counterpart(CounterpartPayload):
    id: str
    created_at: str
    updated_at: str
    deleted_at: Optional[str] = None


# --- Documents ---


class AppDocument(BaseModel):
    id: str
    title: str
    name: str
    file_path: str
    file_name: Optional[str] = None
    size: Optional[int] = None
    type: Optional[str] = None
    mime_type: Optional[str] = None
    url: str
    created_at: str
    case_id: Optional[str] = None
    client_id: Optional[str] = None
    description: Optional[str] = None


class UploadDocumentsResponse(BaseModel):
    documents: list[AppDocument]


class SignUrlResponse(BaseModel):
    url: str


# --- Agenda ---


class AgendaEventPayload(BaseModel):
    title: str = Field(..., min_length=1)
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    client: Optional[str] = None
    type: AgendaEventType = AgendaEventType.MEETING
    location: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _real_calendar_date(cls, value: str) -> str:
        datetime.strptime(value, "%Y-%m-%d")
        return value

    @field_validator("time")
    @classmethod
    def _real_clock_time(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            datetime.strptime(value, "%H:%M")
        return value


class AgendaEvent(BaseModel):
    id: str
    title: str
    date: str
    time: str
    client: str
    type: str
    location: str
    created_at: Optional[str] = None


# --- Recycle bin ---


class RecycleBinItem(BaseModel):
    id: str
    recycle_bin_id: Optional[str] = None
    original_table: RecycleTable
    original_id: str
    data: Optional[dict] = None
    deleted_by: Optional[str] = None
    deleted_at: str
    source: RecycleSource


class RecycleBinListResponse(BaseModel):
    items: list[RecycleBinItem]
    counts: dict[str, int]


class MoveToRecycleBinRequest(BaseModel):
    table_name: RecycleTable
    record_id: str
    reason: Optional[str] = Field(default=None, max_length=1024)


class RestoreRequest(BaseModel):
    record_id: str
    table_name: Optional[RecycleTable] = None
    recycle_bin_id: Optional[str] = None


class OperationResponse(BaseModel):
    success: bool
    message: str
    error: Optional[str] = None


# --- Reports ---


class UpcomingItem(BaseModel):
    id: str
    title: str
    date: str
    time: str
    type: Literal["agenda", "hearing"]
    case_id: Optional[str] = None


class DashboardSummary(BaseModel):
    total_clients: int
    active_cases: int
    pending_deadlines: int
    upcoming_events: int
    upcoming: list[UpcomingItem]


class ChartPoint(BaseModel):
    name: str
    value: float


class PerformanceReport(BaseModel):
    total_revenue: float
    new_clients_this_month: int
    closed_cases: int
    win_rate: int
    cases_by_type: list[ChartPoint]
    revenue_by_month: list[ChartPoint]


class ScheduleItem(BaseModel):
    id: str
    title: str
    date: str
    time: Optional[str] = None
    type: str
    source: Literal["case", "agenda"]
    subtitle: str
    status: Optional[str] = None
    priority: Optional[str] = None
    badge: str


# --- Deadlines ---


class DeadlineRequest(BaseModel):
    start_date: date
    days: int = Field(15, ge=0, le=3650)
    count_type: Literal["business", "calendar"] = "business"


class DeadlineResponse(BaseModel):
    start_date: date
    days: int
    count_type: str
    due_date: date


# --- Assistant ---


class GenerateTextRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=20000)
    context: Optional[str] = Field(default=None, max_length=50000)


class ChatTurn(BaseModel):
    role: Literal["user", "model"]
    text: str


class ChatRequest(BaseModel):
    history: list[ChatTurn] = Field(default_factory=list)
    message: str = Field(..., min_length=1, max_length=20000)


class AssistantResponse(BaseModel):
    text: str


class SetupSqlResponse(BaseModel):
    sql: str
