"""
HTTP routes for the LegalFlow API.

``auth_router`` is public; every route on ``router`` requires a bearer token.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Response,
    UploadFile,
)
from google.genai import errors as genai_errors

from legalflow import (
    agenda,
    assistant,
    auth,
    case_history,
    cases,
    clients,
    counterparts,
    documents,
    recycle_bin,
    reports,
)
from legalflow.config import get_settings
from legalflow.dates import utc_now
from legalflow.db import DbClient
from legalflow.deadlines import calculate_deadline
from legalflow.dependencies import (
    get_access_token,
    get_current_user,
    get_db_client,
    get_storage_client,
)
from legalflow.schemas import (
    AgendaEvent,
    AgendaEventPayload,
    AssistantResponse,
    CaseHistoryItem,
    CaseHistoryPayload,
    CasePayload,
    ChatRequest,
    Client,
    ClientPayload,
    Counterpart,
    CounterpartPayload,
    DashboardSummary,
    DeadlineRequest,
    DeadlineResponse,
    GenerateTextRequest,
    LegalCase,
    MoveToRecycleBinRequest,
    OperationResponse,
    PerformanceReport,
    ProfileUpdate,
    RecycleBinListResponse,
    RestoreRequest,
    ScheduleItem,
    SessionResponse,
    SetupSqlResponse,
    SignInRequest,
    SignUpRequest,
    SignUrlResponse,
    UploadDocumentsResponse,
    User,
)
from legalflow.setup_sql import RECYCLE_BIN_SQL
from legalflow.storage import StorageClient
from legalflow.types import RecycleTable

logger = logging.getLogger(__name__)

NOT_FOUND = "Registro não encontrado."

auth_router = APIRouter()
router = APIRouter(dependencies=[Depends(get_current_user)])


def _operation(result: recycle_bin.RecycleBinResult, response: Response) -> OperationResponse:
    if not result.success:
        response.status_code = 400
    return OperationResponse(
        success=result.success, message=result.message, error=result.error
    )


# --- Auth ---


@auth_router.get("/health")
def health():
    return {"status": "ok"}


@auth_router.post("/auth/sign-up", response_model=SessionResponse, status_code=201)
def sign_up(payload: SignUpRequest, db: DbClient = Depends(get_db_client)):
    return auth.sign_up(db, **payload.model_dump())


@auth_router.post("/auth/sign-in", response_model=SessionResponse)
def sign_in(payload: SignInRequest, db: DbClient = Depends(get_db_client)):
    return auth.sign_in(db, payload.email, payload.password)


@router.post("/auth/sign-out", response_model=OperationResponse)
def sign_out(
    token: str = Depends(get_access_token), db: DbClient = Depends(get_db_client)
):
    auth.sign_out(db, token)
    return OperationResponse(success=True, message="Sessão encerrada")


@router.get("/auth/me", response_model=User)
def me(user: User = Depends(get_current_user)):
    return user


@router.patch("/auth/profile", response_model=User)
def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return auth.update_profile(db, user.id, payload.model_dump())


# --- Clients ---


@router.get("/clients", response_model=list[Client])
def list_clients(search: str = "", db: DbClient = Depends(get_db_client)):
    return clients.list_clients(db, search)


@router.get("/clients/deleted", response_model=list[Client])
def list_deleted_clients(db: DbClient = Depends(get_db_client)):
    return clients.list_deleted_clients(db)


@router.get("/clients/{client_id}", response_model=Client)
def get_client(client_id: str, db: DbClient = Depends(get_db_client)):
    client = clients.get_client(db, client_id)
    if client is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return client


@router.post("/clients", response_model=Client, status_code=201)
def create_client(
    payload: ClientPayload,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return clients.create_client(db, payload, user.id)


@router.put("/clients/{client_id}", response_model=Client)
def update_client(
    client_id: str, payload: ClientPayload, db: DbClient = Depends(get_db_client)
):
    return clients.update_client(db, client_id, payload)


@router.delete("/clients/{client_id}", response_model=OperationResponse)
def delete_client(
    client_id: str,
    response: Response,
    reason: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return _operation(clients.delete_client(db, client_id, reason, user.id), response)


# --- Cases ---


@router.get("/cases", response_model=list[LegalCase])
def list_cases(search: str = "", db: DbClient = Depends(get_db_client)):
    return cases.list_cases(db, search)


@router.get("/cases/{case_id}", response_model=LegalCase)
def get_case(case_id: str, db: DbClient = Depends(get_db_client)):
    legal_case = cases.get_case(db, case_id)
    if legal_case is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return legal_case


@router.post("/cases", response_model=LegalCase, status_code=201)
def create_case(
    payload: CasePayload,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return cases.create_case(db, payload, user.id)


@router.put("/cases/{case_id}", response_model=LegalCase)
def update_case(case_id: str, payload: CasePayload, db: DbClient = Depends(get_db_client)):
    return cases.update_case(db, case_id, payload)


@router.delete("/cases/{case_id}", response_model=OperationResponse)
def delete_case(
    case_id: str,
    response: Response,
    reason: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return _operation(cases.delete_case(db, case_id, reason, user.id), response)


@router.get("/cases/{case_id}/timeline", response_model=list[CaseHistoryItem])
def case_timeline(case_id: str, db: DbClient = Depends(get_db_client)):
    return cases.case_timeline(db, case_id)


@router.get("/cases/{case_id}/history", response_model=list[CaseHistoryItem])
def list_case_history(case_id: str, db: DbClient = Depends(get_db_client)):
    return case_history.list_history(db, case_id)


@router.post(
    "/cases/{case_id}/history", response_model=CaseHistoryItem, status_code=201
)
def add_case_history(
    case_id: str,
    payload: CaseHistoryPayload,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return case_history.add_history_item(db, case_id, payload, user.id)


@router.delete("/cases/{case_id}/history/{item_id}", status_code=204)
def delete_case_history(case_id: str, item_id: str, db: DbClient = Depends(get_db_client)):
    if not case_history.delete_history_item(db, item_id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return Response(status_code=204)


# --- Counterparts ---


@router.get("/counterparts", response_model=list[Counterpart])
def list_counterparts(search: str = "", db: DbClient = Depends(get_db_client)):
    return counterparts.list_counterparts(db, search)


@router.get("/counterparts/deleted", response_model=list[Counterpart])
def list_deleted_counterparts(db: DbClient = Depends(get_db_client)):
    return counterparts.list_deleted_counterparts(db)


@router.post("/counterparts", response_model=Counterpart, status_code=201)
def create_counterpart(payload: CounterpartPayload, db: DbClient = Depends(get_db_client)):
    return counterparts.create_counterpart(db, payload)


@router.put("/counterparts/{counterpart_id}", response_model=Counterpart)
def update_counterpart(
    counterpart_id: str,
    payload: CounterpartPayload,
    db: DbClient = Depends(get_db_client),
):
    return counterparts.update_counterpart(db, counterpart_id, payload)


@router.delete("/counterparts/{counterpart_id}", response_model=OperationResponse)
def delete_counterpart(
    counterpart_id: str,
    response: Response,
    reason: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    result = counterparts.delete_counterpart(db, counterpart_id, reason, user.id)
    return _operation(result, response)


@router.post("/counterparts/{counterpart_id}/restore", response_model=OperationResponse)
def restore_counterpart(
    counterpart_id: str, response: Response, db: DbClient = Depends(get_db_client)
):
    return _operation(counterparts.restore_counterpart(db, counterpart_id), response)


@router.delete("/counterparts/{counterpart_id}/permanent", status_code=204)
def permanent_delete_counterpart(
    counterpart_id: str, db: DbClient = Depends(get_db_client)
):
    if not counterparts.permanent_delete_counterpart(db, counterpart_id):
        raise HTTPException(status_code=400, detail="Erro ao excluir permanentemente")
    return Response(status_code=204)


# --- Documents ---


@router.get("/documents", response_model=UploadDocumentsResponse)
def list_documents(
    search: str = "",
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    return UploadDocumentsResponse(
        documents=documents.list_documents(db, storage, search)
    )


@router.post("/documents", response_model=UploadDocumentsResponse, status_code=201)
async def upload_documents(
    files: list[UploadFile] = File(...),
    case_id: Optional[str] = Form(None),
    client_id: Optional[str] = Form(None),
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    if not files:
        raise HTTPException(status_code=400, detail="Nenhum arquivo enviado")
    payloads = []
    for upload in files:
        payloads.append(
            (upload.filename or "arquivo", await upload.read(), upload.content_type)
        )
    uploaded = documents.upload_documents(
        db, storage, payloads, user.id, case_id=case_id, client_id=client_id
    )
    return UploadDocumentsResponse(documents=uploaded)


@router.delete("/documents/{document_id}", response_model=OperationResponse)
def delete_document(
    document_id: str,
    response: Response,
    reason: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    result = documents.delete_document(db, document_id, reason, user.id)
    return _operation(result, response)


@router.get("/documents/{document_id}/download-url", response_model=SignUrlResponse)
def document_download_url(
    document_id: str,
    expires_in: int = Query(3600, ge=60, le=7 * 24 * 3600),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    url = documents.document_download_url(db, storage, document_id, expires_in)
    return SignUrlResponse(url=url)


# --- Agenda ---


@router.get("/agenda", response_model=list[AgendaEvent])
def list_agenda(db: DbClient = Depends(get_db_client)):
    return agenda.list_events(db)


@router.post("/agenda", response_model=AgendaEvent, status_code=201)
def add_agenda_event(
    payload: AgendaEventPayload,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return agenda.add_event(db, payload, user.id)


@router.delete("/agenda/{event_id}", status_code=204)
def delete_agenda_event(event_id: str, db: DbClient = Depends(get_db_client)):
    if not agenda.delete_event(db, event_id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return Response(status_code=204)


# --- Recycle bin ---


@router.get("/recycle-bin", response_model=RecycleBinListResponse)
def list_recycle_bin(
    search: str = "",
    table: str = Query("all", pattern="^(all|clients|legal_cases|counterparts|documents)$"),
    db: DbClient = Depends(get_db_client),
):
    items = recycle_bin.get_recycle_bin_items(db)
    return RecycleBinListResponse(
        items=recycle_bin.filter_recycle_bin_items(items, search, table),
        counts=recycle_bin.count_by_table(items),
    )


@router.post("/recycle-bin", response_model=OperationResponse)
def move_to_recycle_bin(
    payload: MoveToRecycleBinRequest,
    response: Response,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    result = recycle_bin.move_to_recycle_bin(
        db,
        payload.table_name.value,
        payload.record_id,
        reason=payload.reason,
        deleted_by=user.id,
    )
    return _operation(result, response)


@router.post("/recycle-bin/restore", response_model=OperationResponse)
def restore_from_recycle_bin(
    payload: RestoreRequest, response: Response, db: DbClient = Depends(get_db_client)
):
    result = recycle_bin.restore_from_recycle_bin(
        db,
        payload.record_id,
        table_name=payload.table_name.value if payload.table_name else None,
        recycle_bin_id=payload.recycle_bin_id,
    )
    return _operation(result, response)


@router.delete("/recycle-bin/{table_name}/{record_id}", status_code=204)
def permanent_delete(
    table_name: RecycleTable,
    record_id: str,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    if not recycle_bin.permanent_delete_from_recycle_bin(
        db, record_id, table_name.value, storage=storage
    ):
        raise HTTPException(status_code=400, detail="Erro ao excluir permanentemente")
    return Response(status_code=204)


# --- Reports ---


@router.get("/reports/dashboard", response_model=DashboardSummary)
def dashboard(db: DbClient = Depends(get_db_client)):
    return reports.dashboard_summary(
        clients.list_clients(db),
        cases.list_cases(db),
        agenda.list_events(db),
        utc_now().date(),
    )


@router.get("/reports/performance", response_model=PerformanceReport)
def performance(db: DbClient = Depends(get_db_client)):
    return reports.performance_report(
        cases.list_cases(db), clients.list_clients(db), utc_now().date()
    )


@router.get("/reports/schedule", response_model=list[ScheduleItem])
def schedule(
    schedule_filter: str = Query(
        "all", alias="filter", pattern="^(all|today|week|month|overdue)$"
    ),
    db: DbClient = Depends(get_db_client),
):
    return reports.build_schedule(
        cases.list_cases(db),
        clients.list_clients(db),
        agenda.list_events(db),
        utc_now(),
        schedule_filter=schedule_filter,
    )


# --- Deadlines ---


@router.post("/deadlines", response_model=DeadlineResponse)
def deadline(payload: DeadlineRequest):
    due = calculate_deadline(payload.start_date, payload.days, payload.count_type)
    return DeadlineResponse(
        start_date=payload.start_date,
        days=payload.days,
        count_type=payload.count_type,
        due_date=due,
    )


# --- Assistant ---


def _run_assistant(call, *args):
    settings = get_settings()
    try:
        return call(*args, model=settings.gemini_model, api_key=settings.gemini_api_key)
    except assistant.AssistantNotConfigured:
        raise HTTPException(status_code=503, detail="Assistente de IA não configurado.")
    except genai_errors.APIError as exc:
        logger.error("Gemini call failed: %s", exc)
        raise HTTPException(
            status_code=502, detail="Falha ao consultar o assistente de IA."
        ) from exc


@router.post("/assistant/generate", response_model=AssistantResponse)
def generate_text(payload: GenerateTextRequest):
    text = _run_assistant(assistant.generate_legal_text, payload.prompt, payload.context)
    return AssistantResponse(text=text)


@router.post("/assistant/chat", response_model=AssistantResponse)
def chat(payload: ChatRequest):
    text = _run_assistant(assistant.send_chat_message, payload.history, payload.message)
    return AssistantResponse(text=text)


# --- System ---


@router.get("/system/setup-sql", response_model=SetupSqlResponse)
def setup_sql():
    return SetupSqlResponse(sql=RECYCLE_BIN_SQL)
