"""Student portal: login, logout and the per-student hostel data."""

from typing import Any, List, Mapping, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from loguru import logger

from ehostelz.core.apex import ApexClient
from ehostelz.core.config import settings
from ehostelz.core.deps import bearer_token, get_apex_client, get_session_store, get_student_context
from ehostelz.core.fetch_errors import raise_for_fetch_error
from ehostelz.core.rate_limit import limiter
from ehostelz.core.sessions import StudentContext, StudentSessionStore
from ehostelz.schemas.student import (
    LedgerPageOut,
    ResetPasswordUpdateIn,
    ResetPasswordVerifyIn,
    ResetPasswordVerifyOut,
    StudentLoginIn,
    StudentLoginOut,
)
from ehostelz.selection.errors import FetchError, RemoteClientError
from ehostelz.services.ledger import ALL, FEES, PAYMENTS, LedgerKind, filter_rows, page_window, paginate, unique_values

router = APIRouter(tags=["student"])


def _segment(value: str) -> str:
    return quote(value, safe="")


async def _forward(client: ApexClient, path: str, params: Optional[dict[str, Any]] = None) -> Any:
    try:
        return await client.get_json(path, params)
    except FetchError as exc:
        raise_for_fetch_error(exc)


def _succeeded(result: Any) -> bool:
    """APEX reports success in the body as `status` plus `code == 200`."""
    return isinstance(result, Mapping) and bool(result.get("status")) and result.get("code") == 200


def _upstream_message(result: Any) -> Optional[str]:
    return result.get("message") if isinstance(result, Mapping) else None


def _hostel_id(context: StudentContext, override: Optional[str]) -> str:
    hostel_id = override or context.hostel_id
    if not hostel_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No hostel selected for this student",
        )
    return hostel_id


@router.post("/student-login", response_model=StudentLoginOut)
@limiter.limit(settings.LOGIN_RATE)
async def student_login(
    request: Request,
    payload: StudentLoginIn,
    client: ApexClient = Depends(get_apex_client),
    store: StudentSessionStore = Depends(get_session_store),
) -> StudentLoginOut:
    try:
        result = await client.post_json(
            "student-login", {"username": payload.username, "password": payload.password}
        )
    except RemoteClientError as exc:
        if exc.status_code in (400, 401, 403):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password"
            )
        raise_for_fetch_error(exc)
    except FetchError as exc:
        raise_for_fetch_error(exc)

    if not _succeeded(result):
        logger.bind(username=payload.username).info("student_login_failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_upstream_message(result) or "Invalid username or password",
        )

    data = result.get("data")
    user_id = data.get("user_id") if isinstance(data, Mapping) else None
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Login response from the hostel backend has no user id",
        )
    hostel_id = data.get("hostel_id")
    context = StudentContext(
        user_id=str(user_id),
        hostel_id=str(hostel_id) if hostel_id is not None else None,
        username=payload.username,
    )
    token = store.create(context)
    logger.bind(user_id=context.user_id).info("student_login")
    return StudentLoginOut(access_token=token, user_id=context.user_id, hostel_id=context.hostel_id)


@router.post("/student-logout")
async def student_logout(
    request: Request,
    store: StudentSessionStore = Depends(get_session_store),
) -> dict[str, str]:
    store.clear(bearer_token(request))
    return {"status": "logged_out"}


@router.post("/reset-password/verify", response_model=ResetPasswordVerifyOut)
@limiter.limit(settings.RESET_PASSWORD_RATE)
async def reset_password_verify(
    request: Request,
    payload: ResetPasswordVerifyIn,
    client: ApexClient = Depends(get_apex_client),
) -> ResetPasswordVerifyOut:
    """Check that the CNIC and mobile number belong to one student."""

    try:
        result = await client.post_json(
            "reset-password/verify", {"cnic": payload.cnic, "mobile": payload.mobile}
        )
    except RemoteClientError as exc:
        if exc.status_code in (400, 401, 403, 404):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="CNIC and mobile number do not match",
            )
        raise_for_fetch_error(exc)
    except FetchError as exc:
        raise_for_fetch_error(exc)

    if not _succeeded(result):
        logger.info("reset_password_verify_failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_upstream_message(result) or "Verification failed",
        )
    data = result.get("data")
    user_id = data.get("user_id") if isinstance(data, Mapping) else None
    return ResetPasswordVerifyOut(
        user_id=str(user_id) if user_id is not None else None,
        message=_upstream_message(result),
    )


@router.post("/reset-password/update")
@limiter.limit(settings.RESET_PASSWORD_RATE)
async def reset_password_update(
    request: Request,
    payload: ResetPasswordUpdateIn,
    client: ApexClient = Depends(get_apex_client),
) -> dict[str, str]:
    try:
        result = await client.post_json(
            "reset-password/update",
            {"user_id": payload.user_id, "new_password": payload.new_password},
        )
    except RemoteClientError as exc:
        if exc.status_code in (400, 401, 403, 404):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Password could not be updated"
            )
        raise_for_fetch_error(exc)
    except FetchError as exc:
        raise_for_fetch_error(exc)

    if not _succeeded(result):
        logger.bind(user_id=payload.user_id).info("reset_password_update_failed")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_upstream_message(result) or "Password could not be updated",
        )
    logger.bind(user_id=payload.user_id).info("reset_password_updated")
    return {"status": "updated"}


@router.get("/student/hostels")
async def student_hostels(
    context: StudentContext = Depends(get_student_context),
    client: ApexClient = Depends(get_apex_client),
):
    result = await _forward(client, f"student-hostels/{_segment(context.user_id)}")
    data = result.get("data") if isinstance(result, Mapping) else None
    if isinstance(data, Mapping) and data.get("hostel_id") is not None and not context.hostel_id:
        # The dashboard works against the hostel the backend reports for this student.
        context.hostel_id = str(data["hostel_id"])
    return result


@router.get("/student/profile")
async def student_profile(
    hostel_id: Optional[str] = Query(default=None),
    context: StudentContext = Depends(get_student_context),
    client: ApexClient = Depends(get_apex_client),
):
    hostel = _hostel_id(context, hostel_id)
    return await _forward(client, f"student-profile/{_segment(context.user_id)}/{_segment(hostel)}")


@router.get("/student/allotments")
async def student_allotments(
    hostel_id: Optional[str] = Query(default=None),
    context: StudentContext = Depends(get_student_context),
    client: ApexClient = Depends(get_apex_client),
):
    hostel = _hostel_id(context, hostel_id)
    return await _forward(client, f"student-allotments/{_segment(context.user_id)}/{_segment(hostel)}")


async def _ledger_rows(
    client: ApexClient, path: str, allotment_id: Optional[str]
) -> List[Mapping[str, Any]]:
    params = {"allotment_id": allotment_id} if allotment_id and allotment_id != ALL else None
    result = await _forward(client, path, params)
    rows = result.get("data") if isinstance(result, Mapping) else result
    if rows is None:
        return []
    if not isinstance(rows, list) or not all(isinstance(row, Mapping) for row in rows):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Unexpected ledger response from the hostel backend",
        )
    return rows


def _ledger_page(
    rows: List[Mapping[str, Any]],
    kind: LedgerKind,
    *,
    search: str,
    status_filter: str,
    month: str,
    page: int,
    page_size: int,
) -> LedgerPageOut:
    matched = filter_rows(rows, kind, search=search, status=status_filter, month=month)
    current = paginate(matched, page, page_size)
    return LedgerPageOut(
        rows=[dict(row) for row in current.rows],
        page=current.page,
        page_size=current.page_size,
        total=current.total,
        total_pages=current.total_pages,
        start=current.start,
        end=current.end,
        pages=page_window(current.page, current.total_pages),
        statuses=unique_values(rows, kind.status_field),
        months=unique_values(rows, "month_of"),
    )


@router.get("/student/fees", response_model=LedgerPageOut)
async def student_fees(
    hostel_id: Optional[str] = Query(default=None),
    allotment_id: Optional[str] = Query(default=None),
    search: str = Query(default=""),
    status_filter: str = Query(default=ALL, alias="status"),
    month: str = Query(default=ALL),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=settings.LEDGER_PAGE_SIZE, ge=1, le=100),
    context: StudentContext = Depends(get_student_context),
    client: ApexClient = Depends(get_apex_client),
) -> LedgerPageOut:
    hostel = _hostel_id(context, hostel_id)
    rows = await _ledger_rows(
        client, f"student-fees/{_segment(context.user_id)}/{_segment(hostel)}", allotment_id
    )
    return _ledger_page(
        rows, FEES, search=search, status_filter=status_filter, month=month, page=page, page_size=page_size
    )


@router.get("/student/payments", response_model=LedgerPageOut)
async def student_payments(
    hostel_id: Optional[str] = Query(default=None),
    allotment_id: Optional[str] = Query(default=None),
    search: str = Query(default=""),
    status_filter: str = Query(default=ALL, alias="status"),
    month: str = Query(default=ALL),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=settings.LEDGER_PAGE_SIZE, ge=1, le=100),
    context: StudentContext = Depends(get_student_context),
    client: ApexClient = Depends(get_apex_client),
) -> LedgerPageOut:
    hostel = _hostel_id(context, hostel_id)
    rows = await _ledger_rows(
        client, f"student-payments/{_segment(context.user_id)}/{_segment(hostel)}", allotment_id
    )
    return _ledger_page(
        rows, PAYMENTS, search=search, status_filter=status_filter, month=month, page=page, page_size=page_size
    )
