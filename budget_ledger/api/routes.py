from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from budget_ledger.api.deps import get_clock, get_current_user_id, require_scheduler
from budget_ledger.core.clock import Clock
from budget_ledger.core.config import get_settings
from budget_ledger.core.money import format_amount, to_decimal
from budget_ledger.db.session import get_session
from budget_ledger.schemas.budgets import (
    AllocationCreate,
    AllocationResponse,
    BudgetAllocationSummary,
    BudgetPayload,
    BudgetResponse,
    BudgetSpending,
    MessageResponse,
    WeeklyBudgetCreate,
    WeeklyBudgetResponse,
)
from budget_ledger.schemas.dashboard import DashboardResponse
from budget_ledger.schemas.expenses import ExpenseCreate, ExpenseRecorded, ExpenseResponse
from budget_ledger.schemas.rollover import DailyResetReport, WeeklySettlementReport
from budget_ledger.schemas.users import UserCreate, UserResponse
from budget_ledger.schemas.wallets import (
    AddFundsRequest,
    AddFundsResponse,
    WalletCreate,
    WalletHistory,
    WalletResponse,
    WalletUpdate,
)
from budget_ledger.services import budgets, daily, dashboard, rollover, users, wallets

router = APIRouter()

SessionDep = Annotated[AsyncSession, Depends(get_session)]
UserId = Annotated[int, Depends(get_current_user_id)]
ClockDep = Annotated[Clock, Depends(get_clock)]


@router.get("/healthz", response_model=dict)
async def healthz() -> dict:
    return {"status": "ok"}


# Users


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreate, session: SessionDep) -> UserResponse:
    user = await users.create_user(session, body.email, body.name)
    return UserResponse.model_validate(user)


@router.get("/users/me", response_model=UserResponse)
async def get_me(session: SessionDep, user_id: UserId) -> UserResponse:
    return UserResponse.model_validate(await users.get_user(session, user_id))


# Wallets


@router.get("/wallets", response_model=list[WalletResponse])
async def list_wallets(session: SessionDep, user_id: UserId) -> list[WalletResponse]:
    return [WalletResponse.model_validate(w) for w in await wallets.list_wallets(session, user_id)]


@router.post("/wallets", response_model=WalletResponse, status_code=status.HTTP_201_CREATED)
async def create_wallet(
    body: WalletCreate, session: SessionDep, user_id: UserId, clock: ClockDep
) -> WalletResponse:
    wallet = await wallets.create_wallet(session, clock, user_id, body.name, body.type, body.balance)
    return WalletResponse.model_validate(wallet)


@router.get("/wallets/{wallet_id}", response_model=WalletResponse)
async def get_wallet(wallet_id: int, session: SessionDep, user_id: UserId) -> WalletResponse:
    return WalletResponse.model_validate(await wallets.get_owned_wallet(session, user_id, wallet_id))


@router.put("/wallets/{wallet_id}", response_model=WalletResponse)
async def update_wallet(
    wallet_id: int, body: WalletUpdate, session: SessionDep, user_id: UserId
) -> WalletResponse:
    wallet = await wallets.update_wallet(session, user_id, wallet_id, body.name, body.type)
    return WalletResponse.model_validate(wallet)


@router.delete("/wallets/{wallet_id}", response_model=MessageResponse)
async def delete_wallet(wallet_id: int, session: SessionDep, user_id: UserId) -> MessageResponse:
    await wallets.delete_wallet(session, user_id, wallet_id)
    return MessageResponse(message="Dompet berhasil dihapus")


@router.post("/wallets/{wallet_id}/add-funds", response_model=AddFundsResponse)
async def add_funds(
    wallet_id: int, body: AddFundsRequest, session: SessionDep, user_id: UserId, clock: ClockDep
) -> AddFundsResponse:
    wallet = await wallets.add_funds(session, clock, user_id, wallet_id, body.amount)
    added = to_decimal(body.amount)
    return AddFundsResponse(
        message=f"Saldo {format_amount(added, get_settings().currency)} berhasil ditambahkan",
        new_balance=wallet.balance,
        amount_added=added,
    )


@router.get("/wallets/{wallet_id}/history", response_model=WalletHistory)
async def wallet_history(wallet_id: int, session: SessionDep, user_id: UserId) -> WalletHistory:
    wallet, items = await wallets.list_wallet_history(session, user_id, wallet_id)
    return WalletHistory(wallet=WalletResponse.model_validate(wallet), items=items, total=len(items))


# Budgets


@router.get("/budgets", response_model=list[BudgetResponse])
async def list_budgets(session: SessionDep, user_id: UserId) -> list[BudgetResponse]:
    return [BudgetResponse.model_validate(b) for b in await budgets.list_budgets(session, user_id)]


@router.post("/budgets", response_model=BudgetResponse, status_code=status.HTTP_201_CREATED)
async def create_budget(body: BudgetPayload, session: SessionDep, user_id: UserId) -> BudgetResponse:
    budget = await budgets.create_budget(session, user_id, **body.model_dump())
    return BudgetResponse.model_validate(budget)


@router.get("/budgets/{budget_id}", response_model=BudgetResponse)
async def get_budget(budget_id: int, session: SessionDep, user_id: UserId) -> BudgetResponse:
    return BudgetResponse.model_validate(await budgets.get_budget(session, user_id, budget_id))


@router.put("/budgets/{budget_id}", response_model=BudgetResponse)
async def update_budget(
    budget_id: int, body: BudgetPayload, session: SessionDep, user_id: UserId
) -> BudgetResponse:
    budget = await budgets.update_budget(session, user_id, budget_id, **body.model_dump())
    return BudgetResponse.model_validate(budget)


@router.delete("/budgets/{budget_id}", response_model=MessageResponse)
async def delete_budget(budget_id: int, session: SessionDep, user_id: UserId) -> MessageResponse:
    await budgets.delete_budget(session, user_id, budget_id)
    return MessageResponse(message="Budget berhasil dihapus. Saldo dompet telah dikembalikan.")


@router.get("/budgets/{budget_id}/expenses", response_model=BudgetSpending)
async def budget_spending(
    budget_id: int, session: SessionDep, user_id: UserId, clock: ClockDep
) -> BudgetSpending:
    return await budgets.get_budget_spending(session, clock, user_id, budget_id)


@router.get("/budgets/{budget_id}/allocations", response_model=BudgetAllocationSummary)
async def budget_allocations(
    budget_id: int, session: SessionDep, user_id: UserId, clock: ClockDep
) -> BudgetAllocationSummary:
    return await budgets.get_budget_allocation_summary(session, clock, user_id, budget_id)


@router.post(
    "/weekly-budgets", response_model=WeeklyBudgetResponse, status_code=status.HTTP_201_CREATED
)
async def create_weekly_budget(
    body: WeeklyBudgetCreate, session: SessionDep, user_id: UserId
) -> WeeklyBudgetResponse:
    weekly = await budgets.create_weekly_budget(
        session, user_id, body.budget_id, body.week_number, body.planned_amount
    )
    return WeeklyBudgetResponse.model_validate(weekly)


# Allocations


@router.post("/allocations", response_model=AllocationResponse, status_code=status.HTTP_201_CREATED)
async def create_allocation(
    body: AllocationCreate, session: SessionDep, user_id: UserId
) -> AllocationResponse:
    allocation = await budgets.create_allocation(
        session, user_id, body.budget_id, body.wallet_id, body.amount
    )
    return AllocationResponse.model_validate(allocation)


@router.delete("/allocations/{allocation_id}", response_model=MessageResponse)
async def delete_allocation(allocation_id: int, session: SessionDep, user_id: UserId) -> MessageResponse:
    await budgets.delete_allocation(session, user_id, allocation_id)
    return MessageResponse(message="Alokasi berhasil dihapus dan saldo dompet dikurangi")


# Expenses


@router.get("/expenses", response_model=list[ExpenseResponse])
async def list_today_expenses(
    session: SessionDep, user_id: UserId, clock: ClockDep
) -> list[ExpenseResponse]:
    expenses = await daily.list_today_expenses(session, clock, user_id)
    return [ExpenseResponse.model_validate(e) for e in expenses]


@router.post("/expenses", response_model=ExpenseRecorded, status_code=status.HTTP_201_CREATED)
async def record_expense(
    body: ExpenseCreate, session: SessionDep, user_id: UserId, clock: ClockDep
) -> ExpenseRecorded:
    return await daily.record_expense(session, clock, user_id, body.wallet_id, body.amount, body.note)


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(session: SessionDep, user_id: UserId, clock: ClockDep) -> DashboardResponse:
    return await dashboard.get_dashboard(session, clock, user_id)


# Scheduler


@router.post(
    "/cron/daily-reset",
    response_model=DailyResetReport,
    dependencies=[Depends(require_scheduler)],
)
async def daily_reset(session: SessionDep, clock: ClockDep) -> DailyResetReport:
    return await rollover.run_daily_reset(session, clock)


@router.post(
    "/cron/weekly-calculate",
    response_model=WeeklySettlementReport,
    dependencies=[Depends(require_scheduler)],
)
async def weekly_calculate(
    session: SessionDep,
    clock: ClockDep,
    week_start: Annotated[date | None, Query()] = None,
) -> WeeklySettlementReport:
    return await rollover.run_weekly_settlement(session, clock, week_start)
