"""/v1/budget - Budget plans, planned items and conversion into obligations"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from paytrack.api.dependencies import get_today
from paytrack.api.v1.schemas import (
    BudgetItemCreate,
    BudgetItemSchema,
    BudgetPlanCreate,
    BudgetPlanSchema,
    ConversionResponse,
    ObligationSchema,
)
from paytrack.infrastructure.database.session import get_db
from paytrack.services import budgets as service

router = APIRouter()


@router.post("/budget/plans", response_model=BudgetPlanSchema, status_code=201)
def create_plan(body: BudgetPlanCreate, db: Session = Depends(get_db)):
    plan = service.create_budget_plan(db, body.plan_name, body.start_date, body.end_date, body.project_id)
    return BudgetPlanSchema(
        id=plan.id,
        plan_name=plan.plan_name,
        start_date=plan.start_date,
        end_date=plan.end_date,
        project_id=plan.project_id,
    )


@router.post("/budget/plans/{plan_id}/items", response_model=BudgetItemSchema, status_code=201)
def add_item(plan_id: int, body: BudgetItemCreate, db: Session = Depends(get_db)):
    item = service.add_budget_item(db, plan_id, **body.model_dump())
    return BudgetItemSchema.from_domain(item)


@router.get("/budget/items", response_model=List[BudgetItemSchema])
def list_items(
    plan_id: Optional[int] = Query(None),
    converted: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
):
    return [BudgetItemSchema.from_domain(i) for i in service.list_budget_items(db, plan_id, converted)]


@router.post("/budget/items/{item_id}/convert", response_model=ConversionResponse, status_code=201)
def convert_item(item_id: int, db: Session = Depends(get_db), today: date = Depends(get_today)):
    """
    Turn a budget item into real obligations.

    Errors:
        409 conversion_error when the item was already converted
    """
    obligations = service.convert_budget_item(db, item_id, today)
    return ConversionResponse(
        budget_item_id=item_id,
        obligations=[ObligationSchema.from_domain(o) for o in obligations],
    )
