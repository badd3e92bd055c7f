"""API Routes for expenses"""
import json
import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from services import expenses_service
from services.expenses_service import ExpenseValidationError
from services.expense_store import ExpenseStore
from utils.config import Settings

router = APIRouter()
logger = logging.getLogger(__name__)

# --- Dependency Functions ---
def get_expense_store(request: Request) -> ExpenseStore:
    """Dependency to get the expense store owned by the application."""
    store = getattr(request.app.state, "expense_store", None)
    if store is None:
        logger.error("Expense store not found in application state. Was the lifespan run?")
        raise HTTPException(status_code=503, detail="Expense store not available.")
    return store

def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or Settings()

# Type hints for the dependencies
ExpenseStoreDep = Annotated[ExpenseStore, Depends(get_expense_store)]
SettingsDep = Annotated[Settings, Depends(get_settings)]

async def read_json_body(request: Request):
    """Decodes the request body as JSON. Unparseable bodies become an empty record."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError, RecursionError):
        logger.warning(f"Unparseable request body ({len(raw)} bytes) treated as an empty record.")
        return {}

# --- API Routes ---

@router.get("/expenses", summary="Get All Expenses", description="Returns every expense held in memory with the total count.")
async def get_expenses(store: ExpenseStoreDep, settings: SettingsDep):
    logger.info("GET /expenses endpoint called.")
    try:
        expenses = expenses_service.get_all_expenses(store, newest_first=settings.list_newest_first)
        return {"data": [e.model_dump(mode='json') for e in expenses], "total": len(expenses)}
    except Exception as e:
        logger.exception(f"Unexpected error fetching expenses: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

@router.post("/expenses", status_code=201, summary="Add Expense", description="Validates and stores a new expense. Expects {amount, description, category?, date?}.")
async def create_expense(request: Request, store: ExpenseStoreDep, settings: SettingsDep):
    logger.info("POST /expenses endpoint called.")
    try:
        payload = await read_json_body(request)
        expense = expenses_service.add_expense(store, payload, require_all_fields=settings.require_all_fields)
        return {"message": "Expense added successfully", "expense": expense.model_dump(mode='json')}
    except ExpenseValidationError as ve:
        return JSONResponse(status_code=400, content=ve.to_dict())
    except Exception as e:
        logger.exception(f"Unexpected error adding expense: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

@router.options("/expenses", status_code=204, summary="Preflight", description="Answers OPTIONS with an empty body.")
async def expenses_options():
    return Response(status_code=204)
