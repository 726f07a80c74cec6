from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import Settings, get_settings
from backoffice.db import get_db
from backoffice.services.insight_generator import InsightBatchGenerator
from backoffice.services.invoice_workflow import InvoiceWorkflow
from backoffice.services.reconciliation import SalesReconciliationEngine
from backoffice.utils.gemini_client import GeminiClient
from backoffice.utils.storage import build_storage


def get_ai_client(settings: Settings = Depends(get_settings)):
    return GeminiClient(settings)


def get_storage(settings: Settings = Depends(get_settings)):
    return build_storage(settings)


def get_invoice_workflow(
    db: AsyncSession = Depends(get_db),
    ai=Depends(get_ai_client),
    storage=Depends(get_storage),
) -> InvoiceWorkflow:
    return InvoiceWorkflow(db, ai, storage)


def get_reconciliation_engine(
    db: AsyncSession = Depends(get_db),
    ai=Depends(get_ai_client),
    storage=Depends(get_storage),
) -> SalesReconciliationEngine:
    return SalesReconciliationEngine(db, ai, storage)


def get_insight_generator(
    db: AsyncSession = Depends(get_db),
    ai=Depends(get_ai_client),
) -> InsightBatchGenerator:
    return InsightBatchGenerator(db, ai)
