from pydantic import BaseModel, ConfigDict
from typing import Any, Dict, Optional
from datetime import datetime

from backoffice.models.ai_insight import InsightEntityKind
from backoffice.schemas.kpi import KpiRead


class AiInsightRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    entity_kind: InsightEntityKind
    entity_id: str
    data: Dict[str, Any]
    created_at: datetime
    kpi: Optional[KpiRead] = None


class AiInsightDetail(AiInsightRead):
    entity: Optional[Dict[str, Any]] = None


class InsightBatchRead(BaseModel):
    message: str
    generated: int
    errors: list = []
