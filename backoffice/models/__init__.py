from .base import Base
from .supplier import Supplier
from .ingredient import Ingredient, IngredientPriceHistory
from .recipe import Recipe, RecipeIngredient
from .invoice import Invoice, InvoiceStatus
from .sales_reconciliation import SalesReconciliation, ReconciliationStatus
from .ai_insight import AiInsight, InsightEntityKind
from .kpi import Kpi
from .team import Team
from .timesheet import Timesheet, TimesheetStatus
from .roster import Roster
