from .supplier import SupplierCreate, SupplierRead
from .ingredient import IngredientCreate, IngredientUpdate, IngredientRead, PriceHistoryRead
from .recipe import RecipeCreate, RecipeUpdate, RecipeRead, RecipeLineIn, RecipeLineRead
from .invoice import (
    InvoiceRead,
    InvoiceStats,
    InvoiceList,
    InvoiceLineIn,
    InvoiceItemsUpdate,
    InvoiceOutcome,
)
from .reconciliation import (
    BreakdownItemIn,
    BreakdownUpdate,
    SalesReconciliationRead,
    ReconciliationOutcome,
    ReconciliationDashboard,
)
from .kpi import Milestone, KpiCreate, KpiRead
from .insight import AiInsightRead, AiInsightDetail, InsightBatchRead
from .timesheet import TeamAction, ManualTimeEntry, TimesheetRead
from .roster import RosterShiftIn, RosterSave, RosterRead
