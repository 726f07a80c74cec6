from . import supplier
from . import ingredient
from . import recipe
from . import invoice
from . import reconciliation
from . import insight
from . import kpi
from . import team
from . import roster

__all__ = [
    "supplier",
    "ingredient",
    "recipe",
    "invoice",
    "reconciliation",
    "insight",
    "kpi",
    "team",
    "roster",
]
