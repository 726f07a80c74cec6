import copy
from decimal import Decimal

from backoffice.crud import ingredient as ingredient_crud
from backoffice.crud import recipe as recipe_crud
from backoffice.crud import supplier as supplier_crud
from backoffice.schemas.ingredient import IngredientCreate
from backoffice.schemas.recipe import RecipeCreate, RecipeLineIn
from backoffice.schemas.supplier import SupplierCreate
from backoffice.utils.storage import StorageError


class FakeAiClient:
    """Stands in for GeminiClient; each response may be a dict, an exception or a callable."""

    def __init__(self, invoice=None, receipt=None, insight=None):
        self.invoice = invoice
        self.receipt = receipt
        self.insight = insight
        self.calls = []

    def _answer(self, response, *args):
        if callable(response):
            response = response(*args)
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)

    async def extract_invoice(self, content, mime_type):
        self.calls.append(("invoice", mime_type))
        return self._answer(self.invoice)

    async def extract_receipt(self, content, mime_type):
        self.calls.append(("receipt", mime_type))
        return self._answer(self.receipt)

    async def summarize_insight(self, payload):
        self.calls.append(("insight", payload))
        return self._answer(self.insight, payload)


class InMemoryStorage:
    def __init__(self):
        self.files = {}

    async def put(self, key, body, content_type):
        self.files[key] = (body, content_type)
        return key

    async def get(self, key):
        if key not in self.files:
            raise StorageError("File not found on the server.")
        return self.files[key][0]

    async def delete(self, key):
        self.files.pop(key, None)


class BrokenStorage(InMemoryStorage):
    """Storage whose disk or bucket refuses writes."""

    async def put(self, key, body, content_type):
        raise StorageError("Could not store file: No space left on device")


async def make_supplier(db, company_name="Metro Coffee Co"):
    return await supplier_crud.create_supplier(db, SupplierCreate(company_name=company_name))


async def make_ingredient(db, name, price, unit="kg", supplier_id=None):
    return await ingredient_crud.create_ingredient(
        db,
        IngredientCreate(name=name, unit=unit, current_price=Decimal(str(price)), supplier_id=supplier_id),
    )


async def make_recipe(db, name, selling_price, lines):
    """lines: [(ingredient, quantity), ...]"""
    recipe, missing = await recipe_crud.create_recipe(
        db,
        RecipeCreate(
            name=name,
            selling_price=Decimal(str(selling_price)),
            ingredients=[
                RecipeLineIn(ingredient_id=ing.id, quantity=Decimal(str(qty))) for ing, qty in lines
            ],
        ),
    )
    assert not missing
    return recipe
