"""Initial back-office schema: suppliers, costing, invoices, reconciliation, insights, staff"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers, used by Alembic.
revision = "20260301_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "suppliers",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("company_name", sa.String(), nullable=False),
        sa.Column("abn", sa.String(), nullable=True),
        sa.Column("primary_contact_person", sa.String(), nullable=True),
        sa.Column("email_address", sa.String(), nullable=True),
        sa.Column("phone_number", sa.String(), nullable=True),
        sa.Column("street_address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("postcode", sa.String(), nullable=True),
        sa.Column("product_categories", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "ingredients",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("unit", sa.String(), nullable=False),
        sa.Column("supplier_id", sa.String(), sa.ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("brand", sa.String(), nullable=True),
        sa.Column("storage_type", sa.String(), nullable=True),
        sa.Column("reorder_level", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    # --- append-only price log; an ingredient's price is its newest row
    op.create_table(
        "ingredient_price_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ingredient_id", sa.String(), sa.ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("log_date", sa.DateTime(), nullable=False),
        sa.CheckConstraint("price >= 0", name="ck_price_history_price_nonneg"),
    )
    op.create_index("idx_price_history_ingredient_date", "ingredient_price_history", ["ingredient_id", "log_date"])

    op.create_table(
        "recipes",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("selling_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("target_margin", sa.Numeric(5, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "recipe_ingredients",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("recipe_id", sa.String(), sa.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ingredient_id", sa.String(), sa.ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quantity", sa.Numeric(10, 3), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("recipe_id", "ingredient_id", name="uq_recipe_ingredient"),
    )
    op.create_index("idx_recipe_ingredients_recipe", "recipe_ingredients", ["recipe_id"])

    op.create_table(
        "invoices",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("supplier_id", sa.String(), sa.ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("invoice_number", sa.String(), nullable=False, unique=True),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("invoice_file", sa.String(), nullable=True),
        sa.Column("file_mime_type", sa.String(), nullable=True),
        sa.Column("total", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="uploaded"),
        sa.Column("extracted_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("idx_invoices_supplier", "invoices", ["supplier_id"])
    op.create_index("idx_invoices_status", "invoices", ["status"])

    op.create_table(
        "sales_reconciliations",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("branch", sa.String(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("receipt_file_path", sa.String(), nullable=True),
        sa.Column("receipt_mime_type", sa.String(), nullable=True),
        sa.Column("total_sales_from_receipt", sa.Numeric(12, 2), nullable=True),
        sa.Column("recipe_breakdown", sa.JSON(), nullable=True),
        sa.Column("total_breakdown_sales", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_cogs", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("variance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    # --- one non-terminal record per branch and day
    op.create_index(
        "uq_sales_reconciliations_active_day",
        "sales_reconciliations",
        ["branch", "date"],
        unique=True,
        postgresql_where=sa.text("status <> 'reconciled'"),
        sqlite_where=sa.text("status <> 'reconciled'"),
    )
    op.create_index("idx_sales_reconciliations_branch_date", "sales_reconciliations", ["branch", "date"])

    insight_kind = sa.Enum("SUPPLIER", "RECIPE", "INGREDIENT", name="insightentitykind")
    op.create_table(
        "ai_insights",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("entity_kind", insight_kind, nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("idx_ai_insights_entity", "ai_insights", ["entity_kind", "entity_id"])

    op.create_table(
        "kpis",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("ai_insight_id", sa.String(), sa.ForeignKey("ai_insights.id", ondelete="SET NULL"), nullable=True, unique=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("baseline_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("target_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit", sa.String(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("milestones", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "teams",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True, unique=True),
        sa.Column("position", sa.String(), nullable=True),
        sa.Column("branch", sa.String(), nullable=True),
        sa.Column("employment_type", sa.String(), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("staff_code", sa.String(), nullable=True, unique=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    timesheet_status = sa.Enum("ACTIVE", "ON_BREAK", "COMPLETED", name="timesheetstatus")
    op.create_table(
        "timesheets",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("team_id", sa.String(), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        # store UTC timestamps (render to local at UI)
        sa.Column("clock_in", sa.DateTime(timezone=False), nullable=False),
        sa.Column("clock_out", sa.DateTime(timezone=False), nullable=True),
        sa.Column("break_start", sa.DateTime(timezone=False), nullable=True),
        sa.Column("break_end", sa.DateTime(timezone=False), nullable=True),
        sa.Column("status", timesheet_status, nullable=False, server_default="ACTIVE"),
        sa.Column("entry_type", sa.String(), nullable=False, server_default="clock"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("gross_pay", sa.Numeric(10, 2), nullable=True),
        sa.CheckConstraint("duration_minutes IS NULL OR duration_minutes >= 0", name="ck_timesheets_duration_nonneg"),
        sa.CheckConstraint("gross_pay IS NULL OR gross_pay >= 0", name="ck_timesheets_gross_nonneg"),
    )
    op.create_index("ix_timesheets_team_id", "timesheets", ["team_id"])
    op.create_index("ix_timesheets_team_status", "timesheets", ["team_id", "status"])

    op.create_table(
        "rosters",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column("day", sa.String(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("target", sa.Integer(), nullable=False, server_default="6"),
        sa.Column("assigned_staff", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("idx_rosters_week_start", "rosters", ["week_start"])


def downgrade():
    op.drop_index("idx_rosters_week_start", table_name="rosters")
    op.drop_table("rosters")
    op.drop_index("ix_timesheets_team_status", table_name="timesheets")
    op.drop_index("ix_timesheets_team_id", table_name="timesheets")
    op.drop_table("timesheets")
    op.drop_table("teams")
    op.drop_table("kpis")
    op.drop_index("idx_ai_insights_entity", table_name="ai_insights")
    op.drop_table("ai_insights")
    op.drop_index("idx_sales_reconciliations_branch_date", table_name="sales_reconciliations")
    op.drop_index("uq_sales_reconciliations_active_day", table_name="sales_reconciliations")
    op.drop_table("sales_reconciliations")
    op.drop_index("idx_invoices_status", table_name="invoices")
    op.drop_index("idx_invoices_supplier", table_name="invoices")
    op.drop_table("invoices")
    op.drop_index("idx_recipe_ingredients_recipe", table_name="recipe_ingredients")
    op.drop_table("recipe_ingredients")
    op.drop_table("recipes")
    op.drop_index("idx_price_history_ingredient_date", table_name="ingredient_price_history")
    op.drop_table("ingredient_price_history")
    op.drop_table("ingredients")
    op.drop_table("suppliers")

    # Postgres keeps enum types after the tables go
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS timesheetstatus")
        op.execute("DROP TYPE IF EXISTS insightentitykind")
