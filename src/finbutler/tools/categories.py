"""Category tools."""

from __future__ import annotations

from finbutler.errors import ValidationError
from finbutler.tools.context import FinanceContext
from finbutler.tools.response import ToolResponse, tool_boundary

_PURPOSES = {
    "rename": "rename this category",
    "delete": "delete this category (only possible if no transactions use it)",
}


def _require_name(value: str | None, field: str = "Category name") -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError(f"{field} is required.")
    return name


@tool_boundary("Failed to create category.")
async def create_category(ctx: FinanceContext, user_id: str, category_name: str) -> ToolResponse:
    category = await ctx.stores.categories.create(user_id, _require_name(category_name))
    return ToolResponse.ok(f'Category "{category["name"]}" created.', category)


@tool_boundary("Failed to list categories.")
async def list_categories(
    ctx: FinanceContext, user_id: str, search_name: str | None = None
) -> ToolResponse:
    categories = await ctx.stores.categories.list(user_id, search=search_name)
    message = f"Found {len(categories)} categories." if categories else "No categories found."
    return ToolResponse.ok(message, categories)


@tool_boundary("Failed to identify category.")
async def identify_category_for_action(
    ctx: FinanceContext, user_id: str, category_identifier: str, action: str = "delete"
) -> ToolResponse:
    if action not in _PURPOSES:
        raise ValidationError(f"Unsupported category action: {action!r}.")
    return await ctx.identify(
        user_id, "category", category_identifier, action=action, purpose=_PURPOSES[action]
    )


@tool_boundary("Failed to delete category.")
async def execute_confirmed_delete_category(
    ctx: FinanceContext, user_id: str, category_id: str
) -> ToolResponse:
    await ctx.gate.execute(user_id, "category", category_id, "delete")
    return ToolResponse.ok(f"Category (ID: {category_id}) deleted.")


@tool_boundary("Failed to rename category.")
async def execute_confirmed_update_category_name(
    ctx: FinanceContext, user_id: str, category_id: str, new_category_name: str
) -> ToolResponse:
    name = _require_name(new_category_name, "New category name")
    category = await ctx.gate.execute(user_id, "category", category_id, "rename", name=name)
    return ToolResponse.ok(f'Category (ID: {category_id}) renamed to "{name}".', category)
