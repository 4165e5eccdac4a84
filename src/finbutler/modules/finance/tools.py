"""Finance MCP tool registrations.

All ``@mcp.tool()`` closures live here. Called once during host startup via
``register_tools(mcp, module)``. Every closure forwards to the plain async
tool of the same name in :mod:`finbutler.tools`, via ``module.call`` which
supplies the context and the current user.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import Field

DurationType = Literal["year", "month", "week", "day", "custom"]
TransactionType = Literal["income", "expense"]
DebtType = Literal["given", "taken"]

_Amount = Annotated[float, Field(gt=0, description="Positive amount. Example: 1250.50")]
_Month = Annotated[int, Field(ge=1, le=12, description="Month (1-12). Example: 8 for August")]
_Year = Annotated[int, Field(ge=1900, le=2100, description="Year. Example: 2024")]
_ConfirmedId = Annotated[
    str,
    Field(description="The exact ID returned by the identify step. Never a name."),
]


def register_tools(mcp: Any, module: Any) -> None:
    """Register all finance MCP tools on *mcp*, using *module* for context access."""

    # Import sub-modules (deferred to avoid import-time side effects)
    from finbutler.tools import accounts as _accounts
    from finbutler.tools import budgets as _budgets
    from finbutler.tools import categories as _categories
    from finbutler.tools import debts as _debts
    from finbutler.tools import goals as _goals
    from finbutler.tools import transactions as _transactions

    # =================================================================
    # Account tools
    # =================================================================

    @mcp.tool()
    async def create_account(
        account_name: Annotated[
            str,
            Field(min_length=1, description='Name for the new account. Example: "ICICI Salary"'),
        ],
        initial_balance: Annotated[
            float, Field(ge=0, description="Starting balance (default 0). Must be non-negative.")
        ] = 0,
        currency: Annotated[
            str | None,
            Field(
                min_length=3,
                max_length=3,
                description="3-letter currency code. Defaults to the user's preferred currency.",
            ),
        ] = None,
    ) -> dict[str, Any]:
        """Create a financial account (bank account, wallet). Only the name is required."""
        return await module.call(
            _accounts.create_account,
            account_name=account_name,
            initial_balance=initial_balance,
            currency=currency,
        )

    @mcp.tool()
    async def list_accounts(
        search_name: Annotated[
            str | None, Field(description="Only accounts whose name contains this text.")
        ] = None,
        recent: Annotated[
            int, Field(ge=0, description="List the N most recently created accounts instead.")
        ] = 0,
    ) -> dict[str, Any]:
        """List the user's accounts, optionally filtered by name or limited to the newest N."""
        return await module.call(_accounts.list_accounts, search_name=search_name, recent=recent)

    @mcp.tool()
    async def get_account_balance(
        account_identifier: Annotated[str, Field(min_length=1, description="Account name or ID.")],
    ) -> dict[str, Any]:
        """Get the current balance of one account."""
        return await module.call(
            _accounts.get_account_balance, account_identifier=account_identifier
        )

    @mcp.tool()
    async def identify_account_for_action(
        account_identifier: Annotated[str, Field(min_length=1, description="Account name or ID.")],
        action: Annotated[
            Literal["rename", "delete"], Field(description="What the user wants to do.")
        ] = "delete",
    ) -> dict[str, Any]:
        """Identify ONE account to rename or delete and ask the user to confirm its ID."""
        return await module.call(
            _accounts.identify_account_for_action,
            account_identifier=account_identifier,
            action=action,
        )

    @mcp.tool()
    async def execute_confirmed_delete_account(account_id: _ConfirmedId) -> dict[str, Any]:
        """Delete an account and all of its transactions AFTER the user confirmed its ID."""
        return await module.call(_accounts.execute_confirmed_delete_account, account_id=account_id)

    @mcp.tool()
    async def execute_confirmed_update_account_name(
        account_id: _ConfirmedId,
        new_account_name: Annotated[str, Field(min_length=1, description="The new name.")],
    ) -> dict[str, Any]:
        """Rename an account AFTER the user confirmed its ID."""
        return await module.call(
            _accounts.execute_confirmed_update_account_name,
            account_id=account_id,
            new_account_name=new_account_name,
        )

    # =================================================================
    # Category tools
    # =================================================================

    @mcp.tool()
    async def create_category(
        category_name: Annotated[str, Field(min_length=1, description='Example: "Groceries"')],
    ) -> dict[str, Any]:
        """Create a category for classifying transactions."""
        return await module.call(_categories.create_category, category_name=category_name)

    @mcp.tool()
    async def list_categories(
        search_name: Annotated[
            str | None, Field(description="Only categories whose name contains this text.")
        ] = None,
    ) -> dict[str, Any]:
        """List the user's categories."""
        return await module.call(_categories.list_categories, search_name=search_name)

    @mcp.tool()
    async def identify_category_for_action(
        category_identifier: Annotated[
            str, Field(min_length=1, description="Category name or ID.")
        ],
        action: Annotated[
            Literal["rename", "delete"], Field(description="What the user wants to do.")
        ] = "delete",
    ) -> dict[str, Any]:
        """Identify ONE category to rename or delete and ask the user to confirm its ID."""
        return await module.call(
            _categories.identify_category_for_action,
            category_identifier=category_identifier,
            action=action,
        )

    @mcp.tool()
    async def execute_confirmed_delete_category(category_id: _ConfirmedId) -> dict[str, Any]:
        """Delete a category no transaction uses, AFTER the user confirmed its ID."""
        return await module.call(
            _categories.execute_confirmed_delete_category, category_id=category_id
        )

    @mcp.tool()
    async def execute_confirmed_update_category_name(
        category_id: _ConfirmedId,
        new_category_name: Annotated[str, Field(min_length=1, description="The new name.")],
    ) -> dict[str, Any]:
        """Rename a category AFTER the user confirmed its ID."""
        return await module.call(
            _categories.execute_confirmed_update_category_name,
            category_id=category_id,
            new_category_name=new_category_name,
        )

    # =================================================================
    # Budget tools
    # =================================================================

    @mcp.tool()
    async def create_budget(
        category_identifier: Annotated[
            str, Field(min_length=1, description="Category name or ID.")
        ],
        amount: _Amount,
        month: Annotated[int | None, Field(ge=1, le=12, description="Defaults to now.")] = None,
        year: Annotated[int | None, Field(ge=1900, le=2100, description="Defaults to now.")] = None,
    ) -> dict[str, Any]:
        """Set a monthly budget for a category."""
        return await module.call(
            _budgets.create_budget,
            category_identifier=category_identifier,
            amount=amount,
            month=month,
            year=year,
        )

    @mcp.tool()
    async def list_budgets(
        month: Annotated[int | None, Field(ge=1, le=12, description="Filter by month.")] = None,
        year: Annotated[int | None, Field(ge=1900, le=2100, description="Filter by year.")] = None,
    ) -> dict[str, Any]:
        """List budgets, optionally for one month and/or year."""
        return await module.call(_budgets.list_budgets, month=month, year=year)

    @mcp.tool()
    async def get_budget_progress(
        category_identifier: Annotated[
            str, Field(min_length=1, description="Category name or ID.")
        ],
        month: Annotated[int | None, Field(ge=1, le=12, description="Defaults to now.")] = None,
        year: Annotated[int | None, Field(ge=1900, le=2100, description="Defaults to now.")] = None,
    ) -> dict[str, Any]:
        """Spending against a category's budget for one month."""
        return await module.call(
            _budgets.get_budget_progress,
            category_identifier=category_identifier,
            month=month,
            year=year,
        )

    @mcp.tool()
    async def get_budget_summary(
        period_description: Annotated[
            str | None,
            Field(description="Period like 'this month', 'last quarter', 'August 2024'."),
        ] = None,
    ) -> dict[str, Any]:
        """Budgeted vs. actual spending for a period (default: this month)."""
        return await module.call(
            _budgets.get_budget_summary, period_description=period_description
        )

    @mcp.tool()
    async def identify_budget_for_action(
        category_identifier: Annotated[
            str, Field(min_length=1, description="Category name or ID.")
        ],
        month: _Month,
        year: _Year,
        action: Annotated[
            Literal["update", "delete"], Field(description="What the user wants to do.")
        ] = "delete",
    ) -> dict[str, Any]:
        """Identify ONE budget to update or delete and ask the user to confirm its ID."""
        return await module.call(
            _budgets.identify_budget_for_action,
            category_identifier=category_identifier,
            month=month,
            year=year,
            action=action,
        )

    @mcp.tool()
    async def execute_confirmed_update_budget(
        budget_id: _ConfirmedId, new_amount: _Amount
    ) -> dict[str, Any]:
        """Change a budget's amount AFTER the user confirmed its ID."""
        return await module.call(
            _budgets.execute_confirmed_update_budget, budget_id=budget_id, new_amount=new_amount
        )

    @mcp.tool()
    async def execute_confirmed_delete_budget(budget_id: _ConfirmedId) -> dict[str, Any]:
        """Delete a budget AFTER the user confirmed its ID."""
        return await module.call(_budgets.execute_confirmed_delete_budget, budget_id=budget_id)

    # =================================================================
    # Debt tools
    # =================================================================

    @mcp.tool()
    async def add_debt(
        amount: _Amount,
        type: Annotated[DebtType, Field(description="'given' (lent) or 'taken' (borrowed).")],
        involved_user_identifier: Annotated[
            str, Field(min_length=1, description="Exact name or email of the other person.")
        ],
        account_identifier: Annotated[
            str, Field(min_length=1, description="Name or ID of the associated account.")
        ],
        duration_type: Annotated[DurationType, Field(description="Unit of the debt's term.")],
        description: Annotated[str | None, Field(description="Brief description.")] = None,
        interest_rate: Annotated[
            float, Field(ge=0, description="Annual interest rate in percent (default 0).")
        ] = 0,
        interest_type: Annotated[
            Literal["simple", "compound"], Field(description="Interest type.")
        ] = "simple",
        frequency: Annotated[
            int | None,
            Field(gt=0, description="Number of duration units; required unless 'custom'."),
        ] = None,
        custom_date_range_description: Annotated[
            str | None,
            Field(description="'YYYY-MM-DD,YYYY-MM-DD'; required when duration type is 'custom'."),
        ] = None,
    ) -> dict[str, Any]:
        """Record money lent to or borrowed from another user."""
        return await module.call(
            _debts.add_debt,
            amount=amount,
            type=type,
            involved_user_identifier=involved_user_identifier,
            account_identifier=account_identifier,
            duration_type=duration_type,
            description=description,
            interest_rate=interest_rate,
            interest_type=interest_type,
            frequency=frequency,
            custom_date_range_description=custom_date_range_description,
        )

    @mcp.tool()
    async def list_debts(
        type: Annotated[DebtType | None, Field(description="Filter by 'given' or 'taken'.")] = None,
        is_paid: Annotated[bool | None, Field(description="Filter by paid status.")] = None,
    ) -> dict[str, Any]:
        """List debts the user created or is the counterparty of."""
        return await module.call(_debts.list_debts, type=type, is_paid=is_paid)

    @mcp.tool()
    async def mark_debt_as_paid(
        debt_identifier: Annotated[
            str,
            Field(min_length=1, description="Description, counterparty or amount of the debt."),
        ],
    ) -> dict[str, Any]:
        """Identify the debt to mark paid and ask the user to confirm its ID."""
        return await module.call(_debts.mark_debt_as_paid, debt_identifier=debt_identifier)

    @mcp.tool()
    async def execute_confirmed_mark_debt_paid(debt_id: _ConfirmedId) -> dict[str, Any]:
        """Mark a debt paid AFTER the user confirmed its ID. Cannot be undone."""
        return await module.call(_debts.execute_confirmed_mark_debt_paid, debt_id=debt_id)

    @mcp.tool()
    async def identify_debt_for_action(
        debt_identifier: Annotated[
            str,
            Field(min_length=1, description="Description, counterparty or amount of the debt."),
        ],
        action: Annotated[
            Literal["update", "delete"], Field(description="What the user wants to do.")
        ] = "delete",
    ) -> dict[str, Any]:
        """Identify ONE debt to update or delete and ask the user to confirm its ID."""
        return await module.call(
            _debts.identify_debt_for_action, debt_identifier=debt_identifier, action=action
        )

    @mcp.tool()
    async def execute_confirmed_update_debt(
        debt_id: _ConfirmedId,
        new_description: Annotated[str | None, Field(description="New description.")] = None,
        new_duration_type: Annotated[
            DurationType | None, Field(description="New duration unit.")
        ] = None,
        new_frequency: Annotated[
            int | None, Field(gt=0, description="New number of duration units.")
        ] = None,
        new_custom_date_range_description: Annotated[
            str | None, Field(description="New range when the duration type is 'custom'.")
        ] = None,
    ) -> dict[str, Any]:
        """Update a debt's description or term AFTER the user confirmed its ID."""
        return await module.call(
            _debts.execute_confirmed_update_debt,
            debt_id=debt_id,
            new_description=new_description,
            new_duration_type=new_duration_type,
            new_frequency=new_frequency,
            new_custom_date_range_description=new_custom_date_range_description,
        )

    @mcp.tool()
    async def execute_confirmed_delete_debt(debt_id: _ConfirmedId) -> dict[str, Any]:
        """Delete a debt AFTER the user confirmed its ID."""
        return await module.call(_debts.execute_confirmed_delete_debt, debt_id=debt_id)

    # =================================================================
    # Transaction tools
    # =================================================================

    @mcp.tool()
    async def add_transaction(
        amount: _Amount,
        description: Annotated[str, Field(min_length=1, description="e.g. 'Groceries'.")],
        type: Annotated[TransactionType, Field(description="'income' or 'expense'.")],
        account_identifier: Annotated[
            str, Field(min_length=1, description="Account name or ID.")
        ],
        category_identifier: Annotated[
            str | None, Field(description="Category name or ID.")
        ] = None,
        date_description: Annotated[
            str | None, Field(description="'today', 'yesterday', '2024-03-15'. Default today.")
        ] = None,
        transfer_details: Annotated[
            str | None, Field(description="Source or recipient details.")
        ] = None,
    ) -> dict[str, Any]:
        """Record an income or expense on an account."""
        return await module.call(
            _transactions.add_transaction,
            amount=amount,
            description=description,
            type=type,
            account_identifier=account_identifier,
            category_identifier=category_identifier,
            date_description=date_description,
            transfer_details=transfer_details,
        )

    @mcp.tool()
    async def list_transactions(
        account_identifier: Annotated[str | None, Field(description="Account name or ID.")] = None,
        category_identifier: Annotated[
            str | None, Field(description="Category name or ID.")
        ] = None,
        date_description: Annotated[
            str | None,
            Field(description="'today', 'last 7 days', 'this month', 'YYYY-MM-DD,YYYY-MM-DD'."),
        ] = None,
        type: Annotated[TransactionType | None, Field(description="Income or expense.")] = None,
        min_amount: Annotated[float | None, Field(ge=0, description="Minimum amount.")] = None,
        max_amount: Annotated[float | None, Field(ge=0, description="Maximum amount.")] = None,
        search_text: Annotated[
            str | None, Field(description="Text in the description or transfer details.")
        ] = None,
        limit: Annotated[int, Field(gt=0, le=100, description="Maximum results.")] = 10,
    ) -> dict[str, Any]:
        """List transactions matching the given filters, newest first."""
        return await module.call(
            _transactions.list_transactions,
            account_identifier=account_identifier,
            category_identifier=category_identifier,
            date_description=date_description,
            type=type,
            min_amount=min_amount,
            max_amount=max_amount,
            search_text=search_text,
            limit=limit,
        )

    @mcp.tool()
    async def identify_transaction_for_action(
        identifier: Annotated[
            str, Field(min_length=3, description="Keywords, e.g. 'groceries'.")
        ],
        account_identifier: Annotated[str | None, Field(description="Account name or ID.")] = None,
        date_description: Annotated[
            str | None, Field(description="Approximate date or range, e.g. 'last week'.")
        ] = None,
        amount_hint: Annotated[
            float | None, Field(gt=0, description="Approximate amount (within 5%).")
        ] = None,
        action: Annotated[
            Literal["update", "delete"], Field(description="What the user wants to do.")
        ] = "delete",
    ) -> dict[str, Any]:
        """Identify ONE transaction to update or delete and ask the user to confirm its ID."""
        return await module.call(
            _transactions.identify_transaction_for_action,
            identifier=identifier,
            account_identifier=account_identifier,
            date_description=date_description,
            amount_hint=amount_hint,
            action=action,
        )

    @mcp.tool()
    async def execute_confirmed_update_transaction(
        transaction_id: _ConfirmedId,
        new_amount: Annotated[float | None, Field(gt=0, description="New amount.")] = None,
        new_description: Annotated[str | None, Field(description="New description.")] = None,
        new_type: Annotated[TransactionType | None, Field(description="New type.")] = None,
        new_category_identifier: Annotated[
            str | None, Field(description="New category name or ID; empty removes it.")
        ] = None,
        new_date_description: Annotated[str | None, Field(description="New date.")] = None,
        new_transfer_details: Annotated[
            str | None, Field(description="New transfer details.")
        ] = None,
    ) -> dict[str, Any]:
        """Update a transaction AFTER the user confirmed its ID."""
        return await module.call(
            _transactions.execute_confirmed_update_transaction,
            transaction_id=transaction_id,
            new_amount=new_amount,
            new_description=new_description,
            new_type=new_type,
            new_category_identifier=new_category_identifier,
            new_date_description=new_date_description,
            new_transfer_details=new_transfer_details,
        )

    @mcp.tool()
    async def execute_confirmed_delete_transaction(transaction_id: _ConfirmedId) -> dict[str, Any]:
        """Delete a transaction AFTER the user confirmed its ID."""
        return await module.call(
            _transactions.execute_confirmed_delete_transaction, transaction_id=transaction_id
        )

    @mcp.tool()
    async def get_extreme_transaction(
        type: Annotated[
            Literal["highest_income", "lowest_income", "highest_expense", "lowest_expense"],
            Field(description="Which extreme to find."),
        ],
        date_description: Annotated[
            str | None, Field(description="Period such as 'last year'. Default all time.")
        ] = None,
        account_identifier: Annotated[str | None, Field(description="Account name or ID.")] = None,
    ) -> dict[str, Any]:
        """Find the highest or lowest income or expense transaction."""
        return await module.call(
            _transactions.get_extreme_transaction,
            type=type,
            date_description=date_description,
            account_identifier=account_identifier,
        )

    @mcp.tool()
    async def compare_spending(
        duration: Annotated[
            str | None,
            Field(
                description="today, thisWeek, thisMonth, thisYear, all, "
                "or 'YYYY-MM-DD,YYYY-MM-DD'. Default thisMonth."
            ),
        ] = None,
        account_identifier: Annotated[str | None, Field(description="Account name or ID.")] = None,
    ) -> dict[str, Any]:
        """Compare income and expenses in a period with the period before it."""
        return await module.call(
            _transactions.compare_spending,
            duration=duration,
            account_identifier=account_identifier,
        )

    # =================================================================
    # Saving goal tools
    # =================================================================

    @mcp.tool()
    async def create_saving_goal(
        goal_name: Annotated[str, Field(min_length=1, description="e.g. 'Vacation Fund'.")],
        target_amount: _Amount,
        target_date_description: Annotated[
            str | None, Field(description="Optional target date, e.g. '2025-12-31'.")
        ] = None,
    ) -> dict[str, Any]:
        """Create a saving goal."""
        return await module.call(
            _goals.create_saving_goal,
            goal_name=goal_name,
            target_amount=target_amount,
            target_date_description=target_date_description,
        )

    @mcp.tool()
    async def list_saving_goals() -> dict[str, Any]:
        """List the user's saving goals."""
        return await module.call(_goals.list_saving_goals)

    @mcp.tool()
    async def find_saving_goal(
        goal_identifier: Annotated[
            str, Field(min_length=1, description="Name or part of the name of the goal.")
        ],
        action: Annotated[
            Literal["update", "add_amount", "withdraw_amount", "delete"],
            Field(description="What the user wants to do."),
        ] = "update",
    ) -> dict[str, Any]:
        """Identify ONE saving goal and ask the user to confirm its ID."""
        return await module.call(
            _goals.find_saving_goal, goal_identifier=goal_identifier, action=action
        )

    @mcp.tool()
    async def execute_confirmed_update_goal(
        goal_id: _ConfirmedId,
        new_target_amount: Annotated[
            float | None, Field(gt=0, description="New target amount.")
        ] = None,
        new_target_date_description: Annotated[
            str | None, Field(description="New target date; empty removes it.")
        ] = None,
    ) -> dict[str, Any]:
        """Update a goal's target AFTER the user confirmed its ID."""
        return await module.call(
            _goals.execute_confirmed_update_goal,
            goal_id=goal_id,
            new_target_amount=new_target_amount,
            new_target_date_description=new_target_date_description,
        )

    @mcp.tool()
    async def execute_add_amount_to_goal(goal_id: _ConfirmedId, amount: _Amount) -> dict[str, Any]:
        """Add money to a saving goal AFTER the user confirmed its ID."""
        return await module.call(_goals.execute_add_amount_to_goal, goal_id=goal_id, amount=amount)

    @mcp.tool()
    async def execute_withdraw_amount_from_goal(
        goal_id: _ConfirmedId, amount: _Amount
    ) -> dict[str, Any]:
        """Withdraw money from a saving goal AFTER the user confirmed its ID."""
        return await module.call(
            _goals.execute_withdraw_amount_from_goal, goal_id=goal_id, amount=amount
        )

    @mcp.tool()
    async def execute_confirmed_delete_goal(goal_id: _ConfirmedId) -> dict[str, Any]:
        """Delete a saving goal AFTER the user confirmed its ID."""
        return await module.call(_goals.execute_confirmed_delete_goal, goal_id=goal_id)
