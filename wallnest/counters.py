"""
Atomic adjustments of denormalized counter columns.

Counters are always changed with a single UPDATE statement so concurrent
requests never lose an increment; decrements never take a value below zero.
"""
from sqlalchemy import case, update
from sqlalchemy.ext.asyncio import AsyncSession


def _values(model, field: str, expression) -> dict:
    values = {field: expression}
    # Counter moves leave updated_at alone
    if hasattr(model, "updated_at"):
        values["updated_at"] = model.updated_at
    return values


async def increment(db: AsyncSession, model, pk: int, field: str, amount: int = 1) -> int:
    """Add `amount` to `model.field` for row `pk`. Returns the affected row count."""
    column = getattr(model, field)
    result = await db.execute(
        update(model)
        .where(model.id == pk)
        .values(_values(model, field, column + amount))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def decrement(db: AsyncSession, model, pk: int, field: str, amount: int = 1) -> int:
    """Subtract `amount` from `model.field` for row `pk`, flooring at zero."""
    if amount <= 0:
        return 0
    column = getattr(model, field)
    result = await db.execute(
        update(model)
        .where(model.id == pk, column > 0)
        .values(_values(model, field, case((column > amount, column - amount), else_=0)))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
