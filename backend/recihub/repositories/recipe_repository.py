"""
ReciHub Backend — Recipe Aggregate Repository
==============================================

What:  Persists the Recipe aggregate (recipe row + ingredient rows + step
       rows) and keeps it consistent across the three tables.
How:   Insert and update run as one unit of work through
       `run_in_transaction`; reads, delete and the image-name update are
       single statements on their own session.
Who:   Called by RecipeService after validation and ownership checks.

Update = replace-by-diff:
    The caller supplies the complete desired child collections. Children are
    reconciled against what is stored, inside the same transaction as the
    parent write:

    Ingredients (surrogate id)
        existing = supplied with id != 0, new = supplied with id == 0
        ┌───────────────────────────────────────────────────────────────┐
        │ DELETE ingredient WHERE recipeid = :r [AND id NOT IN :kept]   │
        │ UPDATE ingredient SET ... WHERE id = :id AND recipeid = :r    │
        │ INSERT ingredient ...                      (for each new)     │
        └───────────────────────────────────────────────────────────────┘
        An existing id matching no row of this recipe aborts the update.

    Steps (natural key stepnumber + recipeid)
        ┌───────────────────────────────────────────────────────────────┐
        │ UPDATE step ... WHERE recipeid = :r AND stepnumber = :n       │
        │   → 0 rows: INSERT step (:n, :r, ...)       (for each step)   │
        │ DELETE step WHERE recipeid = :r AND stepnumber NOT IN :nums   │
        └───────────────────────────────────────────────────────────────┘
        An empty step list deletes every step of the recipe.

Concurrency:
    No application-level locking. Two updates of the same recipe are
    serialized by the store and the later one wins entirely. Update does not
    re-read the stored children first, so edits made between a caller's
    fetch and its update are overwritten (lost update).
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recihub.exceptions import (
    NoIdentityGeneratedError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from recihub.models.recipe import IngredientRow, RecipeRow, StepRow
from recihub.schemas.recipe import Ingredient, Recipe, Step
from recihub.transaction import STORE_ERRORS, run_in_transaction

logger = logging.getLogger(__name__)


# ── Ordering ──────────────────────────────────────────────────────────────
# Caller ordering text is matched against this whitelist and turned into
# column expressions; it is never interpolated into SQL.
ORDERABLE_COLUMNS = {
    "id": RecipeRow.id,
    "name": RecipeRow.name,
    "username": RecipeRow.username,
    "imagename": RecipeRow.image_name,
    "image_name": RecipeRow.image_name,
}

ORDER_DIRECTIONS = {"asc", "desc"}


def parse_order_by(order_by: str) -> List[Any]:
    """
    Translate ordering text such as "id desc" or "name asc, id desc" into
    SQLAlchemy order_by clauses.

    Each comma-separated term is `<column> [asc|desc]`; the direction
    defaults to asc. Blank text means no ordering.

    Raises:
        ValidationError: Unknown column, unknown direction or malformed term.
    """
    if not order_by or not order_by.strip():
        return []

    clauses = []
    for term in order_by.split(","):
        tokens = term.split()
        if not tokens or len(tokens) > 2:
            raise ValidationError(
                message=f"Invalid ordering '{order_by}'",
                field="order_by",
            )

        column = ORDERABLE_COLUMNS.get(tokens[0].lower())
        direction = tokens[1].lower() if len(tokens) == 2 else "asc"
        if column is None or direction not in ORDER_DIRECTIONS:
            raise ValidationError(
                message=(
                    f"Cannot order recipes by '{term.strip()}'. "
                    f"Allowed columns: {', '.join(sorted(ORDERABLE_COLUMNS))}"
                ),
                field="order_by",
            )

        clauses.append(column.desc() if direction == "desc" else column.asc())

    return clauses


@contextmanager
def _store_operation(operation: str, **context: Any) -> Iterator[None]:
    """Re-raise driver failures as StoreError tagged with the operation."""
    try:
        yield
    except STORE_ERRORS as e:
        logger.error("Database error during %s: %s", operation, str(e))
        raise StoreError(
            message=f"Database error during {operation}",
            context={"operation": operation, "error_type": type(e).__name__, **context},
        ) from e


def _to_recipe(
    row: RecipeRow,
    ingredients: Sequence[IngredientRow] = (),
    steps: Sequence[StepRow] = (),
) -> Recipe:
    return Recipe(
        id=row.id,
        name=row.name,
        username=row.username,
        image_name=row.image_name or "",
        ingredients=[Ingredient.model_validate(i) for i in ingredients],
        steps=[Step.model_validate(s) for s in steps],
    )


class RecipeRepository:
    """
    Store access for the Recipe aggregate.

    Args:
        session_factory:     async_sessionmaker bound to the store engine.
        transaction_timeout: Deadline in seconds for insert/update units of
                             work; None uses the configured default.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        transaction_timeout: Optional[float] = None,
    ):
        self._session_factory = session_factory
        self._transaction_timeout = transaction_timeout

    # ══════════════════════════════════════════════════════════════════════
    # Insert
    # ══════════════════════════════════════════════════════════════════════

    async def insert_recipe(self, recipe: Recipe) -> Recipe:
        """
        Insert a recipe together with its ingredients and steps.

        Supplied ids are ignored: the recipe and every ingredient receive
        store-generated ids, which are set on the returned copy.

        Raises:
            TransactionFailedError: Any statement failed; nothing was
                persisted. `.cause` is a StoreError or
                NoIdentityGeneratedError.
            TransactionStartError, CommitError: Transaction envelope failed.
        """

        async def work(session: AsyncSession) -> Recipe:
            row = RecipeRow(name=recipe.name, username=recipe.username)
            session.add(row)
            with _store_operation("recipe insert"):
                await session.flush()
            if not row.id:
                raise NoIdentityGeneratedError("recipe")

            ingredients = await self._insert_ingredients(session, row.id, recipe.ingredients)
            steps = await self._insert_steps(session, row.id, recipe.steps)

            return recipe.model_copy(
                update={
                    "id": row.id,
                    "image_name": row.image_name or "",
                    "ingredients": ingredients,
                    "steps": steps,
                }
            )

        result = await run_in_transaction(
            self._session_factory, work, self._transaction_timeout
        )
        logger.info(
            "Inserted recipe %d (%d ingredients, %d steps)",
            result.id, len(result.ingredients), len(result.steps),
        )
        return result

    async def _insert_ingredients(
        self,
        session: AsyncSession,
        recipe_id: int,
        ingredients: Sequence[Ingredient],
    ) -> List[Ingredient]:
        if not ingredients:
            return []

        rows = [
            IngredientRow(name=i.name, amount=i.amount, unit=i.unit, recipe_id=recipe_id)
            for i in ingredients
        ]
        session.add_all(rows)
        with _store_operation("ingredient insert", recipe_id=recipe_id):
            await session.flush()

        inserted = []
        for row in rows:
            if not row.id:
                raise NoIdentityGeneratedError("ingredient", context={"recipe_id": recipe_id})
            inserted.append(
                Ingredient(
                    id=row.id,
                    name=row.name,
                    amount=row.amount,
                    unit=row.unit,
                    recipe_id=recipe_id,
                )
            )
        return inserted

    async def _insert_steps(
        self,
        session: AsyncSession,
        recipe_id: int,
        steps: Sequence[Step],
    ) -> List[Step]:
        if not steps:
            return []

        session.add_all(
            [
                StepRow(step_number=s.step_number, description=s.description, recipe_id=recipe_id)
                for s in steps
            ]
        )
        with _store_operation("step insert", recipe_id=recipe_id):
            await session.flush()

        return [s.model_copy(update={"recipe_id": recipe_id}) for s in steps]

    # ══════════════════════════════════════════════════════════════════════
    # Reads
    # ══════════════════════════════════════════════════════════════════════

    async def select_recipe_by_id(self, recipe_id: int) -> Recipe:
        """
        Load a recipe with its ingredients (by id) and steps (by step number).

        Raises:
            NotFoundError: No recipe row with this id.
            StoreError:    Any read failed.
        """
        async with self._session_factory() as session:
            with _store_operation("recipe select", recipe_id=recipe_id):
                result = await session.execute(
                    select(RecipeRow).where(RecipeRow.id == recipe_id)
                )
                row = result.scalar_one_or_none()

            if row is None:
                raise NotFoundError(resource="recipe", resource_id=recipe_id)

            with _store_operation("ingredient select", recipe_id=recipe_id):
                result = await session.execute(
                    select(IngredientRow)
                    .where(IngredientRow.recipe_id == recipe_id)
                    .order_by(IngredientRow.id)
                )
                ingredients = result.scalars().all()

            with _store_operation("step select", recipe_id=recipe_id):
                result = await session.execute(
                    select(StepRow)
                    .where(StepRow.recipe_id == recipe_id)
                    .order_by(StepRow.step_number)
                )
                steps = result.scalars().all()

        return _to_recipe(row, ingredients, steps)

    async def select_recipes_by_username(
        self,
        username: str,
        order_by: str,
        offset: int,
        limit: int,
    ) -> List[Recipe]:
        """
        Page through a user's recipes. Children are not loaded.

        Raises:
            ValidationError: order_by is not a supported ordering.
            StoreError:      The read failed.
        """
        ordering = parse_order_by(order_by)

        async with self._session_factory() as session:
            with _store_operation("recipe page select", username=username):
                result = await session.execute(
                    select(RecipeRow)
                    .where(RecipeRow.username == username)
                    .order_by(*ordering)
                    .offset(offset)
                    .limit(limit)
                )
                rows = result.scalars().all()

        return [_to_recipe(row) for row in rows]

    async def select_recipe_count_by_username(self, username: str) -> int:
        async with self._session_factory() as session:
            with _store_operation("recipe count", username=username):
                result = await session.execute(
                    select(func.count(RecipeRow.id)).where(RecipeRow.username == username)
                )
                return result.scalar_one()

    # ══════════════════════════════════════════════════════════════════════
    # Update
    # ══════════════════════════════════════════════════════════════════════

    async def update_recipe(self, recipe: Recipe) -> Recipe:
        """
        Replace a stored recipe with `recipe`, reconciling its children.

        Writes name and image_name of the parent row, then reconciles
        ingredients and steps so the stored children equal exactly the
        supplied collections. All of it happens in one transaction.

        Returns:
            `recipe` with its children replaced by the reconciliation
            results (kept ingredients first, then new ones with their
            generated ids; steps by number).

        Raises:
            TransactionFailedError: Nothing was changed. `.cause` is
                NotFoundError (no such recipe, or an ingredient id this
                recipe does not own), NoIdentityGeneratedError or StoreError.
            TransactionStartError, CommitError: Transaction envelope failed.
        """
        recipe_id = recipe.id

        async def work(session: AsyncSession) -> Recipe:
            with _store_operation("recipe update", recipe_id=recipe_id):
                result = await session.execute(
                    update(RecipeRow)
                    .where(RecipeRow.id == recipe_id)
                    .values({RecipeRow.name: recipe.name, RecipeRow.image_name: recipe.image_name})
                    .execution_options(synchronize_session=False)
                )
            if result.rowcount == 0:
                raise NotFoundError(resource="recipe", resource_id=recipe_id)

            ingredients = await self._reconcile_ingredients(session, recipe_id, recipe.ingredients)
            steps = await self._reconcile_steps(session, recipe_id, recipe.steps)

            return recipe.model_copy(update={"ingredients": ingredients, "steps": steps})

        result = await run_in_transaction(
            self._session_factory, work, self._transaction_timeout
        )
        logger.info(
            "Updated recipe %d (%d ingredients, %d steps)",
            recipe_id, len(result.ingredients), len(result.steps),
        )
        return result

    async def _reconcile_ingredients(
        self,
        session: AsyncSession,
        recipe_id: int,
        ingredients: Sequence[Ingredient],
    ) -> List[Ingredient]:
        existing = [i for i in ingredients if i.id]
        new = [i for i in ingredients if not i.id]
        kept_ids = [i.id for i in existing]

        logger.debug(
            "Reconciling ingredients of recipe %d: keep=%s new=%d",
            recipe_id, kept_ids, len(new),
        )

        with _store_operation("ingredient reconciliation", recipe_id=recipe_id):
            stale = delete(IngredientRow).where(IngredientRow.recipe_id == recipe_id)
            if kept_ids:
                stale = stale.where(IngredientRow.id.not_in(kept_ids))
            await session.execute(stale.execution_options(synchronize_session=False))

            kept = []
            for ingredient in existing:
                result = await session.execute(
                    update(IngredientRow)
                    .where(
                        IngredientRow.id == ingredient.id,
                        IngredientRow.recipe_id == recipe_id,
                    )
                    .values(
                        {
                            IngredientRow.name: ingredient.name,
                            IngredientRow.amount: ingredient.amount,
                            IngredientRow.unit: ingredient.unit,
                        }
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFoundError(
                        resource="ingredient",
                        resource_id=ingredient.id,
                        context={"recipe_id": recipe_id},
                    )
                kept.append(ingredient.model_copy(update={"recipe_id": recipe_id}))

        return kept + await self._insert_ingredients(session, recipe_id, new)

    async def _reconcile_steps(
        self,
        session: AsyncSession,
        recipe_id: int,
        steps: Sequence[Step],
    ) -> List[Step]:
        with _store_operation("step reconciliation", recipe_id=recipe_id):
            if not steps:
                await session.execute(
                    delete(StepRow)
                    .where(StepRow.recipe_id == recipe_id)
                    .execution_options(synchronize_session=False)
                )
                return []

            for step in steps:
                result = await session.execute(
                    update(StepRow)
                    .where(
                        StepRow.recipe_id == recipe_id,
                        StepRow.step_number == step.step_number,
                    )
                    .values({StepRow.description: step.description})
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    session.add(
                        StepRow(
                            step_number=step.step_number,
                            description=step.description,
                            recipe_id=recipe_id,
                        )
                    )
                    await session.flush()

            numbers = sorted({s.step_number for s in steps})
            await session.execute(
                delete(StepRow)
                .where(
                    StepRow.recipe_id == recipe_id,
                    StepRow.step_number.not_in(numbers),
                )
                .execution_options(synchronize_session=False)
            )

        logger.debug("Reconciled steps of recipe %d: %s", recipe_id, numbers)
        return sorted(
            (s.model_copy(update={"recipe_id": recipe_id}) for s in steps),
            key=lambda s: s.step_number,
        )

    async def update_recipe_image_name(self, recipe_id: int, image_name: str) -> None:
        """
        Set the image name of a recipe in a single statement.

        Raises:
            NotFoundError: No recipe row with this id.
            StoreError:    The statement failed.
        """
        async with self._session_factory() as session:
            with _store_operation("recipe image update", recipe_id=recipe_id):
                result = await session.execute(
                    update(RecipeRow)
                    .where(RecipeRow.id == recipe_id)
                    .values({RecipeRow.image_name: image_name})
                    .execution_options(synchronize_session=False)
                )
                await session.commit()

        if result.rowcount == 0:
            raise NotFoundError(resource="recipe", resource_id=recipe_id)
        logger.info("Recipe %d image set to '%s'", recipe_id, image_name)

    # ══════════════════════════════════════════════════════════════════════
    # Delete
    # ══════════════════════════════════════════════════════════════════════

    async def delete_recipe(self, recipe_id: int) -> None:
        """
        Delete a recipe row; its ingredients and steps go by ON DELETE CASCADE.

        Raises:
            NotFoundError: No recipe row with this id.
            StoreError:    The statement failed.
        """
        async with self._session_factory() as session:
            with _store_operation("recipe delete", recipe_id=recipe_id):
                result = await session.execute(
                    delete(RecipeRow)
                    .where(RecipeRow.id == recipe_id)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()

        if result.rowcount == 0:
            raise NotFoundError(resource="recipe", resource_id=recipe_id)
        logger.info("Deleted recipe %d", recipe_id)
