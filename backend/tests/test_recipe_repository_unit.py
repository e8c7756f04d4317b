"""
ReciHub Backend — Recipe Repository Unit Tests (mock session)
==============================================================

What:  Statement-level behaviour of RecipeRepository against a mock session.
How:   The mock session records adds, flushes and executed statements; no
       database is involved.

What we test:
    ✅ Missing generated ids abort insert (NoIdentityGeneratedError)
    ✅ A failing ingredient insert rolls the whole insert back
    ✅ Ingredient reconciliation is scoped by recipe id
    ✅ Step upsert inserts only when the update matched nothing
    ✅ Unknown ingredient ids abort the update
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.exc import IntegrityError

from recihub.exceptions import (
    NoIdentityGeneratedError,
    NotFoundError,
    StoreError,
    TransactionFailedError,
)
from recihub.models.recipe import StepRow
from recihub.repositories.recipe_repository import RecipeRepository
from recihub.schemas.recipe import Ingredient, Recipe, Step


def cursor_result(rowcount: int) -> MagicMock:
    result = MagicMock()
    result.rowcount = rowcount
    return result


class TestInsertWithMockSession:
    """Insert failures must abort the transaction."""

    @pytest.mark.asyncio
    async def test_no_generated_recipe_id(self, mock_db_session, mock_session_factory, soup):
        """A flush that yields no recipe id aborts the insert."""
        repository = RecipeRepository(mock_session_factory)

        with pytest.raises(TransactionFailedError) as exc_info:
            await repository.insert_recipe(soup)

        assert isinstance(exc_info.value.cause, NoIdentityGeneratedError)
        assert exc_info.value.cause.table == "recipe"
        mock_db_session.rollback.assert_awaited_once()
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_generated_ingredient_id(self, mock_db_session, mock_session_factory, soup):
        added = []
        mock_db_session.add = MagicMock(side_effect=added.append)

        async def flush():
            added[0].id = 7

        mock_db_session.flush = AsyncMock(side_effect=flush)
        repository = RecipeRepository(mock_session_factory)

        with pytest.raises(TransactionFailedError) as exc_info:
            await repository.insert_recipe(soup)

        assert isinstance(exc_info.value.cause, NoIdentityGeneratedError)
        assert exc_info.value.cause.table == "ingredient"
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ingredient_insert_failure_aborts(self, mock_db_session, mock_session_factory):
        """Store rejecting the ingredient insert fails the whole call."""
        added = []
        flushes = []
        mock_db_session.add = MagicMock(side_effect=added.append)

        async def flush():
            flushes.append(1)
            if len(flushes) == 1:
                added[0].id = 1
            else:
                raise IntegrityError("INSERT INTO ingredient", {}, Exception("constraint failed"))

        mock_db_session.flush = AsyncMock(side_effect=flush)
        repository = RecipeRepository(mock_session_factory)
        recipe = Recipe(
            name="Soup",
            username="alice",
            ingredients=[Ingredient(id=1, name="Salt", amount="1", unit="tsp")],
        )

        with pytest.raises(TransactionFailedError) as exc_info:
            await repository.insert_recipe(recipe)

        cause = exc_info.value.cause
        assert isinstance(cause, StoreError)
        assert cause.context["operation"] == "ingredient insert"
        assert cause.context["recipe_id"] == 1
        mock_db_session.rollback.assert_awaited_once()
        mock_db_session.commit.assert_not_awaited()


class TestUpdateWithMockSession:
    """Statements issued by update reconciliation."""

    @pytest.mark.asyncio
    async def test_reconciliation_statements(self, mock_db_session, mock_session_factory):
        mock_db_session.execute = AsyncMock(
            side_effect=[
                cursor_result(1),  # recipe update
                cursor_result(1),  # delete ingredients not kept
                cursor_result(1),  # update ingredient 5
                cursor_result(1),  # update step 1
                cursor_result(0),  # update step 3 → insert
                cursor_result(1),  # delete stale steps
            ]
        )
        repository = RecipeRepository(mock_session_factory)
        recipe = Recipe(
            id=9,
            name="Soup",
            username="alice",
            ingredients=[Ingredient(id=5, name="Salt", amount="2", unit="tsp")],
            steps=[
                Step(step_number=1, description="Boil water"),
                Step(step_number=3, description="Serve"),
            ],
        )

        result = await repository.update_recipe(recipe)

        statements = [str(c.args[0]) for c in mock_db_session.execute.await_args_list]
        assert statements[0].startswith("UPDATE recipe")
        assert statements[1].startswith("DELETE FROM ingredient")
        assert "ingredient.recipeid" in statements[1]
        assert "NOT IN" in statements[1]
        assert statements[2].startswith("UPDATE ingredient")
        assert "ingredient.recipeid" in statements[2]
        assert statements[5].startswith("DELETE FROM step")
        assert "NOT IN" in statements[5]

        # Only the unmatched step is inserted
        mock_db_session.add.assert_called_once()
        inserted = mock_db_session.add.call_args.args[0]
        assert isinstance(inserted, StepRow)
        assert (inserted.step_number, inserted.recipe_id) == (3, 9)

        assert [s.step_number for s in result.steps] == [1, 3]
        assert result.ingredients[0].recipe_id == 9
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_existing_ingredients_deletes_all(self, mock_db_session, mock_session_factory):
        """Without kept ids the delete is a plain scoped delete, no NOT IN ()."""
        mock_db_session.execute = AsyncMock(
            side_effect=[cursor_result(1), cursor_result(2), cursor_result(0)]
        )
        repository = RecipeRepository(mock_session_factory)

        await repository.update_recipe(Recipe(id=9, name="Soup", username="alice"))

        statements = [str(c.args[0]) for c in mock_db_session.execute.await_args_list]
        assert statements[1].startswith("DELETE FROM ingredient")
        assert "NOT IN" not in statements[1]
        assert statements[2].startswith("DELETE FROM step")
        assert "NOT IN" not in statements[2]
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_foreign_ingredient_id_aborts(self, mock_db_session, mock_session_factory):
        """An ingredient id this recipe does not own matches no row and aborts."""
        mock_db_session.execute = AsyncMock(
            side_effect=[cursor_result(1), cursor_result(0), cursor_result(0)]
        )
        repository = RecipeRepository(mock_session_factory)
        recipe = Recipe(
            id=9,
            name="Soup",
            username="alice",
            ingredients=[Ingredient(id=42, name="Salt", amount="1", unit="tsp")],
        )

        with pytest.raises(TransactionFailedError) as exc_info:
            await repository.update_recipe(recipe)

        cause = exc_info.value.cause
        assert isinstance(cause, NotFoundError)
        assert cause.resource == "ingredient"
        assert cause.resource_id == 42
        mock_db_session.rollback.assert_awaited_once()
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_recipe_aborts(self, mock_db_session, mock_session_factory):
        mock_db_session.execute = AsyncMock(return_value=cursor_result(0))
        repository = RecipeRepository(mock_session_factory)

        with pytest.raises(TransactionFailedError) as exc_info:
            await repository.update_recipe(Recipe(id=404, name="Soup", username="alice"))

        assert isinstance(exc_info.value.cause, NotFoundError)
        assert mock_db_session.execute.await_count == 1
