"""
ReciHub Backend — Recipe Service (Business Rules)
==================================================

What:  Validation, ownership checks and pagination defaults in front of the
       recipe repository.
How:   Each method validates its input, loads the stored recipe where
       ownership matters, then delegates to RecipeRepository.
Who:   Called by whatever outer adapter serves users (HTTP handlers, CLI).

Rules:
    create/update  name must be non-blank; every ingredient needs name,
                   amount and unit; step numbers and ingredient ids must not
                   repeat
    update         recipe must exist and belong to the caller; supplied
                   ingredient ids must belong to the stored recipe; the
                   stored image name is carried over unchanged
    image/remove   recipe must exist and belong to the caller
    listing        order defaults to settings.default_order_by, negative
                   offsets become 0, non-positive limits become
                   settings.default_page_limit
"""

import logging
from collections import Counter
from typing import Optional

from recihub.config import settings
from recihub.exceptions import ForbiddenError, ValidationError
from recihub.repositories.recipe_repository import RecipeRepository
from recihub.schemas.recipe import Recipe, RecipePage

logger = logging.getLogger(__name__)


class RecipeService:
    """
    Business logic layer for recipe operations.

    Stateless apart from the injected repository; safe to share between
    concurrent callers.
    """

    def __init__(self, repository: RecipeRepository):
        self.repository = repository

    # ── Validation ────────────────────────────────────────────────────────

    def validate_recipe(self, recipe: Recipe) -> None:
        """
        Check the caller-supplied aggregate before it reaches the store.

        Raises:
            ValidationError: On the first rule the recipe breaks.
        """
        if not recipe.name.strip():
            raise ValidationError(message="Must provide name for recipe", field="name")

        for ingredient in recipe.ingredients:
            if not (ingredient.name.strip() and ingredient.amount.strip() and ingredient.unit.strip()):
                raise ValidationError(
                    message="Must provide name, amount, and unit for ingredient",
                    field="ingredients",
                )

        repeated_ids = [i for i, n in Counter(i.id for i in recipe.ingredients if i.id).items() if n > 1]
        if repeated_ids:
            raise ValidationError(
                message=f"Ingredient ids appear more than once: {sorted(repeated_ids)}",
                field="ingredients",
            )

        repeated_steps = [s for s, n in Counter(s.step_number for s in recipe.steps).items() if n > 1]
        if repeated_steps:
            raise ValidationError(
                message=f"Step numbers appear more than once: {sorted(repeated_steps)}",
                field="steps",
            )

    def _check_owner(self, recipe: Recipe, username: str) -> None:
        if recipe.username != username:
            logger.warning(
                "User '%s' denied access to recipe %d owned by '%s'",
                username, recipe.id, recipe.username,
            )
            raise ForbiddenError(context={"recipe_id": recipe.id, "username": username})

    # ── Operations ────────────────────────────────────────────────────────

    async def create_recipe(self, recipe: Recipe) -> Recipe:
        """
        Create a new recipe with its ingredients and steps.

        Raises:
            ValidationError: Input breaks a validation rule.
            StoreError:      The insert failed (nothing persisted).
        """
        self.validate_recipe(recipe)
        return await self.repository.insert_recipe(recipe)

    async def get_recipe(self, recipe_id: int) -> Recipe:
        """
        Raises:
            NotFoundError: Recipe does not exist.
        """
        return await self.repository.select_recipe_by_id(recipe_id)

    async def get_recipes_for_username(
        self,
        username: str,
        order_by: Optional[str] = None,
        offset: int = 0,
        limit: int = 0,
    ) -> RecipePage:
        """Return one page of a user's recipes plus the user's total count."""
        if not order_by:
            order_by = settings.default_order_by
        if offset < 0:
            offset = 0
        if limit <= 0:
            limit = settings.default_page_limit

        recipes = await self.repository.select_recipes_by_username(username, order_by, offset, limit)
        total = await self.repository.select_recipe_count_by_username(username)

        return RecipePage(recipes=recipes, offset=offset, limit=limit, total=total)

    async def update_recipe(self, recipe: Recipe) -> Recipe:
        """
        Replace the caller's recipe with `recipe` (full desired children).

        Raises:
            ValidationError: Input breaks a validation rule, or names an
                             ingredient id the stored recipe does not own.
            NotFoundError:   Recipe does not exist.
            ForbiddenError:  Recipe belongs to another user.
            StoreError:      The update failed (nothing changed).
        """
        self.validate_recipe(recipe)

        stored = await self.repository.select_recipe_by_id(recipe.id)
        self._check_owner(stored, recipe.username)

        owned = {i.id for i in stored.ingredients}
        foreign = sorted(i.id for i in recipe.ingredients if i.id and i.id not in owned)
        if foreign:
            raise ValidationError(
                message=f"Ingredients {foreign} do not belong to recipe {recipe.id}",
                field="ingredients",
            )

        # The image name has its own operation
        recipe = recipe.model_copy(update={"image_name": stored.image_name})

        return await self.repository.update_recipe(recipe)

    async def update_recipe_image_name(self, recipe_id: int, username: str, image_name: str) -> str:
        """
        Record the image name of the caller's recipe. Storing the image file
        itself is the caller's business.

        Raises:
            NotFoundError:  Recipe does not exist.
            ForbiddenError: Recipe belongs to another user.
        """
        stored = await self.repository.select_recipe_by_id(recipe_id)
        self._check_owner(stored, username)

        await self.repository.update_recipe_image_name(recipe_id, image_name)
        return image_name

    async def remove_recipe(self, recipe_id: int, username: str) -> None:
        """
        Raises:
            NotFoundError:  Recipe does not exist.
            ForbiddenError: Recipe belongs to another user.
        """
        stored = await self.repository.select_recipe_by_id(recipe_id)
        self._check_owner(stored, username)

        await self.repository.delete_recipe(recipe_id)
