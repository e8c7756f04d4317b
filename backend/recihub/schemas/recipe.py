"""
ReciHub Backend — Recipe Aggregate Value Types
===============================================

What:  Pydantic models for the Recipe aggregate as the service layer and
       repository exchange it.
How:   Plain value objects; the repository builds them from ORM rows
       (from_attributes) and returns fresh copies carrying generated ids.

Identity conventions:
    Recipe.id == 0      → not yet persisted
    Ingredient.id == 0  → new ingredient, inserted on create/update
    Step                → no surrogate id; identified by (step_number, recipe_id)
    recipe_id           → set by the repository, never trusted from callers
"""

from typing import List

from pydantic import BaseModel, Field


class Ingredient(BaseModel):
    """One ingredient line of a recipe. name/amount/unit are opaque strings."""

    id: int = Field(default=0, ge=0, description="Store-assigned id (0 = new)")
    name: str
    amount: str
    unit: str
    recipe_id: int = Field(default=0, exclude=True)

    model_config = {"from_attributes": True}


class Step(BaseModel):
    """One numbered instruction of a recipe."""

    step_number: int = Field(description="Caller-assigned, unique within the recipe")
    description: str
    recipe_id: int = Field(default=0, exclude=True)

    model_config = {"from_attributes": True}


class Recipe(BaseModel):
    """
    The Recipe aggregate: parent fields plus the full child collections.

    For updates the collections are the complete desired state, not deltas:
    stored children missing from them are deleted.
    """

    id: int = Field(default=0, ge=0, description="Store-assigned id (0 = new)")
    name: str
    username: str = Field(description="Owning profile's username")
    image_name: str = Field(default="", description="Stored image file name, may be empty")
    ingredients: List[Ingredient] = Field(default_factory=list)
    steps: List[Step] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class RecipePage(BaseModel):
    """
    One page of a user's recipes (parent fields only, no children).

    total is the user's overall recipe count, independent of offset/limit.
    """

    recipes: List[Recipe]
    offset: int
    limit: int
    total: int
