"""
ReciHub Backend — Recipe Aggregate SQLAlchemy Models
=====================================================

What:  ORM mappings for the `recipe`, `ingredient` and `step` tables.
How:   Inherit from the shared DeclarativeBase; Alembic revision 001 creates
       the same schema for deployed databases.
Who:   Used by RecipeRepository for every statement it issues.

Table Design:
    recipe      id (autoincrement PK), name, username, imagename (default '')
    ingredient  id (autoincrement PK), name, amount, unit,
                recipeid → recipe.id ON DELETE CASCADE
    step        (stepnumber, recipeid) composite PK, description,
                recipeid → recipe.id ON DELETE CASCADE

    Steps have no surrogate key: the step number is assigned by the caller
    and is unique within its recipe.

    Column names are the legacy lower-case ones (imagename, recipeid,
    stepnumber); attribute names are snake_case.
"""

from sqlalchemy import ForeignKey, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from recihub.database import Base


class RecipeRow(Base):
    """
    Parent row of the recipe aggregate.

    Children are removed by the database when this row is deleted
    (ON DELETE CASCADE); application code never deletes them explicitly.
    """

    __tablename__ = "recipe"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    image_name: Mapped[str] = mapped_column(
        "imagename",
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )

    __table_args__ = ({"sqlite_autoincrement": True},)

    def __repr__(self) -> str:
        return f"<RecipeRow(id={self.id}, name='{self.name}', username='{self.username}')>"


class IngredientRow(Base):
    __tablename__ = "ingredient"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[str] = mapped_column(Text, nullable=False)
    unit: Mapped[str] = mapped_column(Text, nullable=False)
    recipe_id: Mapped[int] = mapped_column(
        "recipeid",
        Integer,
        ForeignKey("recipe.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    __table_args__ = ({"sqlite_autoincrement": True},)

    def __repr__(self) -> str:
        return f"<IngredientRow(id={self.id}, name='{self.name}', recipe_id={self.recipe_id})>"


class StepRow(Base):
    __tablename__ = "step"

    step_number: Mapped[int] = mapped_column(
        "stepnumber", Integer, primary_key=True, autoincrement=False
    )
    recipe_id: Mapped[int] = mapped_column(
        "recipeid",
        Integer,
        ForeignKey("recipe.id", ondelete="CASCADE"),
        primary_key=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<StepRow(step_number={self.step_number}, recipe_id={self.recipe_id})>"
