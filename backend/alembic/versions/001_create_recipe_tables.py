"""Create recipe, ingredient and step tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the Recipe aggregate schema: recipe, ingredient, step.
How:   Child tables reference recipe.id with ON DELETE CASCADE; step uses the
       composite natural key (stepnumber, recipeid).

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "recipe",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("imagename", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_recipe_username", "recipe", ["username"])

    op.create_table(
        "ingredient",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("amount", sa.Text(), nullable=False),
        sa.Column("unit", sa.Text(), nullable=False),
        sa.Column("recipeid", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["recipeid"], ["recipe.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_ingredient_recipeid", "ingredient", ["recipeid"])

    op.create_table(
        "step",
        sa.Column("stepnumber", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("recipeid", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["recipeid"], ["recipe.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("stepnumber", "recipeid"),
    )


def downgrade() -> None:
    """Drop the aggregate tables, children first. All recipe data is lost."""
    op.drop_table("step")
    op.drop_index("ix_ingredient_recipeid", table_name="ingredient")
    op.drop_table("ingredient")
    op.drop_index("ix_recipe_username", table_name="recipe")
    op.drop_table("recipe")
