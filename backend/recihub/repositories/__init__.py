# Repositories package init
"""
ReciHub Backend — Repositories Layer
=====================================

What:  Persistence of domain aggregates.
How:   Each repository receives an async session factory in its constructor
       and owns the statements and transactions for one aggregate.

Repository Inventory:
    - RecipeRepository: Recipe + Ingredient + Step aggregate, including the
      child reconciliation performed on update
"""
