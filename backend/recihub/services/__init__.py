# Services package init
"""
ReciHub Backend — Services Layer
=================================

What:  Business rules sitting between outer adapters (HTTP, CLI) and the
       repositories.
How:   Services validate input, check ownership, apply defaults and then
       delegate to a repository.

Service Inventory:
    - RecipeService: create/get/list/update/remove recipes and change the
      image name of a recipe
"""
