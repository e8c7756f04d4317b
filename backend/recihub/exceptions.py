"""
ReciHub Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the recipe persistence core and
       the service layer on top of it.
How:   Each exception carries a message and an optional context dict. The
       context names the failing operation (parent write, ingredient
       reconciliation, ...) and is meant for logs, not for end users.
Who:   Raised by the transaction runner, the repository and the service;
       caught by whatever outer layer maps them to responses.

Exception Hierarchy:
    RecipeHubError (base)
    ├── ValidationError              → caller sent data that can be corrected
    ├── ForbiddenError               → recipe belongs to another user
    ├── NotFoundError                → no row for the requested id
    └── StoreError                   → any other store failure
        ├── NoIdentityGeneratedError → insert succeeded without a new id
        ├── TransactionStartError    → could not begin a transaction
        ├── TransactionFailedError   → unit of work failed and was rolled back
        └── CommitError              → unit of work succeeded, commit failed

Callers branch on these types, never on message text. For transactional
operations the error raised inside the unit of work is available as
`TransactionFailedError.cause`.
"""

from typing import Any, Dict, Optional


class RecipeHubError(Exception):
    """
    Base exception for all ReciHub application errors.

    Attributes:
        message:  Human-readable error description
        context:  Additional debug info (operation, ids, original error type)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(RecipeHubError):
    """
    Raised when caller input fails validation.

    When: blank recipe name, incomplete ingredient, duplicate step numbers,
          foreign ingredient ids on update, unsupported ordering text.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ForbiddenError(RecipeHubError):
    """Raised when a user acts on a recipe owned by someone else."""

    def __init__(
        self,
        message: str = "Recipe access not allowed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(RecipeHubError):
    """
    Raised when a requested row does not exist.

    When: fetch by id finds no recipe; update, delete or image-name update
          matches no recipe; an update names an ingredient id that this
          recipe does not own.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class StoreError(RecipeHubError):
    """
    Catch-all for failed store statements.

    The underlying SQLAlchemy exception is chained with `raise ... from`;
    `context["operation"]` names the step that failed.
    """

    def __init__(
        self,
        message: str = "A database error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NoIdentityGeneratedError(StoreError):
    """
    Raised when an insert reported success but produced no generated id.

    Treated as corruption of the current call: the enclosing transaction is
    aborted.
    """

    def __init__(
        self,
        table: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["table"] = table
        super().__init__(
            message=f"Insert into '{table}' returned no generated id",
            context=ctx,
        )
        self.table = table


class TransactionStartError(StoreError):
    """Raised when the store cannot begin a transaction (e.g. unreachable)."""

    def __init__(
        self,
        message: str = "Unable to begin transaction",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class TransactionFailedError(StoreError):
    """
    Raised when a unit of work failed and its transaction was rolled back.

    Attributes:
        cause: The exception raised by the unit of work.
    """

    def __init__(
        self,
        cause: BaseException,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["cause"] = type(cause).__name__
        super().__init__(message=f"Transaction failed: {cause}", context=ctx)
        self.cause = cause


class CommitError(StoreError):
    """Raised when the unit of work succeeded but the commit did not."""

    def __init__(
        self,
        message: str = "Failed to commit transaction",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
