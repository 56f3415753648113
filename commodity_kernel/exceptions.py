"""
Typed Exception Hierarchy for the Commodity Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The presentation layer maps every failure of a transfer operation to an
HTTP status and a translated message.  It does so from a stable, machine
readable ``code`` and never from the message text.

Every exception therefore:
  1. Has its own class (catch by type, not by message)
  2. Carries a ``code`` class attribute (API-safe identifier)
  3. Keeps its context as attributes (``transfer_id``, ``actor_id``, ...)

Example:
    try:
        service.update_status(transfer_id, TransferStatus.PENDING)
    except InvalidStatusTransitionError as e:
        respond(409, code=e.code, current=e.from_status, requested=e.to_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CommodityKernelError (base)
    |
    +-- ResourceNotFoundError
    |   +-- TransferNotFoundError
    |   +-- SenderActorNotFoundError
    |   +-- ReceiverActorNotFoundError
    |   +-- SenderStoreNotFoundError
    |   +-- ReceiverStoreNotFoundError
    |   +-- CampaignNotFoundError
    |
    +-- TransferValidationError
    |   +-- NoActiveCampaignError
    |   +-- SenderStoreRequiredError
    |   +-- SenderActorNotActiveError
    |   +-- ReceiverActorNotActiveError
    |   +-- SenderStoreNotInCampaignError
    |   +-- ReceiverStoreNotInCampaignError
    |   +-- SameSenderAndReceiverError
    |   +-- ProductsRequiredError
    |   +-- InvalidProductLineError
    |   +-- DuplicateProductQualityError
    |   +-- InvalidInitialStatusError
    |
    +-- InvalidStatusTransitionError
    +-- TransferNotEditableError
    +-- ValidatedTransferLimitedEditError
    +-- ValidatedTransferNotDeletableError
    |
    +-- SequenceError
        +-- TransferCodeExhaustedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Kind            | Code                                         | When Raised
----------------|----------------------------------------------|---------------------------------
NotFound        | PRODUCT_TRANSFER_NOT_FOUND                   | Transfer missing or soft-deleted
                | PRODUCT_TRANSFER_SENDER_ACTOR_NOT_FOUND      | Sender actor id unknown
                | PRODUCT_TRANSFER_RECEIVER_ACTOR_NOT_FOUND    | Receiver actor id unknown
                | PRODUCT_TRANSFER_SENDER_STORE_NOT_FOUND      | Sender store id unknown
                | PRODUCT_TRANSFER_RECEIVER_STORE_NOT_FOUND    | Receiver store id unknown
                | PRODUCT_TRANSFER_CAMPAIGN_NOT_FOUND          | Explicit campaign id unknown
----------------|----------------------------------------------|---------------------------------
Validation      | PRODUCT_TRANSFER_NO_ACTIVE_CAMPAIGN          | No campaign given, none active
                | PRODUCT_TRANSFER_SENDER_STORE_REQUIRED       | STANDARD without sender store
                | PRODUCT_TRANSFER_SENDER_ACTOR_NOT_ACTIVE     | Sender actor not active
                | PRODUCT_TRANSFER_RECEIVER_ACTOR_NOT_ACTIVE   | Receiver actor not active
                | PRODUCT_TRANSFER_SENDER_STORE_NOT_ACTIVE     | Sender store not in campaign
                | PRODUCT_TRANSFER_RECEIVER_STORE_NOT_ACTIVE   | Receiver store not in campaign
                | PRODUCT_TRANSFER_SAME_SENDER_AND_RECEIVER    | STANDARD moves a row onto itself
                | PRODUCT_TRANSFER_PRODUCTS_REQUIRED           | Empty product list
                | PRODUCT_TRANSFER_INVALID_PRODUCT_LINE        | Non-positive weight/bags, bad quality
                | PRODUCT_TRANSFER_DUPLICATE_QUALITY           | Same quality listed twice
                | PRODUCT_TRANSFER_INVALID_INITIAL_STATUS      | Created as cancelled or unknown
----------------|----------------------------------------------|---------------------------------
Lifecycle       | PRODUCT_TRANSFER_INVALID_STATUS_TRANSITION   | Transition not in the table
                | PRODUCT_TRANSFER_NOT_EDITABLE                | Cancelled transfer edited
                | PRODUCT_TRANSFER_VALIDATED_LIMITED_EDIT      | Validated, non-product field edited
                | PRODUCT_TRANSFER_VALIDATED_NOT_DELETABLE     | Validated transfer deleted
----------------|----------------------------------------------|---------------------------------
Sequence        | PRODUCT_TRANSFER_CODE_EXHAUSTED              | No free code after max attempts

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Every kind base has its own code so callers that only care about the
   kind (e.g. "any NotFound -> 404") can read ``e.code`` from the base
   class or catch the base type.

2. Lifecycle errors sit directly under the root.  They are all "conflict"
   responses for the presentation layer but are never handled as a group.

3. Audit recorder failures are NOT modelled here.  They are caught and
   logged by the Transfer Service and never reach a caller.

===============================================================================
"""

from __future__ import annotations

from uuid import UUID


class CommodityKernelError(Exception):
    """
    Base exception for all commodity kernel errors.

    All subclasses must define a ``code`` class attribute.
    """

    code: str = "COMMODITY_KERNEL_ERROR"


# NotFound


class ResourceNotFoundError(CommodityKernelError):
    """A referenced transfer, actor, store or campaign does not exist."""

    code: str = "NOT_FOUND"


class TransferNotFoundError(ResourceNotFoundError):
    """Transfer does not exist or was soft-deleted."""

    code: str = "PRODUCT_TRANSFER_NOT_FOUND"

    def __init__(self, transfer_id: UUID | str):
        self.transfer_id = str(transfer_id)
        super().__init__(f"Product transfer not found: {transfer_id}")


class SenderActorNotFoundError(ResourceNotFoundError):
    code: str = "PRODUCT_TRANSFER_SENDER_ACTOR_NOT_FOUND"

    def __init__(self, actor_id: UUID | str):
        self.actor_id = str(actor_id)
        super().__init__(f"Sender actor not found: {actor_id}")


class ReceiverActorNotFoundError(ResourceNotFoundError):
    code: str = "PRODUCT_TRANSFER_RECEIVER_ACTOR_NOT_FOUND"

    def __init__(self, actor_id: UUID | str):
        self.actor_id = str(actor_id)
        super().__init__(f"Receiver actor not found: {actor_id}")


class SenderStoreNotFoundError(ResourceNotFoundError):
    code: str = "PRODUCT_TRANSFER_SENDER_STORE_NOT_FOUND"

    def __init__(self, store_id: UUID | str):
        self.store_id = str(store_id)
        super().__init__(f"Sender store not found: {store_id}")


class ReceiverStoreNotFoundError(ResourceNotFoundError):
    code: str = "PRODUCT_TRANSFER_RECEIVER_STORE_NOT_FOUND"

    def __init__(self, store_id: UUID | str):
        self.store_id = str(store_id)
        super().__init__(f"Receiver store not found: {store_id}")


class CampaignNotFoundError(ResourceNotFoundError):
    code: str = "PRODUCT_TRANSFER_CAMPAIGN_NOT_FOUND"

    def __init__(self, campaign_id: UUID | str):
        self.campaign_id = str(campaign_id)
        super().__init__(f"Campaign not found: {campaign_id}")


# ValidationFailed


class TransferValidationError(CommodityKernelError):
    """Transfer input is structurally valid but breaks a business rule."""

    code: str = "VALIDATION_FAILED"


class NoActiveCampaignError(TransferValidationError):
    code: str = "PRODUCT_TRANSFER_NO_ACTIVE_CAMPAIGN"

    def __init__(self) -> None:
        super().__init__("No campaign supplied and no campaign is active")


class SenderStoreRequiredError(TransferValidationError):
    """STANDARD transfers debit the sender store, so it must be known."""

    code: str = "PRODUCT_TRANSFER_SENDER_STORE_REQUIRED"

    def __init__(self, transfer_type: str):
        self.transfer_type = transfer_type
        super().__init__(f"Sender store is required for {transfer_type} transfers")


class SenderActorNotActiveError(TransferValidationError):
    code: str = "PRODUCT_TRANSFER_SENDER_ACTOR_NOT_ACTIVE"

    def __init__(self, actor_id: UUID | str, status: str):
        self.actor_id = str(actor_id)
        self.status = status
        super().__init__(f"Sender actor {actor_id} is not active (status={status})")


class ReceiverActorNotActiveError(TransferValidationError):
    code: str = "PRODUCT_TRANSFER_RECEIVER_ACTOR_NOT_ACTIVE"

    def __init__(self, actor_id: UUID | str, status: str):
        self.actor_id = str(actor_id)
        self.status = status
        super().__init__(f"Receiver actor {actor_id} is not active (status={status})")


class SenderStoreNotInCampaignError(TransferValidationError):
    code: str = "PRODUCT_TRANSFER_SENDER_STORE_NOT_ACTIVE"

    def __init__(self, store_id: UUID | str, campaign_id: UUID | str):
        self.store_id = str(store_id)
        self.campaign_id = str(campaign_id)
        super().__init__(
            f"Sender store {store_id} is not associated with campaign {campaign_id}"
        )


class ReceiverStoreNotInCampaignError(TransferValidationError):
    code: str = "PRODUCT_TRANSFER_RECEIVER_STORE_NOT_ACTIVE"

    def __init__(self, store_id: UUID | str, campaign_id: UUID | str):
        self.store_id = str(store_id)
        self.campaign_id = str(campaign_id)
        super().__init__(
            f"Receiver store {store_id} is not associated with campaign {campaign_id}"
        )


class SameSenderAndReceiverError(TransferValidationError):
    """STANDARD transfer whose sender and receiver address the same ledger row."""

    code: str = "PRODUCT_TRANSFER_SAME_SENDER_AND_RECEIVER"

    def __init__(self, store_id: UUID | str, actor_id: UUID | str):
        self.store_id = str(store_id)
        self.actor_id = str(actor_id)
        super().__init__(
            f"Sender and receiver are both actor {actor_id} in store {store_id}"
        )


class ProductsRequiredError(TransferValidationError):
    code: str = "PRODUCT_TRANSFER_PRODUCTS_REQUIRED"

    def __init__(self) -> None:
        super().__init__("At least one product line is required")


class InvalidProductLineError(TransferValidationError):
    """Product line with an empty/oversized quality or a non-positive quantity."""

    code: str = "PRODUCT_TRANSFER_INVALID_PRODUCT_LINE"

    def __init__(self, quality: str, reason: str):
        self.quality = quality
        self.reason = reason
        super().__init__(f"Invalid product line '{quality}': {reason}")


class DuplicateProductQualityError(TransferValidationError):
    code: str = "PRODUCT_TRANSFER_DUPLICATE_QUALITY"

    def __init__(self, quality: str):
        self.quality = quality
        super().__init__(f"Quality listed more than once: {quality}")


class InvalidInitialStatusError(TransferValidationError):
    code: str = "PRODUCT_TRANSFER_INVALID_INITIAL_STATUS"

    def __init__(self, status: str):
        self.status = status
        super().__init__(
            f"Transfers are created as pending or validated, not {status}"
        )


# Lifecycle


class InvalidStatusTransitionError(CommodityKernelError):
    """Requested status change is not allowed from the current status."""

    code: str = "PRODUCT_TRANSFER_INVALID_STATUS_TRANSITION"

    def __init__(self, transfer_id: UUID | str | None, from_status: str, to_status: str):
        self.transfer_id = str(transfer_id) if transfer_id is not None else None
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot change transfer status from {from_status} to {to_status}"
        )


class TransferNotEditableError(CommodityKernelError):
    """Cancelled transfers accept no edits."""

    code: str = "PRODUCT_TRANSFER_NOT_EDITABLE"

    def __init__(self, transfer_id: UUID | str | None, status: str):
        self.transfer_id = str(transfer_id) if transfer_id is not None else None
        self.status = status
        super().__init__(f"Transfer in status {status} cannot be edited")


class ValidatedTransferLimitedEditError(CommodityKernelError):
    """Validated transfers accept product-list edits only."""

    code: str = "PRODUCT_TRANSFER_VALIDATED_LIMITED_EDIT"

    def __init__(self, transfer_id: UUID | str | None, fields: list[str]):
        self.transfer_id = str(transfer_id) if transfer_id is not None else None
        self.fields = fields
        super().__init__(
            "Only products can be changed on a validated transfer, "
            f"got: {', '.join(fields)}"
        )


class ValidatedTransferNotDeletableError(CommodityKernelError):
    """Validated transfers must be cancelled before they can be deleted."""

    code: str = "PRODUCT_TRANSFER_VALIDATED_NOT_DELETABLE"

    def __init__(self, transfer_id: UUID | str):
        self.transfer_id = str(transfer_id)
        super().__init__(
            f"Transfer {transfer_id} is validated; cancel it before deleting"
        )


# Sequence


class SequenceError(CommodityKernelError):
    """Base exception for counter and code allocation failures."""

    code: str = "SEQUENCE_ERROR"


class TransferCodeExhaustedError(SequenceError):
    code: str = "PRODUCT_TRANSFER_CODE_EXHAUSTED"

    def __init__(self, prefix: str, year: int, attempts: int):
        self.prefix = prefix
        self.year = year
        self.attempts = attempts
        super().__init__(
            f"No free {prefix}-{year} transfer code after {attempts} attempts"
        )
