"""
Core Data Models for Vendor Ledger

These models define the schemas for everything stored in the ledger
document and everything handed back to callers. They are designed to:
1. Round-trip the persisted JSON without rewriting what they don't own
2. Give clear validation errors on incoming requests
3. Keep derived figures out of the persisted shape

DESIGN DECISION: The document is written in camelCase (it is shared with a
JavaScript UI), while Python code uses snake_case. Pydantic aliases bridge
the two; every model accepts either spelling.

DESIGN DECISION: Persisted entities are lenient (legacy documents may hold
any JSON value where a number belongs, or null where a list belongs);
request models are strict.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


DEFAULT_TAG_COLOR = "#cccccc"
UNKNOWN_VENDOR_NAME = "Unknown Vendor"
UNTAGGED_LABEL = "Untagged"

PAYMENT_METHODS = [
    "Check",
    "Credit Card",
    "Bank Transfer (ACH)",
    "Zelle",
    "Venmo",
    "Cash",
    "Other",
]

# Stored amounts are kept verbatim (any JSON value); integrity.engine.to_number
# decides what they are worth.
StoredAmount = Any


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("Input should be a number, not a boolean")
    return value


# Incoming amounts: numbers or numeric strings, never true/false.
RequestAmount = Annotated[float, BeforeValidator(_reject_bool)]


def new_id() -> str:
    """Generate an opaque entity id."""
    return str(uuid4())


def utc_timestamp() -> str:
    """Current time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# PERSISTED ENTITIES
# =============================================================================

class StoredModel(BaseModel):
    """
    Base for everything that lives in the document.

    Unknown keys are kept so a load/save cycle never drops data written
    by a newer (or older) version of the application.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_storage_dict(self) -> dict:
        """Serialize in the persisted (camelCase) shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class Vendor(StoredModel):
    """A company the business contracts with."""

    id: str = Field(default_factory=new_id)
    company_name: Optional[str] = ""
    contact_name: Optional[str] = ""
    phone: Optional[str] = ""
    email: Optional[str] = ""
    address: Optional[str] = ""


class Tag(StoredModel):
    """A label used to categorize contracts."""

    id: str = Field(default_factory=new_id)
    name: Optional[str] = ""
    color: Optional[str] = DEFAULT_TAG_COLOR


class Payment(StoredModel):
    """A payment made against one contract."""

    id: str = Field(default_factory=new_id)
    date: Optional[str] = ""
    amount: StoredAmount = 0
    method: Optional[str] = ""
    notes: Optional[str] = ""


class FileRecord(StoredModel):
    """
    Metadata for an uploaded binary.

    ``filename`` is the storage-unique name, ``original_filename`` is
    what the user uploaded and sees.
    """

    id: str = Field(default_factory=new_id)
    filename: Optional[str] = ""
    original_filename: Optional[str] = ""


class Contract(StoredModel):
    """
    A contract with a vendor.

    Owns its payments and files exclusively. Paid total and balance are
    NOT stored here; see integrity.engine.compute_contract_totals.
    """

    id: str = Field(default_factory=new_id)
    vendor_id: Optional[str] = None
    description: Optional[str] = ""
    contract_amount: StoredAmount = 0
    estimated_completion: Optional[str] = None
    tag_ids: list[str] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)
    files: list[FileRecord] = Field(default_factory=list)

    @field_validator("tag_ids", "payments", "files", mode="before")
    @classmethod
    def null_collection_is_empty(cls, v: Any) -> Any:
        """A null collection in a legacy document reads as empty."""
        return [] if v is None else v

    def model_post_init(self, __context: Any) -> None:
        # Owned collections are always written, even when the source omitted them.
        self.__pydantic_fields_set__.update({"tag_ids", "payments", "files"})

    def find_payment(self, payment_id: str) -> Optional[Payment]:
        return next((p for p in self.payments if p.id == payment_id), None)

    def find_file(self, file_id: str) -> Optional[FileRecord]:
        return next((f for f in self.files if f.id == file_id), None)


class Document(StoredModel):
    """
    The whole ledger: one JSON object, rewritten wholesale on every save.
    """

    last_updated: Optional[str] = Field(default=None, alias="last_updated")
    vendors: list[Vendor] = Field(default_factory=list)
    contracts: list[Contract] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)

    @field_validator("vendors", "contracts", "tags", mode="before")
    @classmethod
    def null_collection_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    def model_post_init(self, __context: Any) -> None:
        self.__pydantic_fields_set__.update({"last_updated", "vendors", "contracts", "tags"})

    def find_vendor(self, vendor_id: Optional[str]) -> Optional[Vendor]:
        return next((v for v in self.vendors if v.id == vendor_id), None)

    def find_contract(self, contract_id: str) -> Optional[Contract]:
        return next((c for c in self.contracts if c.id == contract_id), None)

    def find_tag(self, tag_id: str) -> Optional[Tag]:
        return next((t for t in self.tags if t.id == tag_id), None)

    def content_dict(self) -> dict:
        """Serialized collections without the save timestamp."""
        data = self.to_storage_dict()
        data.pop("last_updated", None)
        return data


# =============================================================================
# DERIVED VIEWS (never persisted)
# =============================================================================

class ContractTotals(BaseModel):
    """Figures derived from a contract's payments."""

    paid_total: float = 0.0
    balance_owed: float = 0.0


class ContractView(Contract):
    """A contract enriched with totals, vendor name and resolved tags."""

    paid_total: float = 0.0
    balance_owed: float = 0.0
    vendor_name: str = UNKNOWN_VENDOR_NAME
    tags: list[Tag] = Field(default_factory=list)


class CreatedContract(ContractView):
    """
    Result of creating a contract.

    ``created_vendor`` is set when the vendor was created inline, so the
    caller can add it to its own vendor list.
    """

    created_vendor: Optional[Vendor] = None


class FileDeletionResult(BaseModel):
    """Outcome of deleting a file record. The record is always gone."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    file_id: str
    binary_deleted: bool
    warning: Optional[str] = None


class ContractDeletionResult(BaseModel):
    """Outcome of deleting a contract. The record is always gone."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    contract_id: str
    files_deleted: int = 0
    failed_files: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class RequestModel(BaseModel):
    """Base for incoming payloads: trimmed strings, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class VendorInput(RequestModel):
    """Fields accepted when creating or updating a vendor."""

    company_name: str = Field(
        ...,
        min_length=1,
        description="Company name (required)"
    )
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class ExistingVendorRef(RequestModel):
    """Contract points at a vendor that must already exist."""

    kind: Literal["existing"] = "existing"
    vendor_id: str = Field(..., min_length=1)


class NewVendorSpec(VendorInput):
    """Contract creates its vendor inline."""

    kind: Literal["new"] = "new"


VendorReference = Annotated[
    Union[ExistingVendorRef, NewVendorSpec],
    Field(discriminator="kind"),
]


class TagInput(RequestModel):
    name: str = Field(..., min_length=1)
    color: Optional[str] = None


class ContractInput(RequestModel):
    """
    Fields accepted when creating a contract.

    The vendor reference is parsed separately
    (integrity.engine.parse_vendor_reference). ``tag_ids`` is taken
    as-is: anything that is not a list is treated as no tags.
    """

    description: str = Field(..., min_length=1)
    contract_amount: RequestAmount = Field(..., ge=0, allow_inf_nan=False)
    estimated_completion: Optional[str] = None
    tag_ids: Any = None


class ContractUpdateInput(RequestModel):
    """
    Fields accepted when updating a contract.

    Unlike creation, ``tag_ids`` must be a list when present; whether it
    was present at all is read from ``model_fields_set``.
    """

    description: str = Field(..., min_length=1)
    contract_amount: RequestAmount = Field(..., ge=0, allow_inf_nan=False)
    estimated_completion: Optional[str] = None
    vendor_id: str = Field(..., min_length=1)
    tag_ids: list[Any] = Field(default_factory=list)


class PaymentInput(RequestModel):
    date: str = Field(..., min_length=1)
    amount: RequestAmount = Field(..., gt=0, allow_inf_nan=False)
    method: Optional[str] = None
    notes: Optional[str] = None


class FileRecordInput(RequestModel):
    filename: str = Field(..., min_length=1)
    original_filename: str = Field(..., min_length=1)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


# =============================================================================
# REPORT MODELS
# =============================================================================

class ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VendorSpendRow(ReportModel):
    vendor_name: str
    total_spent: float


class TagSpendRow(ReportModel):
    tag_name: str
    total_spent: float


class SpendSummary(ReportModel):
    total_contracted: float = 0.0
    total_spent: float = 0.0


class VendorSpendReport(ReportModel):
    """
    Spend per vendor. ``labels``, ``data`` and ``csv_data`` are
    positionally aligned.
    """

    labels: list[str] = Field(default_factory=list)
    data: list[float] = Field(default_factory=list)
    csv_data: list[VendorSpendRow] = Field(default_factory=list)
    summary: SpendSummary = Field(default_factory=SpendSummary)


class TagSpendReport(ReportModel):
    """
    Spend per tag. A contract with several tags counts in full under
    each of them, so the buckets can sum to more than total spend.
    """

    labels: list[str] = Field(default_factory=list)
    data: list[float] = Field(default_factory=list)
    colors: list[str] = Field(default_factory=list)
    csv_data: list[TagSpendRow] = Field(default_factory=list)
