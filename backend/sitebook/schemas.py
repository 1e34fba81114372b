"""API request/response schemas - Pydantic v2"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any, Literal

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from sitebook.accounting.wages import normalize_hajri, MAX_KHARCHI, MAX_MONEY, MAX_QUANTITY
from sitebook.models import SKILL_TYPES, EXPENSE_CATEGORIES, PAYMENT_TYPES, BG_TYPES

# a field named `date` shadows the type inside the class body
DateType = date

AttendanceStatusLiteral = Literal["Present", "Absent"]


def _choice(value: Optional[str], allowed, label: str) -> Optional[str]:
    if value is None:
        return value
    if value not in allowed:
        raise ValueError(f"{label} must be one of: {', '.join(allowed)}")
    return value


AADHAAR_DIGITS = 12


def validate_aadhaar(v: Optional[str]) -> Optional[str]:
    if not v:
        return None
    digits = "".join(ch for ch in v if ch.isdigit())
    if len(digits) != AADHAAR_DIGITS or len(digits) != len(v.replace(" ", "").replace("-", "")):
        raise ValueError("Aadhaar number must be 12 digits")
    return digits


# ---------- Workers ----------
class WorkerBase(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = None
    skill_type: str = Field("Laborer", description="Mason/Laborer/Carpenter/Electrician/Plumber/Supervisor/Other")
    daily_wage: Decimal = Field(Decimal("0"), ge=0)
    status: str = "active"
    address: Optional[str] = None
    alternate_phone: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=120)

    @field_validator("skill_type")
    @classmethod
    def check_skill(cls, v: str) -> str:
        return _choice(v, SKILL_TYPES, "skill_type")

    @field_validator("status")
    @classmethod
    def check_status(cls, v: str) -> str:
        return _choice(v, ("active", "inactive"), "status")


class WorkerCreate(WorkerBase):
    aadhaar_number: Optional[str] = None

    @field_validator("aadhaar_number")
    @classmethod
    def check_aadhaar(cls, v: Optional[str]) -> Optional[str]:
        return validate_aadhaar(v)


class WorkerUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = None
    skill_type: Optional[str] = None
    daily_wage: Optional[Decimal] = Field(None, ge=0)
    status: Optional[str] = None
    address: Optional[str] = None
    aadhaar_number: Optional[str] = None
    alternate_phone: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=120)

    @field_validator("skill_type")
    @classmethod
    def check_skill(cls, v: Optional[str]) -> Optional[str]:
        return _choice(v, SKILL_TYPES, "skill_type")

    @field_validator("status")
    @classmethod
    def check_status(cls, v: Optional[str]) -> Optional[str]:
        return _choice(v, ("active", "inactive"), "status")

    @field_validator("aadhaar_number")
    @classmethod
    def check_aadhaar(cls, v: Optional[str]) -> Optional[str]:
        if v and "X" in v:
            raise ValueError("Send the full Aadhaar number, not the masked value")
        return validate_aadhaar(v)


class WorkerRead(WorkerBase):
    id: int
    aadhaar_number: Optional[str] = None
    photo_url: Optional[str] = None
    id_document_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ---------- Attendance ----------
class AttendanceUpsert(BaseModel):
    """Only the fields sent are written; status is a shortcut that rewrites hajri_count."""
    worker_id: int
    date: DateType
    hajri_count: Optional[Decimal] = None
    kharchi_amount: Optional[Decimal] = Field(None, ge=0, le=MAX_KHARCHI)
    status: Optional[AttendanceStatusLiteral] = None
    project_id: Optional[int] = None
    shift: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("hajri_count")
    @classmethod
    def check_hajri(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return normalize_hajri(v) if v is not None else v

    @model_validator(mode="after")
    def check_one_change(self):
        if self.hajri_count is not None and self.status is not None:
            raise ValueError("Send either hajri_count or status, not both")
        return self


class AttendanceRead(BaseModel):
    id: int
    worker_id: int
    date: DateType
    hajri_count: Decimal
    kharchi_amount: Decimal
    status: AttendanceStatusLiteral
    notation: str
    project_id: Optional[int] = None
    shift: Optional[str] = None
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class AttendanceUpsertResult(BaseModel):
    record: AttendanceRead
    daily_cost: Decimal
    net_daily_earning: Decimal
    cost_delta: Decimal = Field(..., description="Change in the day's labor cost caused by this write")


class DailySheetRow(BaseModel):
    worker_id: int
    full_name: str
    skill_type: str
    daily_wage: Decimal
    record: Optional[AttendanceRead] = None
    daily_cost: Decimal


class MonthSheetRow(BaseModel):
    date: DateType
    hajri_count: Decimal
    kharchi_amount: Decimal
    status: AttendanceStatusLiteral
    notation: str
    daily_earning: Decimal


class WorkerMonthSheet(BaseModel):
    worker_id: int
    full_name: str
    daily_wage: Decimal
    year: int
    month: int
    total_hajri: Decimal
    total_kharchi: Decimal
    gross_earning: Decimal
    net_payable: Decimal
    days: List[MonthSheetRow]


class MonthlyLaborCost(BaseModel):
    year: int
    month: int
    label: str
    amount: Decimal


# ---------- Client ledger ----------
class LedgerEntryCreate(BaseModel):
    entry_date: DateType
    description: Optional[str] = None
    bill_amount: Decimal = Field(Decimal("0"), ge=0, le=MAX_MONEY)
    payment_received: Decimal = Field(Decimal("0"), ge=0, le=MAX_MONEY)
    project_id: Optional[int] = None


class LedgerEntryRead(BaseModel):
    id: int
    entry_date: DateType
    description: str
    bill_amount: Decimal
    payment_received: Decimal
    project_id: Optional[int] = None
    created_at: datetime
    balance: Optional[Decimal] = None
    model_config = ConfigDict(from_attributes=True)


class LedgerTotals(BaseModel):
    total_billed: Decimal
    total_received: Decimal
    net_due: Decimal
    is_consistent: bool


class LedgerView(BaseModel):
    entries: List[LedgerEntryRead]
    totals: LedgerTotals


# ---------- Estimates (BOQ) ----------
class EstimateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    project_id: Optional[int] = None


class EstimateItemCreate(BaseModel):
    description: str = Field("Unknown Item", min_length=1)
    unit: str = "Nos"
    quantity: Decimal = Field(Decimal("0"), ge=0, le=MAX_QUANTITY)
    rate: Decimal = Field(Decimal("0"), ge=0, le=MAX_MONEY)
    category: str = "General"
    extra_data: Optional[Dict[str, Any]] = None


class EstimateItemUpdate(BaseModel):
    description: Optional[str] = None
    unit: Optional[str] = None
    quantity: Optional[Decimal] = Field(None, ge=0, le=MAX_QUANTITY)
    rate: Optional[Decimal] = Field(None, ge=0, le=MAX_MONEY)
    category: Optional[str] = None


class EstimateItemRead(BaseModel):
    id: int
    estimate_id: int
    description: str
    unit: str
    quantity: Decimal
    rate: Decimal
    amount: Decimal
    category: str
    extra_data: Optional[Dict[str, Any]] = None
    model_config = ConfigDict(from_attributes=True)


class EstimateSummary(BaseModel):
    id: int
    name: str
    is_active: bool
    project_id: Optional[int] = None
    created_at: datetime
    item_count: int
    total: Decimal


class CategoryTotal(BaseModel):
    category: str
    item_count: int
    amount: Decimal


class EstimateDetail(EstimateSummary):
    items: List[EstimateItemRead]
    categories: List[CategoryTotal]


class EstimateList(BaseModel):
    estimates: List[EstimateSummary]
    budget_total: Decimal = Field(..., description="Sum over all estimates, active or not")


class ColumnMapping(BaseModel):
    description: Optional[str] = None
    unit: Optional[str] = None
    quantity: Optional[str] = None
    rate: Optional[str] = None
    category: Optional[str] = None


class BoqPreview(BaseModel):
    headers: List[str]
    suggested_mapping: ColumnMapping
    extra_columns: List[str]
    required_fields: List[str]
    sample_rows: List[Dict[str, Any]]
    row_count: int


# ---------- Expenses & materials ----------
class MaterialTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    default_rate: Decimal = Field(Decimal("0"), ge=0)


class MaterialTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    default_rate: Optional[Decimal] = Field(None, ge=0)


class MaterialTypeRead(MaterialTypeCreate):
    id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ExpenseCreate(BaseModel):
    date: DateType
    category: str = "Material"
    amount: Decimal = Field(..., gt=0, le=MAX_MONEY)
    quantity: Optional[Decimal] = Field(None, ge=0, le=MAX_QUANTITY)
    rate: Optional[Decimal] = Field(None, ge=0, le=MAX_MONEY)
    description: Optional[str] = None
    material_id: Optional[int] = None
    project_id: Optional[int] = None

    @field_validator("category")
    @classmethod
    def check_category(cls, v: str) -> str:
        # stored capitalised; older rows used lower-case names
        return _choice((v or "").strip().capitalize(), EXPENSE_CATEGORIES, "category")


class ExpenseRead(BaseModel):
    id: int
    date: DateType
    category: str
    amount: Decimal
    quantity: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    description: Optional[str] = None
    material_id: Optional[int] = None
    bill_photo_url: Optional[str] = None
    project_id: Optional[int] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ---------- Payments ----------
class PaymentCreate(BaseModel):
    worker_id: Optional[int] = None
    amount: Decimal = Field(..., gt=0, le=MAX_MONEY)
    payment_date: DateType
    payment_type: str = "salary_payment"
    method: Optional[str] = "Cash"
    notes: Optional[str] = None
    project_id: Optional[int] = None

    @field_validator("payment_type")
    @classmethod
    def check_type(cls, v: str) -> str:
        return _choice(v, PAYMENT_TYPES, "payment_type")


class PaymentRead(BaseModel):
    id: int
    worker_id: Optional[int] = None
    worker_name: Optional[str] = None
    amount: Decimal
    payment_date: DateType
    payment_type: str
    method: Optional[str] = None
    notes: Optional[str] = None
    project_id: Optional[int] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ---------- Projects ----------
class TeamMember(BaseModel):
    name: str = Field(..., min_length=1)
    role: Optional[str] = None
    phone: Optional[str] = None


class ProjectBase(BaseModel):
    name: Optional[str] = None
    client_name: Optional[str] = None
    site_address: Optional[str] = None
    gst_number: Optional[str] = None
    phone: Optional[str] = None
    project_start_date: Optional[DateType] = None
    architect_name: Optional[str] = None
    engineer_name: Optional[str] = None
    construction_types: List[str] = []
    project_team: List[TeamMember] = []


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    client_name: Optional[str] = None
    site_address: Optional[str] = None
    gst_number: Optional[str] = None
    phone: Optional[str] = None
    project_start_date: Optional[DateType] = None
    architect_name: Optional[str] = None
    engineer_name: Optional[str] = None
    construction_types: Optional[List[str]] = None
    project_team: Optional[List[TeamMember]] = None


class ProjectRead(ProjectBase):
    id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)

    @field_validator("construction_types", "project_team", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []


# ---------- Branding ----------
class BrandingRead(BaseModel):
    project_name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    receipt_footer: Optional[str] = None
    brand_logo_url: Optional[str] = None
    bg_type: str = "default"
    background_image_url: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class BrandingUpdate(BaseModel):
    project_name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    receipt_footer: Optional[str] = None
    bg_type: Optional[str] = None

    @field_validator("bg_type")
    @classmethod
    def check_bg(cls, v: Optional[str]) -> Optional[str]:
        return _choice(v, BG_TYPES, "bg_type")


# ---------- Dashboard / reports ----------
class FinancialSummary(BaseModel):
    total_budget: Decimal
    labor_cost: Decimal
    monthly_labor_cost: Decimal
    material_cost: Decimal
    total_billed: Decimal
    total_received: Decimal
    as_of: DateType


class TodayStats(BaseModel):
    total_workers: int
    present_today: int
    total_hajri: Decimal
    todays_labor_cost: Decimal


class DashboardRead(BaseModel):
    date: DateType
    today: TodayStats
    financials: FinancialSummary
    active_estimate: Optional[EstimateSummary] = None


class BreakdownItem(BaseModel):
    name: str
    value: Decimal


class MonthlyReport(BaseModel):
    year: int
    month: int
    income: Decimal
    expenses: Decimal
    profit: Decimal
    expense_breakdown: List[BreakdownItem]


# ---------- AI-assisted entry ----------
class MagicParseRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=20000)


class ParsedAttendance(BaseModel):
    worker_name: str
    status: AttendanceStatusLiteral = "Present"
    shift: Optional[str] = None
    notes: Optional[str] = None
    worker_id: Optional[int] = Field(None, description="Matched active worker, None when no name matched")
    matched_name: Optional[str] = None


class ParsedExpense(BaseModel):
    item_name: str
    quantity: Decimal = Field(Decimal("0"), le=MAX_QUANTITY)
    unit: Optional[str] = None
    amount: Decimal = Field(Decimal("0"), le=MAX_MONEY)
    category: str = "Material"


class ParsedEstimateLine(BaseModel):
    description: str
    unit: str = "Nos"
    quantity: Decimal = Field(Decimal("0"), le=MAX_QUANTITY)
    rate: Decimal = Field(Decimal("0"), le=MAX_MONEY)


class MagicAttendanceCommit(BaseModel):
    date: DateType
    project_id: Optional[int] = None
    rows: List[ParsedAttendance]


class MagicExpenseCommit(BaseModel):
    date: DateType
    project_id: Optional[int] = None
    items: List[ParsedExpense]


class MagicEstimateCommit(BaseModel):
    estimate_id: Optional[int] = None
    items: List[ParsedEstimateLine]


class MagicCommitResult(BaseModel):
    saved: int
    skipped: List[str] = []
    estimate_id: Optional[int] = None
