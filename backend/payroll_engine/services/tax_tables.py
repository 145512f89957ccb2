"""
Statutory and compensation tables.

Tables are immutable and passed into the calculators, so a caller (or a test)
can supply an alternate set without touching calculation code. All money is in
paise.

Professional Tax has two schemes on record: a flat amount per band (the
Kerala slabs used by the salary engine) and a percentage with a cap. One
``TaxTables`` instance always carries exactly one of them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from payroll_engine.models.enums import CareerStage
from payroll_engine.services.money import rupees


@dataclass(frozen=True)
class ProfessionalTaxSlab:
    """Band covering gross up to ``max_paise`` inclusive (``None`` is open-ended).

    A band sets either ``flat_paise`` or ``rate``; ``cap_paise`` only applies to
    a rated band.
    """

    max_paise: Optional[int]
    flat_paise: Optional[int] = None
    rate: Optional[Decimal] = None
    cap_paise: Optional[int] = None

    def __post_init__(self) -> None:
        if (self.flat_paise is None) == (self.rate is None):
            raise ValueError("ProfessionalTaxSlab needs exactly one of flat_paise or rate")

    def covers(self, gross_paise: int) -> bool:
        return self.max_paise is None or gross_paise <= self.max_paise


@dataclass(frozen=True)
class IncomeTaxSlab:
    max_paise: Optional[int]
    rate: Decimal


@dataclass(frozen=True)
class CommissionTier:
    tier_number: int
    range_start: int
    range_end: Optional[int]
    rate_per_sale_paise: int

    @property
    def capacity(self) -> Optional[int]:
        if self.range_end is None:
            return None
        return self.range_end - self.range_start + 1

    @property
    def label(self) -> str:
        end = "+" if self.range_end is None else str(self.range_end)
        return f"{self.range_start}-{end}"


@dataclass(frozen=True)
class Milestone:
    sales_threshold: int
    bonus_paise: int


FLAT_PT_SLABS: Tuple[ProfessionalTaxSlab, ...] = (
    ProfessionalTaxSlab(max_paise=rupees(10000), flat_paise=0),
    ProfessionalTaxSlab(max_paise=rupees(15000), flat_paise=rupees(100)),
    ProfessionalTaxSlab(max_paise=rupees(20000), flat_paise=rupees(150)),
    ProfessionalTaxSlab(max_paise=rupees(25000), flat_paise=rupees(200)),
    ProfessionalTaxSlab(max_paise=rupees(30000), flat_paise=rupees(250)),
    ProfessionalTaxSlab(max_paise=None, flat_paise=rupees(300)),
)

PERCENT_PT_SLABS: Tuple[ProfessionalTaxSlab, ...] = (
    ProfessionalTaxSlab(max_paise=rupees(10000), rate=Decimal("0")),
    ProfessionalTaxSlab(max_paise=rupees(20000), rate=Decimal("0.01")),
    ProfessionalTaxSlab(max_paise=None, rate=Decimal("0.02"), cap_paise=rupees(2500)),
)

PT_SCHEMES: Mapping[str, Tuple[ProfessionalTaxSlab, ...]] = MappingProxyType({
    "FLAT": FLAT_PT_SLABS,
    "PERCENT": PERCENT_PT_SLABS,
})

INCOME_TAX_SLABS: Tuple[IncomeTaxSlab, ...] = (
    IncomeTaxSlab(max_paise=rupees(250000), rate=Decimal("0")),
    IncomeTaxSlab(max_paise=rupees(500000), rate=Decimal("0.05")),
    IncomeTaxSlab(max_paise=rupees(1000000), rate=Decimal("0.20")),
    IncomeTaxSlab(max_paise=None, rate=Decimal("0.30")),
)

COMMISSION_TIERS: Tuple[CommissionTier, ...] = (
    CommissionTier(1, 1, 12, rupees(1000)),
    CommissionTier(2, 13, 20, rupees(2500)),
    CommissionTier(3, 21, 30, rupees(3500)),
    CommissionTier(4, 31, 40, rupees(4500)),
    CommissionTier(5, 41, 50, rupees(5500)),
    CommissionTier(6, 51, None, rupees(6500)),
)


def _default_milestones() -> Dict[CareerStage, Tuple[Milestone, ...]]:
    return {
        CareerStage.PROBATION: (Milestone(4, rupees(500)), Milestone(8, rupees(500))),
        CareerStage.ESTABLISHED: (Milestone(3, rupees(500)), Milestone(8, rupees(500))),
    }


def _default_sales_base_pay() -> Dict[CareerStage, int]:
    return {
        CareerStage.PROBATION: rupees(5000),
        CareerStage.ESTABLISHED: rupees(13000),
    }


def _default_sales_allowances() -> Dict[str, int]:
    return {
        "skill_allowance": rupees(1500),
        "medical_allowance": rupees(1250),
        "wellness_allowance": rupees(2500),
    }


def _default_sales_deductions() -> Dict[str, int]:
    return {
        "welfare_fund": rupees(150),
        "communication": rupees(400),
    }


_MAPPING_FIELDS = ("milestones", "sales_base_pay", "sales_allowances", "sales_deductions")


@dataclass(frozen=True)
class TaxTables:
    pt_scheme: str = "FLAT"
    pt_slabs: Tuple[ProfessionalTaxSlab, ...] = FLAT_PT_SLABS

    # Standard salary
    hra_rate: Decimal = Decimal("0.30")
    da_rate: Decimal = Decimal("0.08")
    pf_rate: Decimal = Decimal("0.12")
    esi_rate: Decimal = Decimal("0.0075")
    esi_ceiling_paise: int = rupees(21000)
    income_tax_slabs: Tuple[IncomeTaxSlab, ...] = INCOME_TAX_SLABS
    standard_deduction_paise: int = rupees(50000)

    # Employer side, used only by the CTC estimate
    employer_pf_rate: Decimal = Decimal("0.12")
    employer_esi_rate: Decimal = Decimal("0.0325")

    # Sales salary
    commission_tiers: Tuple[CommissionTier, ...] = COMMISSION_TIERS
    # Wrapped read-only in __post_init__ and excluded from the hash.
    milestones: Mapping[CareerStage, Tuple[Milestone, ...]] = field(default_factory=_default_milestones, hash=False)
    sales_base_pay: Mapping[CareerStage, int] = field(default_factory=_default_sales_base_pay, hash=False)
    sales_allowances: Mapping[str, int] = field(default_factory=_default_sales_allowances, hash=False)
    sales_deductions: Mapping[str, int] = field(default_factory=_default_sales_deductions, hash=False)
    referral_bonuses: Tuple[int, ...] = (rupees(4500), rupees(5500), rupees(7000), rupees(10000))
    referral_averaging_months: int = 3
    referral_cap_paise: int = rupees(30000)

    def __post_init__(self) -> None:
        for name in _MAPPING_FIELDS:
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    @property
    def referral_limit(self) -> int:
        return len(self.referral_bonuses)

    def with_pt_scheme(self, scheme: str) -> "TaxTables":
        key = scheme.strip().upper()
        if key not in PT_SCHEMES:
            raise ValueError(f"Unknown professional tax scheme: {scheme}")
        return replace(self, pt_scheme=key, pt_slabs=PT_SCHEMES[key])


DEFAULT_TAX_TABLES = TaxTables()


def tables_from_settings(settings=None) -> TaxTables:
    """Tables for the configured Professional Tax scheme."""
    if settings is None:
        from payroll_engine.core.settings import settings
    return DEFAULT_TAX_TABLES.with_pt_scheme(settings.pt_scheme)
