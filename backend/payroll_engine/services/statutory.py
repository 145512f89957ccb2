"""
Statutory deduction calculators: Professional Tax, Provident Fund, ESI and
Income Tax.

Every function takes and returns integer paise. Income Tax is never derived
from salary here; the payroll figure is whatever the caller supplies.
"""

from __future__ import annotations

from payroll_engine.services.money import apply_rate, require_paise
from payroll_engine.services.tax_tables import DEFAULT_TAX_TABLES, TaxTables


def professional_tax(gross_paise: int, tables: TaxTables = DEFAULT_TAX_TABLES) -> int:
    gross = require_paise(gross_paise, "gross")
    for slab in tables.pt_slabs:
        if not slab.covers(gross):
            continue
        if slab.flat_paise is not None:
            return slab.flat_paise
        tax = apply_rate(gross, slab.rate)
        if slab.cap_paise is not None and tax > slab.cap_paise:
            tax = slab.cap_paise
        return tax
    # Slab tables end with an open band; reaching here means a malformed table.
    raise ValueError(f"No professional tax band covers gross {gross} paise")


def pf(basic_paise: int, da_paise: int, tables: TaxTables = DEFAULT_TAX_TABLES) -> int:
    basic = require_paise(basic_paise, "basic")
    da = require_paise(da_paise, "da")
    return apply_rate(basic + da, tables.pf_rate)


def esi(gross_paise: int, tables: TaxTables = DEFAULT_TAX_TABLES) -> int:
    gross = require_paise(gross_paise, "gross")
    if gross > tables.esi_ceiling_paise:
        return 0
    return apply_rate(gross, tables.esi_rate)


def income_tax(supplied_paise: int) -> int:
    return require_paise(supplied_paise, "income_tax")


def estimate_annual_income_tax(annual_income_paise: int, tables: TaxTables = DEFAULT_TAX_TABLES) -> int:
    """Progressive slab tax on annual income after the standard deduction.

    Payroll does not call this; it is for callers deriving the monthly IT
    figure they pass into the standard calculator.
    """
    income = require_paise(annual_income_paise, "annual_income")
    taxable = max(0, income - tables.standard_deduction_paise)

    tax = 0
    lower = 0
    for slab in tables.income_tax_slabs:
        if taxable <= lower:
            break
        upper = taxable if slab.max_paise is None else min(taxable, slab.max_paise)
        tax += apply_rate(upper - lower, slab.rate)
        if slab.max_paise is None:
            break
        lower = slab.max_paise
    return tax
