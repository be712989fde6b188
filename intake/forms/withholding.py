"""Advisory withholding estimate derived from W-4 field values."""

from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

CHILD_AMOUNT = Decimal("2000")
OTHER_DEPENDENT_AMOUNT = Decimal("500")


@dataclass(frozen=True)
class WithholdingEstimate:
    """Dependent credit and net adjustment for a W-4."""

    dependent_amount: Decimal
    adjustments: Decimal
    estimated_withholding: Decimal

    def to_dict(self) -> dict[str, float]:
        return {key: float(value) for key, value in asdict(self).items()}


def _amount(values: dict[str, Any], key: str) -> Decimal:
    """Read a numeric field, treating blanks and garbage as zero."""
    raw = values.get(key)
    if raw is None or not str(raw).strip():
        return Decimal("0")
    try:
        amount = Decimal(str(raw).replace(",", "").replace("$", "").strip())
    except InvalidOperation:
        return Decimal("0")
    return amount if amount.is_finite() else Decimal("0")


def estimate_withholding(values: dict[str, Any]) -> WithholdingEstimate:
    """Compute the withholding estimate from current W-4 values.

    The estimate is informational only and never affects validity.

    Args:
        values: W-4 field values.

    Returns:
        Estimate with the dependent amount, net adjustments and the
        estimated extra withholding (never negative).
    """
    dependent_amount = (
        _amount(values, "qualifyingChildren") * CHILD_AMOUNT
        + _amount(values, "otherDependents") * OTHER_DEPENDENT_AMOUNT
    )
    adjustments = (
        _amount(values, "otherIncome")
        - _amount(values, "deductions")
        + _amount(values, "extraWithholding")
    )
    estimated = max(Decimal("0"), adjustments - dependent_amount)
    return WithholdingEstimate(
        dependent_amount=dependent_amount,
        adjustments=adjustments,
        estimated_withholding=estimated,
    )
