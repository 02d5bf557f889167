"""Commission tier editor.

Keeps an ordered list of sales bands for one partition (``influencer`` or
``manager``) contiguous while rows are added, edited and removed, and
submits the whole list for bulk replacement.

Contiguity is at cent resolution: every tier except the last has a defined
maximum, and the next tier starts exactly one cent above it. The last tier
is always open-ended.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Mapping, Sequence

from app.core.formatting import format_currency
from app.gateway import commissions
from app.gateway.client import ApiClient, ApiResult

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
PARTITIONS = ("influencer", "manager")
EDITABLE_FIELDS = ("min_sales_value", "max_sales_value", "commission_percentage")


class TierValidationError(ValueError):
    """Raised when an edit or the whole tier list breaks an invariant."""


def parse_amount(value: Any) -> Decimal | None:
    """Parse a form or API value into a cent-quantized Decimal.

    Empty values give ``None``. Anything non-numeric raises
    :class:`TierValidationError`.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        number = value
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation as exc:
            raise TierValidationError(f"Valor inválido: {value}") from exc
    if not number.is_finite():
        raise TierValidationError(f"Valor inválido: {value}")
    try:
        return number.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise TierValidationError(f"Valor inválido: {value}") from exc


def _to_number(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


@dataclass
class CommissionTier:
    min_sales_value: Decimal
    max_sales_value: Decimal | None = None
    commission_percentage: Decimal = ZERO
    applies_to: str = "influencer"
    id: str | None = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any], applies_to: str) -> "CommissionTier":
        return cls(
            min_sales_value=parse_amount(payload.get("minSalesValue")) or ZERO,
            max_sales_value=parse_amount(payload.get("maxSalesValue")),
            commission_percentage=parse_amount(payload.get("commissionPercentage")) or ZERO,
            applies_to=payload.get("appliesTo") or applies_to,
            id=payload.get("_id"),
        )

    def to_api(self) -> dict[str, Any]:
        """Body shape for the bulk endpoint; an open bound is omitted."""
        body: dict[str, Any] = {
            "minSalesValue": _to_number(self.min_sales_value),
            "commissionPercentage": _to_number(self.commission_percentage),
            "appliesTo": self.applies_to,
        }
        if self.max_sales_value is not None:
            body["maxSalesValue"] = _to_number(self.max_sales_value)
        return body


@dataclass
class TierEditor:
    """In-memory tier list for one partition.

    ``error`` holds the last user-facing failure and ``new_min_value`` the
    raw text of a pending add, so a re-rendered form can show both.
    """

    applies_to: str
    tiers: list[CommissionTier] = field(default_factory=list)
    error: str | None = None
    new_min_value: str = ""
    field_errors: dict[tuple[int, str], str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.applies_to not in PARTITIONS:
            raise ValueError(f"Unknown tier partition: {self.applies_to!r}")

    @classmethod
    def from_form(
        cls,
        applies_to: str,
        min_values: Sequence[str],
        max_values: Sequence[str],
        percentages: Sequence[str],
    ) -> "TierEditor":
        """Rebuild an editor from the parallel lists posted by the tier form.

        Only the first row's minimum is taken from the form. Every other
        minimum is derived from the previous row's maximum. The last row is
        forced open-ended.
        """
        editor = cls(applies_to=applies_to)
        count = len(percentages)
        for index in range(count):
            raw_min = min_values[index] if index < len(min_values) else ""
            raw_max = max_values[index] if index < len(max_values) else ""
            tier = CommissionTier(min_sales_value=ZERO, applies_to=applies_to)
            tier.min_sales_value = editor._parse_field(index, "min_sales_value", raw_min) or ZERO
            if index < count - 1:
                tier.max_sales_value = editor._parse_field(index, "max_sales_value", raw_max)
            tier.commission_percentage = editor._parse_field(index, "commission_percentage", percentages[index]) or ZERO
            editor.tiers.append(tier)

        for index in range(count - 1):
            upper = editor.tiers[index].max_sales_value
            if upper is not None:
                editor.tiers[index + 1].min_sales_value = upper + CENT
        return editor

    def _parse_field(self, index: int, name: str, raw: Any) -> Decimal | None:
        try:
            return parse_amount(raw)
        except TierValidationError as exc:
            self.field_errors[(index, name)] = str(exc)
            return None

    @property
    def last(self) -> CommissionTier | None:
        return self.tiers[-1] if self.tiers else None

    def load(self, client: ApiClient) -> ApiResult:
        """Replace the local list with the backend's tiers for this partition."""
        self.error = None
        self.new_min_value = ""
        self.field_errors.clear()
        result = commissions.list_tiers(client, applies_to=self.applies_to)
        if not result.success:
            self.tiers = []
            self.error = result.message or "Falha ao buscar faixas de comissão"
            return result
        self.tiers = self._from_payload(result.data)
        return result

    def _from_payload(self, payload: Any) -> list[CommissionTier]:
        rows: Iterable[Mapping[str, Any]] = payload if isinstance(payload, list) else []
        tiers = [CommissionTier.from_api(row, self.applies_to) for row in rows if isinstance(row, Mapping)]
        return sorted(tiers, key=lambda tier: tier.min_sales_value)

    def add_tier(self, raw_min: Any) -> CommissionTier:
        """Append an open-ended tier starting at ``raw_min``.

        The previous last tier is closed one cent below the new minimum.
        A rejected value leaves the list untouched.
        """
        self.new_min_value = "" if raw_min is None else str(raw_min)
        try:
            new_min = parse_amount(raw_min)
        except TierValidationError:
            new_min = None
        if new_min is None or new_min < ZERO:
            raise TierValidationError("Por favor, insira um valor mínimo positivo para a nova faixa.")

        previous = self.last
        if previous is not None and new_min <= previous.min_sales_value:
            raise TierValidationError(
                "O valor mínimo deve ser maior que o valor mínimo da faixa anterior "
                f"({format_currency(previous.min_sales_value)})."
            )

        if previous is not None:
            previous.max_sales_value = max(new_min - CENT, ZERO)

        tier = CommissionTier(min_sales_value=new_min, commission_percentage=ZERO, applies_to=self.applies_to)
        self.tiers.append(tier)
        self.new_min_value = ""
        logger.debug("Added %s tier starting at %s", self.applies_to, new_min)
        return tier

    def remove_tier(self, index: int) -> CommissionTier:
        """Remove a tier and re-derive the neighbouring bounds.

        * last tier: the new last tier becomes open-ended;
        * first tier: the new first tier inherits the removed minimum;
        * middle tier: the previous tier grows to cover the removed band.
        """
        if len(self.tiers) <= 1:
            raise TierValidationError("Deve haver pelo menos uma faixa de comissão.")
        if not 0 <= index < len(self.tiers):
            raise TierValidationError("Faixa de comissão inexistente.")

        removed = self.tiers.pop(index)
        if index == len(self.tiers):
            self.tiers[-1].max_sales_value = None
        elif index == 0:
            self.tiers[0].min_sales_value = removed.min_sales_value
        else:
            self.tiers[index - 1].max_sales_value = self.tiers[index].min_sales_value - CENT
        return removed

    def edit_field(self, index: int, name: str, value: Any) -> None:
        """Edit one cell; a maximum change moves the next tier's minimum."""
        if name not in EDITABLE_FIELDS:
            raise TierValidationError(f"Campo desconhecido: {name}")
        if not 0 <= index < len(self.tiers):
            raise TierValidationError("Faixa de comissão inexistente.")

        tier = self.tiers[index]
        amount = parse_amount(value)
        is_last = index == len(self.tiers) - 1

        if name == "min_sales_value":
            if index != 0:
                raise TierValidationError("O valor mínimo desta faixa é derivado da faixa anterior.")
            if amount is None:
                raise TierValidationError("Informe o valor mínimo.")
            tier.min_sales_value = amount
        elif name == "max_sales_value":
            if is_last:
                raise TierValidationError("A última faixa não tem valor máximo.")
            tier.max_sales_value = amount
            if amount is not None:
                self.tiers[index + 1].min_sales_value = amount + CENT
        else:
            tier.commission_percentage = amount if amount is not None else ZERO

    def validate(self) -> None:
        """Check the whole list; raises :class:`TierValidationError` on the first problem."""
        if self.field_errors:
            (index, _name), message = sorted(self.field_errors.items())[0]
            raise TierValidationError(f"Faixa {index + 1}: {message}")
        if not self.tiers:
            raise TierValidationError("Deve haver pelo menos uma faixa de comissão.")

        for index, tier in enumerate(self.tiers):
            label = f"Faixa {index + 1}"
            if tier.min_sales_value < ZERO:
                raise TierValidationError(f"{label}: valor mínimo não pode ser negativo.")
            if not ZERO <= tier.commission_percentage <= HUNDRED:
                raise TierValidationError(f"{label}: a comissão deve estar entre 0 e 100%.")

            if index == len(self.tiers) - 1:
                if tier.max_sales_value is not None:
                    raise TierValidationError(f"{label}: a última faixa não pode ter valor máximo.")
                continue

            if tier.max_sales_value is None:
                raise TierValidationError(f"{label}: informe o valor máximo.")
            if tier.max_sales_value <= tier.min_sales_value:
                raise TierValidationError(f"{label}: o valor máximo deve ser maior que o mínimo.")

            following = self.tiers[index + 1]
            if following.min_sales_value <= tier.min_sales_value:
                raise TierValidationError("Faixas fora de ordem: os valores mínimos devem ser crescentes.")
            if following.min_sales_value != tier.max_sales_value + CENT:
                raise TierValidationError(
                    f"Faixas inválidas: a faixa {index + 2} deve começar logo após a faixa {index + 1}."
                )

    def submit(self, client: ApiClient) -> ApiResult:
        """Validate and bulk-replace the partition's tiers.

        A validation failure returns a failed result without any network
        call. A backend failure keeps the local list so the user can fix it.
        """
        try:
            self.validate()
        except TierValidationError as exc:
            self.error = str(exc)
            return ApiResult(success=False, message=self.error)

        result = commissions.save_tiers_bulk(client, self.applies_to, [tier.to_api() for tier in self.tiers])
        if not result.success:
            self.error = result.message or "Não foi possível salvar as faixas."
            return result

        self.error = None
        canonical = self._from_payload(result.data)
        if canonical:
            self.tiers = canonical
        return result

    def rows(self) -> list[dict[str, Any]]:
        """Template-friendly view of the tiers."""
        last_index = len(self.tiers) - 1
        return [
            {
                "index": index,
                "min_sales_value": tier.min_sales_value,
                "max_sales_value": tier.max_sales_value,
                "commission_percentage": tier.commission_percentage,
                "min_editable": index == 0,
                "max_editable": index != last_index,
                "removable": last_index > 0,
            }
            for index, tier in enumerate(self.tiers)
        ]
