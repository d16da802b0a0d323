"""
Deal price formula.

    deal_value = (per_car_value * number_of_cars + setup_fee) * commitment_length

Deal value is always derived from the client's stored fields, never stored.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Optional, Union

from crm_backend.utils.constants import (
    COMMITMENT_LENGTHS,
    DEFAULT_COMMITMENT_LENGTH,
    DEFAULT_NUMBER_OF_CARS,
    DEFAULT_PER_CAR_VALUE,
    DEFAULT_SETUP_FEE,
)

Number = Union[int, float, str, Decimal]

CENTS = Decimal("0.01")


def to_money(value: Optional[Number], default: Decimal = Decimal("0.00")) -> Decimal:
    """Convert a DB numeric (often returned as str or float) to a cent-quantized Decimal."""
    if value is None:
        return default
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def validate_commitment_length(commitment_length: int) -> int:
    if commitment_length not in COMMITMENT_LENGTHS:
        raise ValueError(
            f"commitment_length must be one of {COMMITMENT_LENGTHS}, got {commitment_length}"
        )
    return commitment_length


def calculate_deal_value(
    number_of_cars: int = DEFAULT_NUMBER_OF_CARS,
    commitment_length: int = DEFAULT_COMMITMENT_LENGTH,
    per_car_value: Number = DEFAULT_PER_CAR_VALUE,
    setup_fee: Number = DEFAULT_SETUP_FEE,
) -> Decimal:
    """
    Compute the monetary value of a client contract.

    Args:
        number_of_cars: Cars covered by the deal (>= 0)
        commitment_length: Contract length in months, one of 12, 24, 36
        per_car_value: Monthly price per car
        setup_fee: Monthly setup fee

    Returns:
        Deal value quantized to cents.

    Raises:
        ValueError: If commitment_length is not allowed or number_of_cars is negative.

    Example:
        >>> calculate_deal_value(3, 12, 335, 96)
        Decimal('13212.00')
    """
    validate_commitment_length(commitment_length)
    if number_of_cars < 0:
        raise ValueError("number_of_cars must be >= 0")

    per_car = to_money(per_car_value)
    fee = to_money(setup_fee)
    value = (per_car * number_of_cars + fee) * commitment_length
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def deal_value_for_client(client: Mapping[str, Any]) -> Decimal:
    """Apply the formula to a clients row, filling column defaults for nulls."""
    number_of_cars = client.get("number_of_cars")
    commitment_length = client.get("commitment_length")
    return calculate_deal_value(
        number_of_cars=DEFAULT_NUMBER_OF_CARS if number_of_cars is None else int(number_of_cars),
        commitment_length=(
            DEFAULT_COMMITMENT_LENGTH if commitment_length is None else int(commitment_length)
        ),
        per_car_value=to_money(client.get("per_car_value"), DEFAULT_PER_CAR_VALUE),
        setup_fee=to_money(client.get("setup_fee"), DEFAULT_SETUP_FEE),
    )
