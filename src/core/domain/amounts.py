"""
Amounts — беззнаковые целочисленные суммы нативной валюты

Единственный допустимый способ проверки и сложения сумм в ledger:
- amount всегда int в диапазоне [0, UINT256_MAX]
- bool НЕ является суммой (хотя bool — подкласс int)
- сложение с проверкой переполнения (checked_add) вместо молчаливого wrap

ЗАПРЕЩЕНО проверять лимиты сложением сумм в обход checked_add.
"""

from typing import Final, Optional


# =============================================================================
# ГРАНИЦЫ
# =============================================================================

# Верхняя граница беззнаковой суммы (256-bit word)
UINT256_MAX: Final[int] = 2**256 - 1


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_amount(amount: int, name: str = "amount") -> int:
    """
    Проверка, что значение является корректной беззнаковой суммой.

    Нулевая сумма допустима на этом уровне: отказ по нулю — бизнес-правило
    ledger (InvalidAmount), а не ошибка типа.

    Args:
        amount: Проверяемое значение
        name: Имя параметра для сообщения об ошибке

    Returns:
        То же значение (для использования в выражениях)

    Raises:
        TypeError: Если значение не int (или является bool)
        ValueError: Если значение вне [0, UINT256_MAX]
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"{name} must be int, got {type(amount).__name__}")

    if amount < 0:
        raise ValueError(f"{name} cannot be negative: {amount}")

    if amount > UINT256_MAX:
        raise ValueError(f"{name} exceeds UINT256_MAX: {amount}")

    return amount


# =============================================================================
# АРИФМЕТИКА
# =============================================================================


def checked_add(a: int, b: int) -> Optional[int]:
    """
    Сложение с проверкой переполнения.

    Returns:
        a + b, или None если результат больше UINT256_MAX

    Examples:
        >>> checked_add(1, 2)
        3
        >>> checked_add(UINT256_MAX, 1) is None
        True
    """
    result = a + b
    if result > UINT256_MAX:
        return None
    return result


def fits_under_cap(current: int, addition: int, cap: int) -> bool:
    """
    Проверка current + addition <= cap без переполнения.

    Переполнение трактуется как превышение: сумма больше UINT256_MAX
    не может быть меньше или равна любому допустимому cap.
    """
    total = checked_add(current, addition)
    return total is not None and total <= cap
