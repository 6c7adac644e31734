"""Overflow checked 256 bit fixed point arithmetic

Python integers never overflow, so every helper here checks its inputs and
results against the 256 bit word the protocol runs on. mul_div
keeps the full 512 bit product as an intermediate, so only the quotient
has to fit.
"""
from .constants import MAX_UINT256
from .errors import ArithmeticOverflowError, DivisionByZeroError


def _check_word(value: int, what: str) -> int:
    if value < 0 or value > MAX_UINT256:
        raise ArithmeticOverflowError(f"Arithmetic overflow in {what}")
    return value


def checked_add(a: int, b: int) -> int:
    """Add with overflow checking"""
    return _check_word(a + b, "addition")


def checked_sub(a: int, b: int) -> int:
    """Subtract with underflow checking"""
    return _check_word(a - b, "subtraction")


def checked_mul(a: int, b: int) -> int:
    """Multiply with overflow checking"""
    return _check_word(a * b, "multiplication")


def checked_div(a: int, b: int) -> int:
    """Divide with zero checking"""
    if b == 0:
        raise DivisionByZeroError("Division by zero")
    return a // b


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) with a 512 bit intermediate

    Raises DivisionByZeroError when denominator is zero and
    ArithmeticOverflowError when the quotient exceeds 256 bits.
    """
    _check_word(a, "mul_div operand")
    _check_word(b, "mul_div operand")
    if denominator == 0:
        raise DivisionByZeroError("Division by zero in mul_div")
    _check_word(denominator, "mul_div denominator")
    return _check_word((a * b) // denominator, "mul_div")


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator), same failure modes as mul_div"""
    result = mul_div(a, b, denominator)
    if (a * b) % denominator > 0:
        result = checked_add(result, 1)
    return result
