"""Custom errors for the lending market model"""

class ProtocolError(Exception):
    """Base error class for protocol errors"""
    pass

class ArithmeticError(ProtocolError):
    """Error for arithmetic overflow/underflow"""
    pass

class ArithmeticOverflowError(ArithmeticError):
    """Result does not fit in a 256 bit word"""
    pass

class DivisionByZeroError(ArithmeticError):
    """Denominator of a fixed point division is zero"""
    pass

class InputError(ProtocolError):
    """Zero amount operation requested"""
    pass

class InsufficientPositionError(ProtocolError):
    """Withdrawal or repayment exceeds the caller's recorded claim"""
    pass

class CompleteUtilizationError(ProtocolError):
    """Requested liquidity exceeds what is available"""
    pass

class InvariantError(ProtocolError):
    """Pair reserves do not satisfy the bonding curve"""
    pass

class InsufficientInputError(ProtocolError):
    """Settlement callback paid less than required"""
    pass

class InsufficientOutputError(ProtocolError):
    """Operation would release nothing"""
    pass

class InsufficientBalanceError(ProtocolError):
    """Token transfer exceeds the sender's balance"""
    pass

class ReentrancyError(ProtocolError):
    """Market re-entered while an operation is in flight"""
    pass

class InvariantViolationError(ProtocolError, AssertionError):
    """Market totals are inconsistent after an operation. Always a bug."""
    pass
