"""Exceptions raised by the calculator core and its collaborators."""


class CalculatorError(ValueError):
    """Base class for every failure a calculator session can display."""


class InvalidExpression(CalculatorError):
    """The expression failed structural validation and was never evaluated."""

    def __init__(self, expression: str):
        self.expression = expression
        super().__init__(f"Invalid expression: {expression!r}")


class DivisionByZero(CalculatorError, ZeroDivisionError):
    """The right operand of a division is exactly zero."""

    def __init__(self, message: str = "Division by zero"):
        super().__init__(message)


class EvaluationError(CalculatorError):
    """Any other failure while tokenizing, converting or evaluating.

    The underlying exception is chained as ``__cause__``.
    """

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Evaluation error: {reason}")


class InvalidValue(CalculatorError):
    """An operand is not a finite number or lies outside a function's domain."""


class InvalidHistoryFile(CalculatorError):
    """An imported history document is not a JSON array of history entries."""
