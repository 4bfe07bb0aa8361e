"""Validate, parse and evaluate calculator expressions safely."""
from collections.abc import Callable as ABCCallable
import math
import operator
import re
from typing import Callable, Dict, List, Optional, Tuple, Union

from pocket_calculator.common.config import DEFAULT_SETTINGS, CalculatorSettings
from pocket_calculator.common.errors import (
    DivisionByZero,
    EvaluationError,
    InvalidExpression,
)
from pocket_calculator.common.logger import logger


# Type alias for operator functions (taking two floats, returning a float)
OperatorFn: ABCCallable[[float, float], float] = Callable[[float, float], float]

# A postfix token is either an operand or an operator symbol
PostfixToken = Union[float, str]


def _divide(a: float, b: float) -> float:
    if b == 0:
        raise DivisionByZero()
    return a / b


# Mapping of operator symbols to (precedence, function)
OPERATORS: Dict[str, Tuple[int, OperatorFn]] = {
    "+": (1, operator.add),
    "-": (1, operator.sub),
    "×": (2, operator.mul),
    "*": (2, operator.mul),
    "÷": (2, _divide),
    "/": (2, _divide),
    # Remainder takes the sign of the dividend
    "%": (3, math.fmod),
}

NUMBER_CHARS = "0123456789."

# Two or more consecutive binary operators (++, --, **, //, ××, ÷÷, +-, ...)
OPERATOR_RUN_RE = re.compile(r"[+\-×÷*/]{2,}")
# A numeric literal holding a second decimal point (5.5.5)
DOUBLE_DECIMAL_RE = re.compile(r"\d+\.\d+\.")
# Expressions may not end with an operator or an opening parenthesis
TRAILING_OPERATOR_RE = re.compile(r"[+\-×÷*/%(]$")
# A number directly followed by a percent sign
PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)%")


class ExpressionParser:
    """
    Validate, parse and evaluate calculator expressions safely.

    Design constraints:
        - No eval(), no dynamic code execution
        - Every stage is a pure function of its input

    Algorithm:
        1. Validate the raw expression structure
        2. Normalize display operators, percent and sign toggle
        3. Tokenize character by character
        4. Fold leading minus signs into their operand
        5. Convert to Reverse Polish Notation (RPN) using Shunting-yard
        6. Evaluate RPN using a stack

    Examples:
        - Infix expression (as typed): 2+3×4
        - Corresponding Reverse Polish Notation (RPN): 2 3 4 × +

    """

    @staticmethod
    def is_valid(expr: str, max_length: int = DEFAULT_SETTINGS.max_length) -> bool:
        """
        Check that an expression is structurally well formed.

        Rules:
            - At most ``max_length`` characters
            - Balanced parentheses, never closing before opening
            - No run of two or more binary operators
            - No number with two decimal points
            - No trailing operator or opening parenthesis

        :param str expr: Raw expression as typed
        :param int max_length: Maximum accepted length

        :return: True if the expression may be evaluated, else False
        :rtype: bool
        """
        if len(expr) > max_length:
            return False

        balance = 0
        for char in expr:
            if char == "(":
                balance += 1
            elif char == ")":
                balance -= 1
            if balance < 0:
                # Closing parenthesis before its opening one
                return False
        if balance != 0:
            return False

        if OPERATOR_RUN_RE.search(expr):
            return False
        if DOUBLE_DECIMAL_RE.search(expr):
            return False
        if TRAILING_OPERATOR_RE.search(expr):
            return False
        return True

    @staticmethod
    def normalize(expr: str) -> str:
        """
        Rewrite display symbols into the evaluator's operator set.

        - ``×`` and ``÷`` become ``*`` and ``/``
        - ``<number>%`` becomes ``(<number>/100)``; a ``%`` not directly
          preceded by a number stays the remainder operator
        - ``±`` becomes ``*-1``

        :param str expr: Validated expression

        :return: Normalized expression
        :rtype: str
        """
        normalized = expr.replace("×", "*").replace("÷", "/")
        normalized = PERCENT_RE.sub(r"(\1/100)", normalized)
        return normalized.replace("±", "*-1")

    @staticmethod
    def tokenize(expr: str) -> List[str]:
        """
        Split an expression into number literals and one-character tokens.

        Digits and decimal points accumulate into a number literal; any other
        character ends the literal and is emitted on its own. Spaces are
        dropped. No validation happens here.

        :param str expr: Normalized expression (e.g., "2+3*4")

        :return: List of tokens
        :rtype: List[str]
        """
        tokens: List[str] = []
        number = ""
        for char in expr:
            if char in NUMBER_CHARS:
                number += char
                continue
            if number:
                tokens.append(number)
                number = ""
            if char != " ":
                tokens.append(char)
        if number:
            tokens.append(number)
        return tokens

    @staticmethod
    def _is_number(token: str) -> bool:
        """
        Determine if a token represents a finite numeric value.

        :param str token: Token string

        :return: True if token can be converted to a finite float, else False
        :rtype: bool
        """
        try:
            return math.isfinite(float(token))
        except ValueError:
            return False

    @staticmethod
    def fold_signs(tokens: List[str]) -> List[str]:
        """
        Merge leading minus signs into the operand that follows them.

        A ``-`` is a sign when it starts the expression or follows an
        operator or an opening parenthesis. Followed by a number it becomes
        part of that number (``5 * - 1`` -> ``5 * -1``); followed by an
        opening parenthesis it becomes a multiplication by ``-1``.

        :param List[str] tokens: Tokenizer output

        :return: Tokens with signs folded
        :rtype: List[str]
        """
        folded: List[str] = []
        i = 0
        while i < len(tokens):
            token = tokens[i]
            previous: Optional[str] = folded[-1] if folded else None
            is_sign = token == "-" and (previous is None or previous == "(" or previous in OPERATORS)
            if is_sign and i + 1 < len(tokens):
                following = tokens[i + 1]
                if ExpressionParser._is_number(following):
                    folded.append(f"-{following}")
                    i += 2
                    continue
                if following == "(":
                    folded.extend(["-1", "*"])
                    i += 1
                    continue
            folded.append(token)
            i += 1
        return folded

    @staticmethod
    def to_rpn(tokens: List[str]) -> List[PostfixToken]:
        """
        Convert a list of tokens into Reverse Polish Notation (RPN) using the Shunting-yard algorithm.

        Operators of equal precedence are popped first, so every operator is
        left-associative (``10-2-3`` is ``(10-2)-3``). A closing parenthesis
        without a matching opening one simply empties the stack.

        :param List[str] tokens: List of tokens

        :return: Numbers (as floats) and operators in RPN order
        :rtype: List[PostfixToken]
        :raises ValueError: If a token is neither a number, an operator nor a parenthesis
        """
        output: List[PostfixToken] = []
        stack: List[str] = []

        for token in tokens:
            if ExpressionParser._is_number(token):
                output.append(float(token))
            elif token in OPERATORS:
                # Pop operators with higher or equal precedence, stopping at "("
                prec = OPERATORS[token][0]
                while stack and stack[-1] != "(" and OPERATORS[stack[-1]][0] >= prec:
                    output.append(stack.pop())
                stack.append(token)
            elif token == "(":
                stack.append(token)
            elif token == ")":
                while stack and stack[-1] != "(":
                    output.append(stack.pop())
                if stack:
                    # Discard the matching "("
                    stack.pop()
            else:
                raise ValueError(f"Unknown token: {token!r}")

        # Append remaining operators in reverse order (stack top first)
        output.extend(token for token in reversed(stack) if token != "(")
        return output

    @staticmethod
    def evaluate_rpn(postfix: List[PostfixToken]) -> float:
        """
        Reduce an RPN sequence to a single value.

        :param List[PostfixToken] postfix: Output of ``to_rpn``

        :return: Computed result
        :rtype: float
        :raises DivisionByZero: If a division has a zero right operand
        :raises ValueError: If the sequence is malformed
        """
        stack: List[float] = []
        for token in postfix:
            if isinstance(token, float):
                stack.append(token)
                continue
            # Operator requires two operands
            if len(stack) < 2:
                raise ValueError(f"Not enough operands for {token!r}")
            b: float = stack.pop()
            a: float = stack.pop()
            stack.append(OPERATORS[token][1](a, b))

        if len(stack) != 1:
            raise ValueError(f"Expected a single result, found {len(stack)} values")
        return stack[0]

    @staticmethod
    def evaluate(expr: str, settings: CalculatorSettings = DEFAULT_SETTINGS) -> float:
        """
        Evaluate a calculator expression safely.

        A blank expression evaluates to 0.

        :param str expr: Expression as typed (e.g., "50%+10")
        :param CalculatorSettings settings: Length limit and numeric tolerances

        :return: Cleaned result
        :rtype: float
        :raises InvalidExpression: If validation fails
        :raises DivisionByZero: If a division has a zero right operand
        :raises EvaluationError: For any other failure, chained to its cause
        """
        if not expr.strip():
            return 0.0

        if not ExpressionParser.is_valid(expr, settings.max_length):
            logger.debug(f"🧮❌ Rejected expression: {expr!r}")
            raise InvalidExpression(expr)

        try:
            normalized = ExpressionParser.normalize(expr)
            tokens = ExpressionParser.fold_signs(ExpressionParser.tokenize(normalized))
            rpn = ExpressionParser.to_rpn(tokens)
            value = ExpressionParser.evaluate_rpn(rpn)
        except DivisionByZero:
            raise
        except Exception as exc:
            logger.debug(f"🧮❌ Failed to evaluate {expr!r}: {exc}")
            raise EvaluationError(expr, str(exc)) from exc

        if not math.isfinite(value):
            raise EvaluationError(expr, "result is not a finite number")

        result = clean_result(value, settings.zero_tolerance, settings.decimals)
        logger.debug(f"🧮✅ {expr} = {result}")
        return result


def clean_result(
    value: float,
    tolerance: float = DEFAULT_SETTINGS.zero_tolerance,
    decimals: int = DEFAULT_SETTINGS.decimals,
) -> float:
    """
    Suppress binary floating-point noise.

    Values within ``tolerance`` of zero become exactly 0; anything else is
    rounded to ``decimals`` places (``0.1+0.2`` gives ``0.3``).

    :param float value: Raw result
    :param float tolerance: Snap-to-zero threshold
    :param int decimals: Decimal places kept

    :return: Cleaned value
    :rtype: float
    """
    if abs(value) < tolerance:
        return 0.0
    return round(value, decimals)


def format_number(value: float, decimals: int = DEFAULT_SETTINGS.decimals) -> str:
    """
    Render a number as a positional decimal string the evaluator can read back.

    Integral values drop the trailing ``.0``, fractions keep at most
    ``decimals`` places without trailing zeros, and negative zero prints as 0.
    Exponent notation is never produced.

    :param float value: Number to render
    :param int decimals: Decimal places kept

    :return: Display string (e.g., "7", "0.3", "-2.5", "0.00001")
    :rtype: str
    """
    if value.is_integer():
        text = str(int(value))
    else:
        text = f"{value:.{decimals}f}".rstrip("0").rstrip(".")
    return "0" if text in ("0", "-0") else text


def evaluate_expression(expression: str, settings: Optional[CalculatorSettings] = None) -> float:
    """
    Evaluate a calculator expression.

    This is the single entry point collaborators use; it is stateless and
    safe to share between sessions.

    :param str expression: Expression as typed
    :param CalculatorSettings settings: Optional settings, defaults otherwise

    :return: Cleaned result
    :rtype: float
    """
    return ExpressionParser.evaluate(expression, settings or DEFAULT_SETTINGS)
