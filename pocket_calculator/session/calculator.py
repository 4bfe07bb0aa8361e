"""Session-scoped calculator state: expression building, memory and history."""
import re
from pathlib import Path
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pocket_calculator.common.config import DEFAULT_SETTINGS, CalculatorSettings
from pocket_calculator.common.errors import CalculatorError, InvalidHistoryFile, InvalidValue
from pocket_calculator.common.functions import SCIENTIFIC_FUNCTIONS, apply_scientific, parse_operand
from pocket_calculator.common.logger import logger
from pocket_calculator.common.models import HistoryEntry
from pocket_calculator.common.parser import clean_result, evaluate_expression, format_number
from pocket_calculator.session.history import HISTORY_ADAPTER, HistoryManager
from pocket_calculator.session.notifier import LoggingNotifier, Notifier
from pocket_calculator.session.storage import (
    HISTORY_KEY,
    MEMORY_KEY,
    SCIENTIFIC_MODE_KEY,
    THEME_KEY,
    JsonFileStore,
)

ERROR_DISPLAY = "Error"
DIGITS = "0123456789"
# Operators that end the current number
OPERATOR_KEYS = ("+", "-", "×", "÷", "%")

ACTION_SYMBOLS: Dict[str, str] = {
    "add": "+",
    "subtract": "-",
    "multiply": "×",
    "divide": "÷",
    "percent": "%",
    "decimal": ".",
    "open-parenthesis": "(",
    "close-parenthesis": ")",
}
MEMORY_ACTIONS = ("memory-clear", "memory-recall", "memory-add", "memory-subtract")

# Keyboard keys that map to a different display symbol
KEY_SYMBOLS: Dict[str, str] = {"*": "×", "x": "×", "/": "÷"}

_NUMBER = r"(?:\d+(?:\.\d*)?|\.\d+)"
WRAPPED_NEGATIVE_RE = re.compile(rf"\(-({_NUMBER})\)$")
TRAILING_NUMBER_RE = re.compile(rf"({_NUMBER})$")


def negate_trailing(expr: str) -> str:
    """
    Flip the sign of the number the user is typing.

    - ``3`` <-> ``-3`` at the start of the expression
    - ``(3`` <-> ``(-3`` right after an opening parenthesis
    - ``5+3`` <-> ``5+(-3)`` after an operator
    - anything else, e.g. ``(2+3)``, is wrapped as ``(-(2+3))``

    :param str expr: Current expression

    :return: Expression with the trailing number negated
    :rtype: str
    """
    wrapped = WRAPPED_NEGATIVE_RE.search(expr)
    if wrapped:
        return expr[: wrapped.start()] + wrapped.group(1)

    match = TRAILING_NUMBER_RE.search(expr)
    if match is None:
        return f"(-{expr})"

    head, number = expr[: match.start()], match.group(1)
    if head == "":
        return f"-{number}"
    if head == "-" or head.endswith("(-"):
        return head[:-1] + number
    if head.endswith("("):
        return f"{head}-{number}"
    return f"{head}(-{number})"


class CalculatorSession(BaseModel):
    """
    State of one calculator: the expression being typed, the display, the
    memory register, preferences and history.

    Sessions are independent: nothing is shared between two instances except
    the (immutable) settings. Failures never discard the expression being
    typed; they switch the display to ``Error`` and send a notification.

    The ``on_*`` methods are the direct-call equivalent of button presses and
    key strokes.
    """

    # Allow arbitrary types like the notifier protocol
    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: CalculatorSettings = Field(default=DEFAULT_SETTINGS, description="Limits and tolerances")
    expression: str = Field(default="", description="Expression being typed")
    result: str = Field(default="0", description="Displayed result")
    last_result: Optional[float] = Field(default=None, description="Last numeric result")
    memory: float = Field(default=0.0, description="Memory register")
    is_new_expression: bool = Field(default=True, description="Next input starts a new expression")
    decimal_entered: bool = Field(default=False, description="Current number already has a decimal point")
    is_scientific_mode: bool = False
    is_dark_theme: bool = False
    history: Optional[HistoryManager] = None
    notifier: Notifier = Field(default_factory=LoggingNotifier, description="Where messages are shown")
    store: Optional[JsonFileStore] = Field(default=None, description="Persistence, if any")

    def model_post_init(self, __context) -> None:
        if self.history is None:
            self.history = HistoryManager(limit=self.settings.history_limit)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        store: JsonFileStore,
        settings: CalculatorSettings = DEFAULT_SETTINGS,
        notifier: Optional[Notifier] = None,
    ) -> "CalculatorSession":
        """
        Restore a session from a store.

        Unreadable memory falls back to 0 and an unreadable history to an
        empty one; neither prevents the session from starting.

        :param JsonFileStore store: Persistence store
        :param CalculatorSettings settings: Session settings
        :param Notifier notifier: Notification sink, logging by default

        :return: Restored session bound to ``store``
        :rtype: CalculatorSession
        """
        session = cls(settings=settings, store=store, notifier=notifier or LoggingNotifier())
        session.is_dark_theme = store.get(THEME_KEY) == "dark"
        session.is_scientific_mode = str(store.get(SCIENTIFIC_MODE_KEY)).lower() == "true"

        try:
            session.memory = parse_operand(store.get(MEMORY_KEY, 0))
        except InvalidValue:
            logger.warning("💾❌ Stored memory is not a number, resetting to 0")

        saved_history = store.get(HISTORY_KEY, [])
        if isinstance(saved_history, list):
            try:
                session.history.replace(HISTORY_ADAPTER.validate_python(saved_history))
            except ValidationError as exc:
                logger.warning(f"💾❌ Ignoring stored history: {exc.error_count()} invalid entries")
        return session

    def save(self) -> None:
        """Write theme, scientific mode, memory and history to the store, if any."""
        if self.store is None:
            return
        self.store.update(
            {
                THEME_KEY: "dark" if self.is_dark_theme else "light",
                HISTORY_KEY: [entry.model_dump(mode="json") for entry in self.history.items],
                MEMORY_KEY: self.memory,
                SCIENTIFIC_MODE_KEY: "true" if self.is_scientific_mode else "false",
            }
        )

    def _notify(self, message: str) -> None:
        self.notifier.notify(message)

    # ------------------------------------------------------------------
    # Expression building
    # ------------------------------------------------------------------

    def append_to_expression(self, value: str) -> str:
        """
        Append a key (or a recalled expression) to the expression.

        - Starts over when the previous expression was just evaluated
        - Ignores a second decimal point typed right after a digit of the
          same number
        - Refuses input beyond ``settings.max_length``

        :param str value: Character(s) to append

        :return: Updated expression
        :rtype: str
        """
        if self.is_new_expression:
            self.expression = ""
            self.is_new_expression = False
            self.decimal_entered = False

        if len(self.expression) + len(value) > self.settings.max_length:
            self._notify("Maximum input length reached")
            return self.expression

        if value == ".":
            if self.decimal_entered and self.expression[-1:].isdigit():
                return self.expression
            self.decimal_entered = True
        elif value in OPERATOR_KEYS:
            self.decimal_entered = False

        self.expression += value
        return self.expression

    def calculate(self) -> Optional[float]:
        """
        Evaluate the expression and display the result.

        On success the calculation is added to the history and the next key
        starts a new expression. On failure the display shows ``Error`` and
        the expression is kept so it can be corrected.

        :return: Result, or None if the expression was empty or invalid
        :rtype: Optional[float]
        """
        if not self.expression.strip():
            self.result = "0"
            return None

        try:
            value = evaluate_expression(self.expression, self.settings)
        except CalculatorError as exc:
            logger.warning(f"🧮❌ {self.expression!r}: {exc}")
            self.result = ERROR_DISPLAY
            self._notify(str(exc))
            return None

        self.last_result = value
        self.result = format_number(value, self.settings.decimals)
        self.history.add(self.expression, value)
        self.is_new_expression = True
        self.save()
        return value

    def clear_all(self) -> None:
        self.expression = ""
        self.result = "0"
        self.is_new_expression = True
        self.decimal_entered = False

    def clear_entry(self) -> None:
        """Delete the last character, or everything after an evaluation."""
        if self.is_new_expression:
            self.clear_all()
            return
        self.expression = self.expression[:-1]
        if not self.expression:
            self.result = "0"
            self.is_new_expression = True

    def toggle_sign(self) -> None:
        """
        Negate the displayed result right after an evaluation, otherwise the
        number being typed (see ``negate_trailing``).
        """
        if self.is_new_expression and self.result != "0":
            try:
                value = -parse_operand(self.result)
            except InvalidValue as exc:
                self._notify(str(exc))
                return
            self.result = format_number(value, self.settings.decimals)
            self.last_result = value
        elif self.expression:
            negated = negate_trailing(self.expression)
            if len(negated) > self.settings.max_length:
                self._notify("Maximum input length reached")
                return
            self.expression = negated

    def recall_history(self, index: int) -> str:
        """Append the expression of history entry ``index`` (0 is newest)."""
        return self.append_to_expression(self.history.items[index].expression)

    # ------------------------------------------------------------------
    # Scientific and memory functions
    # ------------------------------------------------------------------

    def scientific_function(self, name: str, value: Optional[float] = None) -> Optional[float]:
        """
        Apply a scientific function to ``value`` or to the displayed result.

        Trigonometric functions take degrees and ``log`` is base 10. The
        calculation is recorded in the history as ``name(operand)``.

        :param str name: One of ``sqrt``, ``power``, ``sin``, ``cos``, ``tan``, ``log``
        :param float value: Explicit operand

        :return: Cleaned result, or None if the operand was invalid
        :rtype: Optional[float]
        """
        try:
            operand = parse_operand(self.result if value is None else value)
            raw = apply_scientific(name, operand)
        except InvalidValue as exc:
            self._notify(str(exc))
            return None

        result = clean_result(raw, self.settings.zero_tolerance, self.settings.decimals)
        self.result = format_number(result, self.settings.decimals)
        self.last_result = result
        self.is_new_expression = True
        self.history.add(f"{name}({format_number(operand)})", result)
        self.save()
        return result

    def memory_function(self, action: str) -> None:
        """
        Run a memory key against the displayed result.

        :param str action: ``memory-clear``, ``memory-recall``, ``memory-add`` or ``memory-subtract``

        :raises ValueError: If ``action`` is not a memory action
        """
        if action not in MEMORY_ACTIONS:
            raise ValueError(f"Unknown memory action: {action!r}")

        try:
            current = parse_operand(self.result)
        except InvalidValue:
            self._notify("Invalid value for memory operation")
            return

        if action == "memory-clear":
            self.memory = 0.0
            self._notify("Memory cleared")
        elif action == "memory-recall":
            self.expression = format_number(self.memory, self.settings.decimals)
            self.result = self.expression
            self.is_new_expression = True
        elif action == "memory-add":
            self.memory = clean_result(self.memory + current, self.settings.zero_tolerance, self.settings.decimals)
            self._notify(f"Added {format_number(current)} to memory")
        else:
            self.memory = clean_result(self.memory - current, self.settings.zero_tolerance, self.settings.decimals)
            self._notify(f"Subtracted {format_number(current)} from memory")
        self.save()

    # ------------------------------------------------------------------
    # Preferences, history and clipboard
    # ------------------------------------------------------------------

    def toggle_theme(self) -> bool:
        self.is_dark_theme = not self.is_dark_theme
        self.save()
        return self.is_dark_theme

    def toggle_scientific_mode(self) -> bool:
        self.is_scientific_mode = not self.is_scientific_mode
        self.save()
        return self.is_scientific_mode

    def clear_history(self) -> None:
        self.history.clear()
        self.save()

    def export_history(self, path: Path) -> Path:
        return self.history.export_json(path)

    def import_history(self, path: Path) -> List[HistoryEntry]:
        """
        Replace the history with a previously exported file.

        :param Path path: JSON file holding an array of entries

        :return: Current history entries (unchanged if the import failed)
        :rtype: List[HistoryEntry]
        """
        try:
            self.history.import_json(path)
        except InvalidHistoryFile as exc:
            self._notify(str(exc))
            return self.history.entries
        self._notify("History imported")
        self.save()
        return self.history.entries

    def copy_result(self, clipboard: Callable[[str], None]) -> bool:
        """
        Hand the displayed result to a clipboard writer.

        :param Callable clipboard: Function receiving the text to copy

        :return: True if the clipboard accepted the text
        :rtype: bool
        """
        try:
            clipboard(self.result)
        except Exception as exc:
            logger.error(f"📋❌ Copy failed: {exc}")
            self._notify(f"Copy failed: {exc}")
            return False
        self._notify("Result copied to clipboard")
        return True

    # ------------------------------------------------------------------
    # Direct-call input interface
    # ------------------------------------------------------------------

    def on_digit(self, digit: str) -> str:
        if len(digit) != 1 or digit not in DIGITS:
            raise ValueError(f"Not a digit: {digit!r}")
        return self.append_to_expression(digit)

    def on_operator(self, symbol: str) -> str:
        symbol = KEY_SYMBOLS.get(symbol, symbol)
        if symbol not in OPERATOR_KEYS:
            raise ValueError(f"Not an operator: {symbol!r}")
        return self.append_to_expression(symbol)

    def on_decimal(self) -> str:
        return self.append_to_expression(".")

    def on_parenthesis(self, symbol: str) -> str:
        if symbol not in ("(", ")"):
            raise ValueError(f"Not a parenthesis: {symbol!r}")
        return self.append_to_expression(symbol)

    def on_equals(self) -> Optional[float]:
        return self.calculate()

    def on_action(self, action: str, clipboard: Optional[Callable[[str], None]] = None) -> None:
        """
        Dispatch a named button action (``add``, ``equals``, ``sqrt``, ...).

        :param str action: Button action name
        :param Callable clipboard: Clipboard writer used by ``copy``

        :raises ValueError: If the action is unknown
        """
        if action in ACTION_SYMBOLS:
            self.append_to_expression(ACTION_SYMBOLS[action])
        elif action == "clear":
            self.clear_all()
        elif action in ("clear-entry", "backspace"):
            self.clear_entry()
        elif action == "equals":
            self.calculate()
        elif action == "toggle-sign":
            self.toggle_sign()
        elif action in SCIENTIFIC_FUNCTIONS:
            self.scientific_function(action)
        elif action in MEMORY_ACTIONS:
            self.memory_function(action)
        elif action == "copy" and clipboard is not None:
            self.copy_result(clipboard)
        else:
            raise ValueError(f"Unknown action: {action!r}")

    def on_key(self, key: str) -> bool:
        """
        Handle a keyboard key the way the on-screen keypad does.

        :param str key: Key name (``"7"``, ``"x"``, ``"Enter"``, ``"Backspace"``, ...)

        :return: True if the key was handled
        :rtype: bool
        """
        if len(key) == 1 and key in DIGITS:
            self.on_digit(key)
        elif key in OPERATOR_KEYS or key in KEY_SYMBOLS:
            self.on_operator(key)
        elif key == ".":
            self.on_decimal()
        elif key in ("=", "Enter"):
            self.calculate()
        elif key in ("Escape", "Delete"):
            self.clear_all()
        elif key == "Backspace":
            self.clear_entry()
        elif key in ("(", ")"):
            self.on_parenthesis(key)
        else:
            return False
        return True
