"""Evaluate a file of expressions, one per line, or replay an exported history."""
from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field, FilePath

from pocket_calculator.common.config import DEFAULT_SETTINGS, CalculatorSettings
from pocket_calculator.common.errors import CalculatorError
from pocket_calculator.common.logger import logger
from pocket_calculator.common.models import OperationResult
from pocket_calculator.common.parser import evaluate_expression
from pocket_calculator.session.history import HistoryManager

HISTORY_SUFFIX = ".json"


def build_output_path(input_path: Path) -> Path:
    """
    Name the results file written next to an operations file.

    The suffix is folded into the name so that ``ops.txt`` and ``ops.json``
    get distinct results files (``ops_txt_results.txt``, ``ops_json_results.txt``).

    :param Path input_path: Operations file

    :return: Results file path in the same folder
    :rtype: Path
    """
    suffixes = "".join(input_path.suffixes)
    suffix_safe = suffixes.replace(".", "_")
    stem = input_path.name[: -len(suffixes)] if suffixes else input_path.name
    return input_path.with_name(f"{stem}{suffix_safe}_results.txt")


def read_expressions(input_file: Path) -> List[str]:
    """
    Read the expressions of an operations file.

    A ``.json`` file is taken as an exported calculator history and its
    expressions are returned oldest first, the order they were typed in.
    Any other file holds one expression per line.

    :param Path input_file: Operations file

    :return: Raw expressions, blank lines included
    :rtype: List[str]
    :raises InvalidHistoryFile: If a ``.json`` file is not a valid history export
    """
    input_file = Path(input_file)
    if input_file.suffix == HISTORY_SUFFIX:
        history = HistoryManager(limit=DEFAULT_SETTINGS.history_limit)
        history.import_json(input_file)
        return [entry.expression for entry in reversed(history.entries)]
    return input_file.read_text(encoding="utf-8").splitlines()


class BatchEvaluator(BaseModel):
    """
    Evaluate every expression of an operations file and write the results.

    Each expression goes through the calculator core on its own, so one
    failure is reported on its line and does not stop the run. The results
    file holds ``expr = result`` or ``expr -> ERROR: message`` lines.
    """

    # Make the Pydantic instance immutable (read-only)
    model_config = ConfigDict(frozen=True)

    settings: CalculatorSettings = Field(default=DEFAULT_SETTINGS, description="Evaluator settings")

    def evaluate_lines(self, lines: List[str]) -> List[OperationResult]:
        """
        Evaluate non-empty lines, numbering them from 1 in file order.

        :param List[str] lines: Raw lines

        :return: One result per non-empty line
        :rtype: List[OperationResult]
        """
        results: List[OperationResult] = []
        for line_number, line in enumerate(lines, start=1):
            expr = line.strip()
            if not expr:
                continue
            try:
                value = evaluate_expression(expr, self.settings)
            except CalculatorError as exc:
                logger.error(f"🧮❌ Line {line_number}: {exc}")
                results.append(OperationResult(line=line_number, expression=expr, error=str(exc)))
                continue
            results.append(OperationResult(line=line_number, expression=expr, result=value))
        return results

    def evaluate_file(self, input_file: FilePath, output_file: Path) -> List[OperationResult]:
        """
        Evaluate an operations file and write the results to an output file.

        :param FilePath input_file: Text file of expressions or exported history
        :param Path output_file: Path where results will be written

        :return: Evaluated results in file order
        :rtype: List[OperationResult]
        :raises InvalidHistoryFile: If a history export cannot be read
        """
        input_file = Path(input_file)
        output_file = Path(output_file)

        logger.info(f"📄🏁 Evaluating {input_file}")
        results = self.evaluate_lines(read_expressions(input_file))

        with output_file.open("w", encoding="utf-8") as f_out:
            for result in results:
                f_out.write(f"{result.to_line()}\n")

        failed = sum(1 for result in results if not result.ok)
        logger.info(f"📄✅ {len(results)} expressions evaluated ({failed} failed), results in {output_file}")
        return results
