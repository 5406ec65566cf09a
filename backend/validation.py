"""Upload and prompt checks applied before any work is done."""
from typing import Sequence

from errors import BadRequestError, ValidationError

ALLOWED_EXTENSIONS = (".csv", ".xlsx", ".xls")
MAX_PROMPT_LENGTH = 2000

IRRELEVANT_PATTERNS = [
    "what is the weather",
    "tell me a joke",
    "what time is it",
    "how are you",
    "what's your name",
    "who are you",
    "what can you do",
    "help me with",
    "explain quantum physics",
    "write a poem",
    "translate",
    "calculate",
    "what is",
    "who is",
    "when did",
    "where is",
    "why did",
    "how to cook",
    "how to learn",
    "recipe for",
    "news about",
    "latest on",
    "tell me about history",
    "what happened in",
]

DATA_KEYWORDS = [
    "data", "dataset", "column", "row", "value", "average", "mean", "sum",
    "count", "max", "min", "chart", "graph", "plot", "analyze", "analysis",
    "correlation", "trend", "distribution", "compare", "show", "display",
    "visualize", "statistic", "statistics", "percentage", "ratio", "proportion",
]

IRRELEVANT_PROMPT_MESSAGE = (
    "This prompt doesn't seem related to data analysis. Please ask questions about "
    "your uploaded dataset, such as 'Show me the average sales by region' or "
    "'What is the correlation between age and income?'"
)


def validate_upload(filename: str, size: int, max_bytes: int) -> None:
    if not filename:
        raise ValidationError("No file provided. Please select a file to upload.")
    if size > max_bytes:
        raise ValidationError(
            f"File size exceeds {max_bytes // (1024 * 1024)}MB limit",
            context={"filename": filename, "size": size},
        )
    if not filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise ValidationError(
            "Unsupported file type. Only CSV and Excel files are allowed",
            context={"filename": filename},
        )


def is_relevant_prompt(prompt: str, columns: Sequence[str]) -> bool:
    prompt = prompt.strip().lower()
    if len(prompt) < 3:
        return False

    if any(pattern in prompt for pattern in IRRELEVANT_PATTERNS):
        return False

    if any(keyword in prompt for keyword in DATA_KEYWORDS):
        return True
    return any(col.lower() in prompt for col in columns)


def validate_prompt(prompt: str, columns: Sequence[str]) -> None:
    prompt = prompt.strip()
    if not prompt:
        raise ValidationError("Prompt cannot be empty")
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise ValidationError(f"Prompt is too long (max {MAX_PROMPT_LENGTH} characters)")
    if not is_relevant_prompt(prompt, columns):
        raise BadRequestError(IRRELEVANT_PROMPT_MESSAGE)
