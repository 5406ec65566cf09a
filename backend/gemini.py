"""Gemini text generation client.

Wraps the ``google-genai`` SDK and owns every prompt the service sends:
insights, chart proposals and analysis suggestions. Responses are turned into
plain text or ``ChartSpec`` objects here; validation against the dataset
happens in the analysis engine.
"""
import json
import logging
from typing import Any, List, Mapping, Optional, Sequence

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import ValidationError as PydanticValidationError

from config import Settings
from dataset import Dataset
from errors import ChartParseError, ExternalServiceError
from schemas import ChartSpec, ChatMessage, ColumnInfo, SummaryStats

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 2048
MAX_SUGGESTIONS = 6

CHART_JSON_FORMAT = """{
  "charts": [
    {
      "type": "bar|line|scatter|pie|area|combo|histogram|boxplot|bubble|correlation",
      "title": "Descriptive chart title",
      "x": "column_name_for_x_axis",
      "y": "column_name_for_y_axis",
      "y2": "column_name_for_secondary_y_axis (for combo only)",
      "z": "column_name_for_size (for bubble only)",
      "category": "column_name_for_grouping (for pie)",
      "value": "column_name_for_values (for pie)",
      "groupBy": "column_name_for_grouping (for grouped/stacked bars)",
      "stacked": true/false,
      "aggregate": "sum|avg|count|max|min",
      "bins": 20,
      "columns": ["col1", "col2", "col3"]
    }
  ]
}"""

INSIGHT_PROMPT = """You are an expert data analyst. Analyze the dataset and user question to provide clear, actionable insights.

Dataset Schema:
{schema}

User Question: {prompt}

Your task:
1. Analyze what the user wants to understand from the data
2. Identify key patterns, trends, and observations
3. Provide clear, concise insights (2-4 sentences)
4. Focus on what the data reveals, not on visualization

Return ONLY a plain text insight (no JSON, no markdown, no code blocks). Just the insight text."""

CHART_PROMPT = """You are a chart configuration generator. Generate chart configurations based on the dataset and user question.

Dataset Schema:
{schema}

User Question: {prompt}

Available Chart Types:
- "bar": Categorical vs numeric
- "line": Values over time
- "scatter": Relationship between two numeric variables
- "pie": Percentage contribution (limited categories)
- "area": Cumulative trends
- "combo": Bar + line combination
- "histogram": Distribution of numeric column (use x, set bins: 20)
- "boxplot": Spread, median, quartiles (use y)
- "bubble": Relationship + third variable as size (use x, y, z)
- "correlation": Correlation matrix (use columns array)

Return ONLY valid JSON (no markdown, no code blocks):
{format}

Critical Rules:
- Column names MUST match exactly from the schema
- Return ONLY JSON, no explanations
- For histograms: use "x" with numeric column, set "bins" (default 20)
- For boxplots: use "y" with numeric column
- For correlation: use "columns" array with numeric column names
- For bubble: use "x", "y", and "z" (z is size)"""

CHART_RETRY_PROMPT = """CRITICAL: Previous response did NOT include valid graph JSON or was invalid.
Error: {error}

You MUST return ONLY valid JSON. Do NOT include explanations, markdown, or code blocks.

Dataset Schema:
{schema}

User Question: {prompt}

Generate chart configurations. Return ONLY valid JSON (no markdown, no code blocks):
{format}

Column names MUST match exactly from the schema."""

SUGGESTIONS_PROMPT = """You are a data analysis assistant. Given the following dataset schema:

{schema}

Generate 5-6 specific, actionable business analysis suggestions. Each suggestion should be:
1. Clear and specific
2. Actionable (can be executed)
3. Business-relevant

Return ONLY a JSON array of strings, no other text. Example format:
["Compare average values across categories", "Identify outliers in numeric columns", "Show distribution of categorical data"]

Suggestions:"""

CONTEXTUAL_PROMPT = """You are a data analysis assistant. Based on the recent conversation, generate 4-6 specific follow-up questions that would help the user explore their data further.

{history}

Generate contextual, relevant follow-up questions that:
1. Build on the previous conversation
2. Explore related aspects of the data
3. Are specific and actionable
4. Help discover new insights

Return ONLY a JSON array of strings, no other text. Example format:
["What is the correlation between X and Y?", "Show the distribution of Z", "Compare A across different categories"]

Suggestions:"""


def describe_columns(columns: Sequence[ColumnInfo], summary: Mapping[str, SummaryStats]) -> str:
    lines = []
    for col in columns:
        line = f"- {col.name} ({col.type})"
        stats = summary.get(col.name)
        if stats is not None:
            if stats.mean is not None:
                line += f" - numeric: min={stats.min:.2f}, max={stats.max:.2f}, mean={stats.mean:.2f}"
            elif stats.unique_count is not None:
                line += f" - categorical: {stats.unique_count} unique values"
        lines.append(line)
    return "\n".join(lines)


def describe_schema(dataset: Dataset) -> str:
    return "Dataset Schema:\n" + describe_columns(dataset.columns, dataset.summary)


def strip_code_fences(text: str) -> str:
    text = text.strip()
    for prefix in ("```json", "```"):
        if text.startswith(prefix):
            text = text[len(prefix):]
            break
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def extract_json(text: str) -> str:
    """Return the first balanced ``{...}`` block of a model response.

    Code fences are stripped first. Without any ``{`` the cleaned text is
    returned as-is; an unbalanced object returns everything from its opening
    brace.
    """
    text = strip_code_fences(text)

    start = text.find("{")
    if start == -1:
        return text

    depth = 0
    for i in range(start, len(text)):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return text[start:]


def parse_chart_response(text: str) -> List[ChartSpec]:
    json_text = extract_json(text)
    if not json_text.startswith("{"):
        raise ChartParseError("no JSON found in response")

    try:
        payload = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise ChartParseError(f"invalid JSON response: {e}. Extracted text: {json_text[:200]}") from e

    if not isinstance(payload, dict):
        raise ChartParseError(f"invalid JSON response: expected an object. Extracted text: {json_text[:200]}")

    raw_charts = payload.get("charts")
    if raw_charts is None:
        raw_charts = []
    if not isinstance(raw_charts, list):
        raise ChartParseError(
            f"invalid JSON response: charts must be an array. Extracted text: {json_text[:200]}"
        )

    try:
        charts = [ChartSpec.model_validate(c) for c in raw_charts]
    except PydanticValidationError as e:
        raise ChartParseError(f"invalid JSON response: {e.error_count()} invalid chart field(s)") from e

    if not charts:
        raise ChartParseError("no charts in JSON response")
    return charts


def parse_suggestions(text: str) -> List[str]:
    """Parse a JSON array of strings, falling back to bullet or quoted lines."""
    text = strip_code_fences(text)
    suggestions: List[str] = []
    try:
        parsed = json.loads(text)
        if isinstance(parsed, list):
            suggestions = [str(s) for s in parsed]
    except json.JSONDecodeError:
        for line in text.splitlines():
            line = line.strip()
            if line and line[0] in "\"-*":
                line = line.strip("\"`-* ")
                if line:
                    suggestions.append(line)

    if not suggestions:
        raise ExternalServiceError("failed to parse suggestions")
    return suggestions[:MAX_SUGGESTIONS]


class GeminiService:
    """Chart assistant backed by Gemini."""

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.model = settings.gemini_model
        self._client = client
        if self._client is None:
            if settings.google_cloud_project:
                self._client = genai.Client(
                    vertexai=True,
                    project=settings.google_cloud_project,
                    location=settings.google_cloud_location,
                )
            elif settings.gemini_api_key:
                self._client = genai.Client(api_key=settings.gemini_api_key)
            else:
                logger.warning("No Gemini credentials configured; generation calls will fail")

    def call(self, prompt: str, temperature: float) -> str:
        if self._client is None:
            raise ExternalServiceError(
                "Gemini is not configured. Set GEMINI_API_KEY or GOOGLE_CLOUD_PROJECT_ID."
            )

        try:
            resp = self._client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=temperature,
                    max_output_tokens=MAX_OUTPUT_TOKENS,
                ),
            )
        except genai_errors.APIError as e:
            if e.code in (401, 403):
                msg = f"authentication error (status {e.code}): {e.message}. Please check your credentials"
            elif e.code == 429:
                msg = f"rate limit exceeded (status {e.code}): {e.message}. Please wait a moment and try again"
            elif e.code and e.code >= 500:
                msg = f"Gemini API server error (status {e.code}): {e.message}. Please try again later"
            else:
                msg = f"Gemini API error (status {e.code}): {e.message}"
            raise ExternalServiceError(msg) from e
        except Exception as e:
            raise ExternalServiceError(f"network error calling Gemini API: {e}") from e

        text = getattr(resp, "text", None)
        if not text:
            raise ExternalServiceError(
                "empty content in Gemini API response. The API may have filtered the content"
            )
        return text

    def analyze(self, dataset: Dataset, prompt: str) -> str:
        """Generate plain-text insights for ``prompt``."""
        text = self.call(INSIGHT_PROMPT.format(schema=describe_schema(dataset), prompt=prompt), 0.3)
        return text.strip()

    def generate_charts(self, dataset: Dataset, prompt: str, previous_error: str = "") -> List[ChartSpec]:
        """Propose chart specs, using ``previous_error`` as corrective feedback."""
        schema = describe_schema(dataset)
        if previous_error:
            chart_prompt = CHART_RETRY_PROMPT.format(
                error=previous_error, schema=schema, prompt=prompt, format=CHART_JSON_FORMAT
            )
        else:
            chart_prompt = CHART_PROMPT.format(schema=schema, prompt=prompt, format=CHART_JSON_FORMAT)

        text = self.call(chart_prompt, 0.1)
        return parse_chart_response(text)

    def get_suggestions(self, columns: Sequence[ColumnInfo], summary: Mapping[str, SummaryStats]) -> List[str]:
        schema = "Dataset columns:\n" + describe_columns(columns, summary)
        return parse_suggestions(self.call(SUGGESTIONS_PROMPT.format(schema=schema), 0.7))

    def get_contextual_suggestions(self, recent_chats: Sequence[ChatMessage]) -> List[str]:
        history = "Recent conversation:\n" + "".join(f"{m.role}: {m.content}\n" for m in recent_chats)
        return parse_suggestions(self.call(CONTEXTUAL_PROMPT.format(history=history), 0.7))
