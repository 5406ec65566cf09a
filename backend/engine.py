"""Two-step analysis flow: insights first, then validated charts with retries."""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol

from dataset import Dataset
from errors import ExternalServiceError, OperationError, ValidationError
from projector import CorrelationMode, project_chart_data
from schemas import ChartSpec
from validator import validate_chart_spec

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

NOT_FEASIBLE_MESSAGE = (
    "Graph cannot be generated due to insufficient or incompatible data. "
    "The dataset may be too small, missing required columns, or lack numeric data."
)
FAILED_MESSAGE = "Visual representation could not be generated reliably for this prompt or your requirements."
NO_VALID_CHARTS_FEEDBACK = (
    "No valid charts were generated. Please ensure column names match the schema "
    "exactly and chart types are appropriate for the data."
)


class ChartStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    NOT_FEASIBLE = "not_feasible"


class ChartAssistant(Protocol):
    def analyze(self, dataset: Dataset, prompt: str) -> str:
        ...

    def generate_charts(self, dataset: Dataset, prompt: str, previous_error: str = "") -> List[ChartSpec]:
        ...


@dataclass
class AnalysisResult:
    insights: str
    charts: List[ChartSpec] = field(default_factory=list)
    chart_status: ChartStatus = ChartStatus.FAILED
    chart_message: str = ""
    retry_attempts: int = 0


def json_retry_feedback(error: str) -> str:
    return (
        f"Previous response did NOT include valid graph JSON. Error: {error}. "
        "You MUST return ONLY valid JSON in the exact format specified, with no "
        "explanations, markdown, or code blocks."
    )


def feedback_for_error(error: str) -> str:
    if "JSON" in error or "json" in error:
        return json_retry_feedback(error)
    return error


def is_chart_generation_feasible(dataset: Dataset) -> bool:
    return dataset.row_count > 1 and len(dataset.columns) > 0


class AnalysisEngine:
    def __init__(
        self,
        assistant: ChartAssistant,
        max_attempts: int = MAX_ATTEMPTS,
        correlation_mode: CorrelationMode = CorrelationMode.INDEPENDENT,
    ):
        self.assistant = assistant
        self.max_attempts = max(1, max_attempts)
        self.correlation_mode = correlation_mode

    def render_charts(self, dataset: Dataset, proposed: List[ChartSpec]) -> List[ChartSpec]:
        """Validate and project proposals, dropping invalid or empty charts."""
        charts = []
        for spec in proposed:
            if not validate_chart_spec(dataset, spec):
                logger.debug("Dropping chart %r: invalid column reference or type", spec.type)
                continue
            data = project_chart_data(dataset, spec, self.correlation_mode)
            if not data:
                logger.debug("Dropping chart %r: projection produced no data", spec.type)
                continue
            charts.append(spec.model_copy(update={"data": data}))
        return charts

    def process_analysis(self, dataset: Optional[Dataset], prompt: str) -> AnalysisResult:
        if dataset is None or dataset.row_count == 0:
            raise ValidationError("dataset is empty")
        if not prompt:
            raise ValidationError("prompt cannot be empty")

        try:
            insights = self.assistant.analyze(dataset, prompt)
        except ExternalServiceError as e:
            raise OperationError("analysis step failed") from e
        if not insights:
            raise OperationError("analysis step returned empty insights")

        result = AnalysisResult(insights=insights)

        if not is_chart_generation_feasible(dataset):
            result.chart_status = ChartStatus.NOT_FEASIBLE
            result.chart_message = NOT_FEASIBLE_MESSAGE
            return result

        feedback = ""
        for attempt in range(1, self.max_attempts + 1):
            result.retry_attempts = attempt
            last_attempt = attempt == self.max_attempts

            try:
                proposed = self.assistant.generate_charts(dataset, prompt, feedback)
            except ExternalServiceError as e:
                logger.warning("Chart proposal attempt %d/%d failed: %s", attempt, self.max_attempts, e.message)
                if last_attempt:
                    break
                feedback = feedback_for_error(e.message)
                continue

            charts = self.render_charts(dataset, proposed)
            logger.info(
                "Chart attempt %d/%d kept %d of %d proposed charts",
                attempt, self.max_attempts, len(charts), len(proposed),
            )

            if charts:
                result.charts = charts
                if len(charts) == len(proposed):
                    result.chart_status = ChartStatus.SUCCESS
                else:
                    result.chart_status = ChartStatus.PARTIAL
                    result.chart_message = f"Generated {len(charts)} out of {len(proposed)} requested charts"
                return result

            feedback = NO_VALID_CHARTS_FEEDBACK

        result.chart_status = ChartStatus.FAILED
        result.chart_message = FAILED_MESSAGE
        return result
