"""Chart spec validation against a dataset schema."""
from typing import Dict, List

from dataset import Dataset
from schemas import ChartSpec

# Column reference fields checked per chart type. Empty fields are skipped.
REFERENCE_FIELDS: Dict[str, List[str]] = {
    "bar": ["x", "y", "y2", "group_by"],
    "line": ["x", "y", "y2", "group_by"],
    "area": ["x", "y", "y2", "group_by"],
    "scatter": ["x", "y", "y2", "group_by"],
    "combo": ["x", "y", "y2", "group_by"],
    "pie": ["category", "value"],
    "histogram": ["x"],
    "boxplot": ["y"],
    "bubble": ["x", "y", "z"],
}

MATRIX_TYPES = ("correlation", "heatmap")


def validate_chart_spec(dataset: Dataset, spec: ChartSpec) -> bool:
    """Return True when every column ``spec`` references exists in ``dataset``.

    Names are matched exactly and case-sensitively. Unknown chart types are
    rejected. Column data types are not checked here; cells that do not parse
    as numbers are dropped later during projection.
    """
    known = set(dataset.column_names())

    if spec.type in MATRIX_TYPES:
        if not spec.columns:
            return False
        return all(col in known for col in spec.columns)

    fields = REFERENCE_FIELDS.get(spec.type)
    if fields is None:
        return False

    for field in fields:
        name = getattr(spec, field)
        if name and name not in known:
            return False
    return True
