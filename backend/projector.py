"""Chart data projection.

Turns dataset rows into chart-ready data points for a validated ``ChartSpec``.
Every projection returns a list of row dicts and never raises on bad input:
an empty list means the chart produced nothing usable.

Grouping (grouped bars, aggregated bars, pie slices) keeps first-seen order of
the grouping keys.
"""
import math
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from dataset import Cell, Dataset
from schemas import ChartSpec

MAX_POINTS = 100
DEFAULT_BINS = 20

Row = Dict[str, Any]


class CorrelationMode(Enum):
    # each column is filtered on its own, then values are paired by position
    INDEPENDENT = "independent"
    # only rows where both cells are numeric are paired
    PAIRED = "paired"


def aggregate(values: Sequence[float], fn: str) -> float:
    """Reduce ``values`` with ``fn``; empty or unknown functions mean sum."""
    if fn == "avg":
        return sum(values) / len(values)
    if fn == "count":
        return float(len(values))
    if fn == "max":
        return max(values)
    if fn == "min":
        return min(values)
    return sum(values)


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson's r, or 0 for empty, mismatched or zero-variance inputs."""
    if len(x) != len(y) or not x:
        return 0.0

    n = min(len(x), len(y))
    mean_x = sum(x[:n]) / n
    mean_y = sum(y[:n]) / n

    num = 0.0
    sq_x = 0.0
    sq_y = 0.0
    for i in range(n):
        dx = x[i] - mean_x
        dy = y[i] - mean_y
        num += dx * dy
        sq_x += dx * dx
        sq_y += dy * dy

    denom = math.sqrt(sq_x * sq_y)
    if denom == 0:
        return 0.0
    return num / denom


def quartiles(sorted_values: Sequence[float]):
    """Index-based (q1, median, q3) of an ascending sequence, no interpolation."""
    n = len(sorted_values)
    return sorted_values[n // 4], sorted_values[n // 2], sorted_values[3 * n // 4]


def _numbers(cells: Sequence[Cell]) -> List[float]:
    out = []
    for cell in cells:
        num = cell.to_number()
        if num is not None:
            out.append(num)
    return out


def _point_value(cell: Cell) -> Any:
    num = cell.to_number()
    return num if num is not None else cell.value


def xy_data(dataset: Dataset, x: str, y: str) -> List[Row]:
    xs = dataset.column_values(x)
    ys = dataset.column_values(y)
    if len(xs) != len(ys):
        return []

    data = []
    for xc, yc in list(zip(xs, ys))[:MAX_POINTS]:
        data.append({x: _point_value(xc), y: _point_value(yc)})
    return data


def grouped_data(dataset: Dataset, spec: ChartSpec) -> List[Row]:
    xs = dataset.column_values(spec.x)
    ys = dataset.column_values(spec.y)
    gs = dataset.column_values(spec.group_by)
    if len(xs) != len(ys) or len(xs) != len(gs):
        return []

    grouped: Dict[str, Dict[str, List[float]]] = {}
    groups: Dict[str, None] = {}
    for xc, yc, gc in zip(xs, ys, gs):
        y_val = yc.to_number()
        if y_val is None:
            continue
        key = xc.as_text()
        group = gc.as_text()
        grouped.setdefault(key, {}).setdefault(group, []).append(y_val)
        groups.setdefault(group, None)

    data = []
    for key, by_group in grouped.items():
        point: Row = {spec.x: key}
        for group in groups:
            values = by_group.get(group)
            point[group] = aggregate(values, spec.aggregate) if values else 0
        data.append(point)
    return data


def aggregated_data(dataset: Dataset, spec: ChartSpec) -> List[Row]:
    xs = dataset.column_values(spec.x)
    ys = dataset.column_values(spec.y)
    if len(xs) != len(ys):
        return []

    buckets: Dict[str, List[float]] = {}
    for xc, yc in zip(xs, ys):
        y_val = yc.to_number()
        if y_val is None:
            continue
        buckets.setdefault(xc.as_text(), []).append(y_val)

    return [{spec.x: key, spec.y: aggregate(values, spec.aggregate)} for key, values in buckets.items()]


def combo_data(dataset: Dataset, spec: ChartSpec) -> List[Row]:
    xs = dataset.column_values(spec.x)
    ys = dataset.column_values(spec.y)
    y2s = dataset.column_values(spec.y2) if spec.y2 else []
    if len(xs) != len(ys):
        return []

    data = []
    for i in range(min(len(xs), MAX_POINTS)):
        y_val = ys[i].to_number()
        if y_val is None:
            continue
        point: Row = {spec.x: xs[i].value, spec.y: y_val}
        if spec.y2 and i < len(y2s):
            y2_val = y2s[i].to_number()
            if y2_val is not None:
                point[spec.y2] = y2_val
        data.append(point)
    return data


def bubble_data(dataset: Dataset, spec: ChartSpec) -> List[Row]:
    xs = dataset.column_values(spec.x)
    ys = dataset.column_values(spec.y)
    zs = dataset.column_values(spec.z)
    if len(xs) != len(ys) or len(xs) != len(zs):
        return []

    data = []
    for i in range(min(len(xs), MAX_POINTS)):
        x_val, y_val, z_val = xs[i].to_number(), ys[i].to_number(), zs[i].to_number()
        if x_val is None or y_val is None or z_val is None:
            continue
        data.append({spec.x: x_val, spec.y: y_val, spec.z: z_val})
    return data


def pie_data(dataset: Dataset, category: str, value: str) -> List[Row]:
    cats = dataset.column_values(category)
    vals = dataset.column_values(value)
    if len(cats) != len(vals):
        return []

    totals: Dict[str, float] = {}
    for cc, vc in zip(cats, vals):
        num = vc.to_number()
        if num is None:
            continue
        key = cc.as_text()
        totals[key] = totals.get(key, 0.0) + num

    return [{category: key, value: total} for key, total in totals.items()]


def histogram_data(dataset: Dataset, spec: ChartSpec) -> List[Row]:
    numbers = _numbers(dataset.column_values(spec.x))
    if not numbers:
        return []

    bins = spec.bins if spec.bins > 0 else DEFAULT_BINS
    lo, hi = min(numbers), max(numbers)
    width = (hi - lo) / bins

    counts = [0] * bins
    for n in numbers:
        idx = int(math.floor((n - lo) / width)) if width > 0 else 0
        idx = max(0, min(idx, bins - 1))
        counts[idx] += 1

    data = []
    for i in range(bins):
        start = lo + i * width
        end = lo + (i + 1) * width
        data.append({
            "bin": f"{start:.2f}-{end:.2f}",
            "count": counts[i],
            "start": start,
            "end": end,
        })
    return data


def boxplot_data(dataset: Dataset, spec: ChartSpec) -> List[Row]:
    numbers = sorted(_numbers(dataset.column_values(spec.y)))
    if not numbers:
        return []

    q1, median, q3 = quartiles(numbers)
    iqr = q3 - q1
    lower = q1 - 1.5 * iqr
    upper = q3 + 1.5 * iqr

    outliers = [n for n in numbers if n < lower or n > upper]

    # seeded from the sorted extremes; only in-fence values may replace them
    low, high = numbers[0], numbers[-1]
    for n in numbers:
        if n >= lower and n < low:
            low = n
        if n <= upper and n > high:
            high = n

    return [{
        "min": low,
        "q1": q1,
        "median": median,
        "q3": q3,
        "max": high,
        "outliers": outliers,
    }]


def _paired_numbers(dataset: Dataset, a: str, b: str):
    xs, ys = [], []
    for ac, bc in zip(dataset.column_values(a), dataset.column_values(b)):
        av, bv = ac.to_number(), bc.to_number()
        if av is not None and bv is not None:
            xs.append(av)
            ys.append(bv)
    return xs, ys


def correlation_data(
    dataset: Dataset,
    columns: Sequence[str],
    mode: CorrelationMode = CorrelationMode.INDEPENDENT,
) -> List[Row]:
    if not columns:
        return []

    per_column = {name: _numbers(dataset.column_values(name)) for name in columns}

    data = []
    for a in columns:
        row: Row = {"column": a}
        for b in columns:
            if mode is CorrelationMode.PAIRED:
                row[b] = pearson(*_paired_numbers(dataset, a, b))
            else:
                row[b] = pearson(per_column[a], per_column[b])
        data.append(row)
    return data


def project_chart_data(
    dataset: Dataset,
    spec: ChartSpec,
    correlation_mode: Optional[CorrelationMode] = None,
) -> List[Row]:
    """Shape ``dataset`` rows into data points for ``spec``."""
    kind = spec.type

    if kind in ("bar", "line", "area"):
        if not (spec.x and spec.y):
            return []
        if spec.group_by:
            return grouped_data(dataset, spec)
        if spec.aggregate:
            return aggregated_data(dataset, spec)
        return xy_data(dataset, spec.x, spec.y)

    if kind == "scatter":
        if not (spec.x and spec.y):
            return []
        return xy_data(dataset, spec.x, spec.y)

    if kind == "bubble":
        if not (spec.x and spec.y and spec.z):
            return []
        return bubble_data(dataset, spec)

    if kind == "pie":
        if not (spec.category and spec.value):
            return []
        return pie_data(dataset, spec.category, spec.value)

    if kind == "combo":
        if not (spec.x and spec.y):
            return []
        return combo_data(dataset, spec)

    if kind == "histogram":
        if not spec.x:
            return []
        return histogram_data(dataset, spec)

    if kind == "boxplot":
        if not spec.y:
            return []
        return boxplot_data(dataset, spec)

    if kind in ("correlation", "heatmap"):
        return correlation_data(dataset, spec.columns, correlation_mode or CorrelationMode.INDEPENDENT)

    return []
