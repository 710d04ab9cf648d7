"""
Numeric helpers shared by the progress and diagram statistics services.

Rounding follows half-up semantics (``floor(x * 10**k + 0.5) / 10**k``) so
figures match what the web client computes for the same data.
"""

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, TypeVar
import math

T = TypeVar("T")


def is_finite_num(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def num(value: Any) -> float:
    """Finite number or 0"""
    return value if is_finite_num(value) else 0


def round_half_up(value: float, digits: int) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round1(value: float) -> float:
    return round_half_up(value, 1)


def round2(value: float) -> float:
    return round_half_up(value, 2)


def js_round(value: float) -> int:
    return int(math.floor(value + 0.5))


def pct_num(part: float, total: float) -> float:
    """Percentage rounded to one decimal, 0 when total is 0"""
    return round1((part * 100) / total if total else 0)


def ratio_pct(part: float, total: float) -> float:
    return (part * 100) / total if total else 0


def avg(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0


def variance(values: Sequence[float]) -> float:
    """Sample variance (n - 1); 0 for fewer than two values"""
    if len(values) <= 1:
        return 0
    m = avg(values)
    return sum((v - m) ** 2 for v in values) / (len(values) - 1)


def median(values: Iterable[Any]) -> Optional[float]:
    data = sorted(v for v in values if is_finite_num(v))
    if not data:
        return None
    mid = len(data) // 2
    if len(data) % 2:
        return data[mid]
    return (data[mid - 1] + data[mid]) / 2


def quantile(values: Sequence[float], q: float) -> float:
    """Linear interpolation between closest ranks"""
    if not values:
        return 0
    data = sorted(values)
    pos = (len(data) - 1) * q
    base = int(math.floor(pos))
    rest = pos - base
    if base + 1 < len(data):
        return data[base] + rest * (data[base + 1] - data[base])
    return data[base]


def point_biserial(y01: Sequence[int], x: Sequence[float]) -> Optional[float]:
    """
    Point-biserial correlation between a dichotomous item (y01) and a
    continuous score (x).

    None when there is no data or x has no spread; 0 when every answer
    falls in the same group.
    """
    n = min(len(y01), len(x))
    if n == 0:
        return None
    xs = list(x[:n])
    ys = list(y01[:n])

    sd = math.sqrt(variance(xs))
    if sd == 0:
        return None

    ones = [xv for xv, yv in zip(xs, ys) if yv == 1]
    zeros = [xv for xv, yv in zip(xs, ys) if yv == 0]
    if not ones or not zeros:
        return 0

    p = len(ones) / n
    q = 1 - p
    return ((avg(ones) - avg(zeros)) / sd) * math.sqrt(p * q)


def kr20(k: int, item_pq_sum: float, total_variance: float) -> Optional[float]:
    """Kuder-Richardson 20 clamped to [0, 1]"""
    if k <= 1 or total_variance <= 0:
        return None
    value = (k / (k - 1)) * (1 - item_pq_sum / total_variance)
    if not math.isfinite(value):
        return None
    return max(0.0, min(1.0, value))


def group_by(items: Iterable[T], key: Callable[[T], Hashable]) -> Dict[Hashable, List[T]]:
    """Group preserving first-seen key order"""
    groups: Dict[Hashable, List[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def modal_value(values: Iterable[Any]) -> Any:
    """Most frequent value; ties go to the smallest value"""
    counts = Counter(values)
    if not counts:
        return None
    return min(counts, key=lambda v: (-counts[v], v))


def best_streak(days: Iterable[date]) -> int:
    """Longest run of consecutive calendar days"""
    ordered = sorted(set(days))
    best = 0
    run = 0
    previous = None
    for day in ordered:
        if previous is not None and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        best = max(best, run)
        previous = day
    return best


def iso_week_start(value: datetime) -> date:
    """Monday of the ISO week containing value"""
    day = value.date() if isinstance(value, datetime) else value
    return day - timedelta(days=day.weekday())


def current_iso_week(today: Optional[date] = None) -> tuple:
    """(monday, sunday) of the current ISO week"""
    today = today or datetime.utcnow().date()
    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=6)
