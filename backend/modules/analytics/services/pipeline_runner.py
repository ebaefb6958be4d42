# backend/modules/analytics/services/pipeline_runner.py

"""
Pipeline runners.

``MongoPipelineRunner`` hands pipelines to MongoDB's aggregation
framework. ``InMemoryPipelineRunner`` evaluates the same stage
vocabulary over plain Python documents; it backs the service tests and
local tooling, and raises ``ValueError`` for anything outside the subset
the analytics pipelines use.
"""

import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

from bson import ObjectId
from bson.decimal128 import Decimal128
from pymongo.database import Database

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
Pipeline = List[Document]


class PipelineRunner(ABC):
    """Executes aggregation pipelines against named collections."""

    @abstractmethod
    def aggregate(self, collection: str, pipeline: Pipeline) -> List[Document]:
        ...

    @abstractmethod
    def count_documents(self, collection: str, query: Document) -> int:
        ...


class MongoPipelineRunner(PipelineRunner):
    def __init__(self, db: Database):
        self.db = db

    def aggregate(self, collection: str, pipeline: Pipeline) -> List[Document]:
        return list(self.db[collection].aggregate(pipeline, allowDiskUse=True))

    def count_documents(self, collection: str, query: Document) -> int:
        return self.db[collection].count_documents(query)


# --- in-memory evaluation -------------------------------------------------

_MISSING = object()


def _normalize(value: Any) -> Any:
    if isinstance(value, Decimal128):
        return value.to_decimal()
    return value


def _get_path(doc: Any, path: str) -> Any:
    current = doc
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return _MISSING
    return _normalize(current)


def _set_path(doc: Document, path: str, value: Any) -> None:
    parts = path.split(".")
    target = doc
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _freeze(value: Any) -> Any:
    """Hashable stand-in used for grouping and set membership."""
    if isinstance(value, dict):
        return tuple((k, _freeze(v)) for k, v in value.items())
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _exact(value: Any) -> Decimal:
    return Decimal(str(value)) if isinstance(value, float) else Decimal(value)


def _add(a: Any, b: Any) -> Any:
    if isinstance(a, Decimal) or isinstance(b, Decimal):
        return _exact(a) + _exact(b)
    return a + b


def _multiply(a: Any, b: Any) -> Any:
    if isinstance(a, Decimal) or isinstance(b, Decimal):
        return _exact(a) * _exact(b)
    return a * b


def _as_utc(value: Any) -> datetime:
    if not isinstance(value, datetime):
        raise ValueError(f"Date operator applied to non-date value {value!r}")
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value


def _sort_key(value: Any):
    if value is _MISSING or value is None:
        return (0, 0)
    if _is_number(value):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, ObjectId):
        return (3, value)
    if isinstance(value, datetime):
        return (4, _as_utc(value).replace(tzinfo=None))
    return (5, str(value))


def _aware(value: Any) -> Any:
    # stored naive datetimes are UTC
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _compare(op: str, actual: Any, expected: Any) -> bool:
    if actual is _MISSING or actual is None:
        return False
    actual, expected = _aware(actual), _aware(expected)
    try:
        if op == "$gt":
            return actual > expected
        if op == "$gte":
            return actual >= expected
        if op == "$lt":
            return actual < expected
        if op == "$lte":
            return actual <= expected
    except TypeError:
        return False
    raise ValueError(f"Unsupported comparison operator: {op}")


def _equals(actual: Any, expected: Any) -> bool:
    if isinstance(actual, list) and not isinstance(expected, list):
        return any(_normalize(item) == expected for item in actual)
    if actual is _MISSING:
        return expected is None
    return actual == expected


def _matches(doc: Document, query: Document) -> bool:
    for field, condition in query.items():
        if field.startswith("$"):
            raise ValueError(f"Unsupported query operator: {field}")

        actual = _get_path(doc, field)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            for op, expected in condition.items():
                if op == "$eq":
                    ok = _equals(actual, expected)
                elif op == "$ne":
                    ok = not _equals(actual, expected)
                elif op == "$in":
                    ok = any(_equals(actual, candidate) for candidate in expected)
                else:
                    ok = _compare(op, actual, expected)
                if not ok:
                    return False
        elif not _equals(actual, condition):
            return False
    return True


def _evaluate(expr: Any, doc: Document) -> Any:
    if isinstance(expr, str) and expr.startswith("$"):
        value = _get_path(doc, expr[1:])
        return None if value is _MISSING else value

    if isinstance(expr, dict):
        if len(expr) == 1:
            (op, args), = expr.items()
            if op.startswith("$"):
                return _evaluate_operator(op, args, doc)
        return {key: _evaluate(value, doc) for key, value in expr.items()}

    if isinstance(expr, list):
        return [_evaluate(item, doc) for item in expr]

    return expr


def _evaluate_operator(op: str, args: Any, doc: Document) -> Any:
    if op == "$literal":
        return args

    if op in ("$multiply", "$add"):
        values = [_evaluate(arg, doc) for arg in args]
        if any(v is None for v in values):
            return None
        combine = _multiply if op == "$multiply" else _add
        result = values[0]
        for value in values[1:]:
            result = combine(result, value)
        return result

    if op in ("$year", "$month", "$dayOfMonth"):
        value = _evaluate(args, doc)
        if value is None:
            return None
        moment = _as_utc(value)
        return {"$year": moment.year, "$month": moment.month, "$dayOfMonth": moment.day}[op]

    if op == "$round":
        value = _evaluate(args[0], doc)
        places = _evaluate(args[1], doc) if len(args) > 1 else 0
        if value is None:
            return None
        if isinstance(value, Decimal):
            return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_EVEN)
        return round(value, places)

    raise ValueError(f"Unsupported expression operator: {op}")


class _Accumulator:
    def __init__(self, op: str):
        if op not in ("$sum", "$avg", "$min", "$max", "$first", "$addToSet", "$push"):
            raise ValueError(f"Unsupported accumulator: {op}")
        self.op = op
        self.total: Any = 0
        self.count = 0
        self.value: Any = _MISSING
        self.items: List[Any] = []
        self.seen: set = set()

    def add(self, value: Any) -> None:
        if self.op in ("$sum", "$avg"):
            if _is_number(value):
                self.total = _add(self.total, value)
                self.count += 1
        elif self.op in ("$min", "$max"):
            if value is None:
                return
            if self.value is _MISSING:
                self.value = value
            elif (value < self.value) if self.op == "$min" else (value > self.value):
                self.value = value
        elif self.op == "$first":
            if self.value is _MISSING:
                self.value = value
        elif self.op == "$addToSet":
            key = _freeze(value)
            if key not in self.seen:
                self.seen.add(key)
                self.items.append(value)
        else:
            self.items.append(value)

    def result(self) -> Any:
        if self.op == "$sum":
            return self.total
        if self.op == "$avg":
            if not self.count:
                return None
            return self.total / self.count
        if self.op in ("$addToSet", "$push"):
            return list(self.items)
        return None if self.value is _MISSING else self.value


class InMemoryPipelineRunner(PipelineRunner):
    """Evaluates pipelines over ``{collection_name: [documents]}``."""

    def __init__(self, collections: Optional[Dict[str, List[Document]]] = None):
        self.collections: Dict[str, List[Document]] = collections if collections is not None else {}
        self._stages: Dict[str, Callable[[List[Document], Any], List[Document]]] = {
            "$match": self._match,
            "$unwind": self._unwind,
            "$lookup": self._lookup,
            "$group": self._group,
            "$project": self._project,
            "$sort": self._sort,
            "$limit": self._limit,
        }

    def insert(self, collection: str, *documents: Document) -> None:
        self.collections.setdefault(collection, []).extend(documents)

    def aggregate(self, collection: str, pipeline: Pipeline) -> List[Document]:
        rows = [copy.deepcopy(doc) for doc in self.collections.get(collection, [])]
        for stage in pipeline:
            if len(stage) != 1:
                raise ValueError(f"A pipeline stage must have exactly one operator: {stage}")
            (name, spec), = stage.items()
            handler = self._stages.get(name)
            if handler is None:
                raise ValueError(f"Unsupported pipeline stage: {name}")
            rows = handler(rows, spec)
        return rows

    def count_documents(self, collection: str, query: Document) -> int:
        return sum(1 for doc in self.collections.get(collection, []) if _matches(doc, query))

    # stages

    def _match(self, rows: List[Document], query: Document) -> List[Document]:
        return [row for row in rows if _matches(row, query)]

    def _unwind(self, rows: List[Document], spec: Any) -> List[Document]:
        if isinstance(spec, dict):
            path = spec["path"]
            preserve = spec.get("preserveNullAndEmptyArrays", False)
        else:
            path, preserve = spec, False
        field = path[1:]

        unwound: List[Document] = []
        for row in rows:
            value = _get_path(row, field)
            if isinstance(value, list) and value:
                for item in value:
                    clone = copy.copy(row)
                    _set_path(clone, field, item)
                    unwound.append(clone)
            elif value is _MISSING or value is None or value == []:
                if preserve:
                    unwound.append(row)
            else:
                unwound.append(row)
        return unwound

    def _lookup(self, rows: List[Document], spec: Document) -> List[Document]:
        foreign = self.collections.get(spec["from"], [])
        local_field = spec["localField"]
        foreign_field = spec["foreignField"]

        joined: List[Document] = []
        for row in rows:
            local = _get_path(row, local_field)
            local = None if local is _MISSING else local
            matches = [
                copy.deepcopy(doc)
                for doc in foreign
                if _equals(_get_path(doc, foreign_field), local)
            ]
            clone = dict(row)
            _set_path(clone, spec["as"], matches)
            joined.append(clone)
        return joined

    def _group(self, rows: List[Document], spec: Document) -> List[Document]:
        if "_id" not in spec:
            raise ValueError("$group requires an _id expression")

        groups: Dict[Any, Dict[str, Any]] = {}
        for row in rows:
            group_id = _evaluate(spec["_id"], row)
            key = _freeze(group_id)
            group = groups.get(key)
            if group is None:
                group = {
                    "_id": group_id,
                    "acc": {
                        field: _Accumulator(self._accumulator_op(expr))
                        for field, expr in spec.items()
                        if field != "_id"
                    },
                }
                groups[key] = group
            for field, expr in spec.items():
                if field == "_id":
                    continue
                (_, arg), = expr.items()
                group["acc"][field].add(_evaluate(arg, row))

        return [
            {"_id": group["_id"], **{field: acc.result() for field, acc in group["acc"].items()}}
            for group in groups.values()
        ]

    @staticmethod
    def _accumulator_op(expr: Any) -> str:
        if not isinstance(expr, dict) or len(expr) != 1:
            raise ValueError(f"Invalid accumulator expression: {expr}")
        return next(iter(expr))

    def _project(self, rows: List[Document], spec: Document) -> List[Document]:
        include_id = spec.get("_id", 1) not in (0, False)
        projected: List[Document] = []
        for row in rows:
            out: Document = {}
            if include_id and "_id" in row:
                out["_id"] = row["_id"]
            for field, value in spec.items():
                if field == "_id" and isinstance(value, (int, bool)):
                    continue
                if value is True or (isinstance(value, int) and not isinstance(value, bool) and value == 1):
                    current = _get_path(row, field)
                    if current is not _MISSING:
                        _set_path(out, field, current)
                elif value is False or (isinstance(value, int) and value == 0):
                    raise ValueError("Exclusion projections are not supported")
                else:
                    _set_path(out, field, _evaluate(value, row))
            projected.append(out)
        return projected

    def _sort(self, rows: List[Document], spec: Document) -> List[Document]:
        ordered = list(rows)
        for field, direction in reversed(list(spec.items())):
            ordered.sort(key=lambda row: _sort_key(_get_path(row, field)), reverse=direction < 0)
        return ordered

    def _limit(self, rows: List[Document], count: int) -> List[Document]:
        return rows[:count]


def documents(items: Iterable[Any]) -> List[Document]:
    """Convert model objects exposing ``to_document()`` for the in-memory runner."""
    return [item.to_document() for item in items]
